from datetime import datetime
from django.test import SimpleTestCase
from website.constants import can_transition, is_booking_impacting
from website.forms import AppointmentForm


class StatusRulesTests(SimpleTestCase):
    def test_booking_impacting_statuses(self):
        self.assertTrue(is_booking_impacting("scheduled"))
        self.assertTrue(is_booking_impacting("confirmed"))
        for status in ("cancelled", "done", "no_show"):
            self.assertFalse(is_booking_impacting(status))

    def test_transitions(self):
        self.assertTrue(can_transition("scheduled", "confirmed"))
        self.assertTrue(can_transition("confirmed", "no_show"))
        self.assertTrue(can_transition("done", "done"))
        self.assertFalse(can_transition("confirmed", "scheduled"))
        self.assertFalse(can_transition("cancelled", "scheduled"))
        self.assertFalse(can_transition("no_show", "confirmed"))
        self.assertFalse(can_transition("done", "scheduled"))

    def test_closed_appointments_can_be_corrected(self):
        self.assertTrue(can_transition("done", "cancelled"))
        self.assertTrue(can_transition("no_show", "done"))
        self.assertTrue(can_transition("cancelled", "no_show"))


class AppointmentFormTests(SimpleTestCase):
    def test_clean_data(self):
        form = AppointmentForm(data={
            "client_id": "3",
            "start_at": " 2024-01-10 09:00:00 ",
            "end_at": "2024-01-10 09:45:00",
            "title": "  First meeting  ",
        })

        self.assertTrue(form.is_valid(), form.errors.as_text())
        self.assertEqual(form.cleaned_data["client_id"], 3)
        self.assertIsNone(form.cleaned_data["lawyer_id"])
        self.assertEqual(form.cleaned_data["start_at"], datetime(2024, 1, 10, 9, 0))
        self.assertEqual(form.cleaned_data["channel"], "in_person")
        self.assertEqual(form.cleaned_data["status"], "scheduled")
        self.assertEqual(form.cleaned_data["title"], "First meeting")

    def test_first_error_follows_field_order(self):
        form = AppointmentForm(data={
            "start_at": "nope",
            "end_at": "2024-01-10 09:45:00",
            "channel": "fax",
        })

        self.assertFalse(form.is_valid())
        self.assertEqual(form.first_error()[0], "client_id")

        form = AppointmentForm(data={
            "client_id": 1,
            "start_at": "nope",
            "end_at": "2024-01-10 09:45:00",
            "channel": "fax",
        })
        self.assertFalse(form.is_valid())
        self.assertEqual(form.first_error(), ("start_at", "start_at must be 'YYYY-MM-DD HH:MM:SS'"))

    def test_valid_form_has_no_first_error(self):
        form = AppointmentForm(data={
            "client_id": 1,
            "start_at": "2024-01-10 09:00:00",
            "end_at": "2024-01-10 09:15:00",
        })
        self.assertTrue(form.is_valid(), form.errors.as_text())
        self.assertEqual(form.first_error(), (None, None))
