from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from dashboard import services
from website.models import Appointment, Client, Lawyer


class AppointmentAdminTests(TestCase):
    def setUp(self):
        admin_user = get_user_model().objects.create_superuser("admin", "admin@test.com", "pass12345")
        self.client.force_login(admin_user)

        self.ana = Client.objects.create(full_name="Ana Perez")
        self.laura = Lawyer.objects.create(full_name="Laura Gomez")

        self.add_url = reverse("admin:website_appointment_add")
        self.changelist_url = reverse("admin:website_appointment_changelist")

        self.existing = services.create_appointment({
            "client_id": self.ana.id,
            "lawyer_id": self.laura.id,
            "start_at": "2024-01-10 09:00:00",
            "end_at": "2024-01-10 10:00:00",
        })

    def form_data(self, day="2024-01-10", start="09:30:00", end="10:00:00", **overrides):
        # the admin renders datetimes as separate date and time inputs
        data = {
            "client": self.ana.id,
            "case": "",
            "lawyer": self.laura.id,
            "start_at_0": day,
            "start_at_1": start,
            "end_at_0": day,
            "end_at_1": end,
            "channel": "in_person",
            "status": "scheduled",
            "title": "",
            "notes": "",
            "_save": "Save",
        }
        data.update(overrides)
        return data

    def test_overlapping_add_shows_form_error(self):
        print("\n[TEST] admin add into a taken slot stays on the form")

        response = self.client.post(self.add_url, self.form_data())
        print("  - status:", response.status_code)

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "overlaps with existing booking")
        self.assertIn(
            "Appointment overlaps with existing booking",
            response.context["adminform"].form.non_field_errors(),
        )
        self.assertEqual(Appointment.objects.count(), 1)

    def test_valid_add_is_saved(self):
        response = self.client.post(self.add_url, self.form_data(start="10:00:00", end="10:30:00", title="Follow-up"))

        self.assertEqual(response.status_code, 302)
        self.assertEqual(Appointment.objects.count(), 2)
        appt = Appointment.objects.exclude(pk=self.existing.pk).get()
        self.assertEqual(appt.title, "Follow-up")
        self.assertEqual(appt.lawyer_id, self.laura.id)

    def test_cancelled_slot_can_be_taken_from_admin(self):
        services.cancel_appointment(self.existing.id)

        response = self.client.post(self.add_url, self.form_data())

        self.assertEqual(response.status_code, 302)
        self.assertEqual(Appointment.objects.count(), 2)

    def test_change_into_taken_slot_is_rejected(self):
        other = services.create_appointment({
            "client_id": self.ana.id,
            "lawyer_id": self.laura.id,
            "start_at": "2024-01-10 11:00:00",
            "end_at": "2024-01-10 11:30:00",
        })
        change_url = reverse("admin:website_appointment_change", args=[other.id])

        response = self.client.post(change_url, self.form_data(start="09:15:00", end="09:45:00"))

        self.assertEqual(response.status_code, 200)
        other.refresh_from_db()
        self.assertEqual(other.start_at.hour, 11)

    def test_delete_view_soft_deletes(self):
        delete_url = reverse("admin:website_appointment_delete", args=[self.existing.id])

        response = self.client.post(delete_url, {"post": "yes"})

        self.assertEqual(response.status_code, 302)
        self.existing.refresh_from_db()
        self.assertIsNotNone(self.existing.deleted_at)

    def test_bulk_delete_soft_deletes(self):
        print("\n[TEST] 'delete selected' only stamps deleted_at")

        second = services.create_appointment({
            "client_id": self.ana.id,
            "lawyer_id": self.laura.id,
            "start_at": "2024-01-11 09:00:00",
            "end_at": "2024-01-11 09:30:00",
        })

        response = self.client.post(self.changelist_url, {
            "action": "delete_selected",
            "_selected_action": [self.existing.id, second.id],
            "post": "yes",
        })

        self.assertEqual(response.status_code, 302)
        # rows are still there, just hidden
        self.assertEqual(Appointment.objects.count(), 2)
        self.assertEqual(Appointment.objects.active().count(), 0)

        changelist = self.client.get(self.changelist_url)
        self.assertEqual(changelist.context["cl"].result_count, 0)
