import json
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from website.models import Appointment, Case, Client, Consultation, Lawyer


class ApiTestCase(TestCase):
    def setUp(self):
        User = get_user_model()
        self.staff = User.objects.create_user("staff", password="pass12345", is_staff=True)
        self.user = User.objects.create_user("user", password="pass12345", is_staff=False)

        self.ana = Client.objects.create(full_name="Ana Perez")
        self.laura = Lawyer.objects.create(full_name="Laura Gomez")

    def login_staff(self):
        self.client.login(username="staff", password="pass12345")

    def post_json(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def put_json(self, url, payload):
        return self.client.put(url, data=json.dumps(payload), content_type="application/json")

    def appointment_payload(self, start="2024-01-10 09:00:00", end="2024-01-10 09:30:00", **overrides):
        payload = {
            "client_id": self.ana.id,
            "lawyer_id": self.laura.id,
            "start_at": start,
            "end_at": end,
        }
        payload.update(overrides)
        return payload


# Create your tests here.
class DashboardAccessSmokeTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.protected_urls = [
            reverse("dashboard:home"),
            reverse("dashboard:appointments"),
            reverse("dashboard:consultations"),
            reverse("dashboard:me"),
        ]

    def test_protected_pages_require_login(self):
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json(), {"ok": False, "error": "Unauthorized"})

    def test_non_staff_is_rejected(self):
        self.client.login(username="user", password="pass12345")
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 403)

    def test_staff_can_access(self):
        self.login_staff()
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 200)

    def test_writes_require_login(self):
        response = self.post_json(reverse("dashboard:appointments"), self.appointment_payload())

        self.assertEqual(response.status_code, 401)
        self.assertFalse(Appointment.objects.exists())


class AppointmentApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.login_staff()
        self.list_url = reverse("dashboard:appointments")

    def detail_url(self, pk):
        return reverse("dashboard:appointment_detail", args=[pk])

    def action_url(self, pk, action):
        return reverse("dashboard:appointment_action", args=[pk, action])

    def test_end_to_end_booking_flow(self):
        print("\n[TEST] create A -> overlapping B is 409 -> cancel A -> B is 201")

        a = self.post_json(self.list_url, self.appointment_payload("2024-01-10 09:00:00", "2024-01-10 09:30:00"))
        print("  - create A:", a.status_code, a.json())
        self.assertEqual(a.status_code, 201)
        a_id = a.json()["id"]

        b = self.post_json(self.list_url, self.appointment_payload("2024-01-10 09:15:00", "2024-01-10 09:45:00"))
        print("  - create B:", b.status_code, b.json())
        self.assertEqual(b.status_code, 409)
        self.assertEqual(b.json()["error"]["code"], "CONFLICT")

        cancel = self.client.post(self.action_url(a_id, "cancel"))
        self.assertEqual(cancel.status_code, 200)
        self.assertEqual(cancel.json(), {"ok": True})

        b = self.post_json(self.list_url, self.appointment_payload("2024-01-10 09:15:00", "2024-01-10 09:45:00"))
        print("  - create B again:", b.status_code, b.json())
        self.assertEqual(b.status_code, 201)

    def test_validation_error_envelope(self):
        response = self.post_json(self.list_url, self.appointment_payload(end="2024-01-10 09:14:00"))
        body = response.json()

        print("\n[TEST] error envelope:", body)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(body["error"]["details"], {"field": "end_at"})
        self.assertIn("between 15 and 240", body["error"]["message"])

    def test_not_found_envelope(self):
        response = self.post_json(self.list_url, self.appointment_payload(client_id=999999))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")

    def test_malformed_json_body(self):
        response = self.client.post(self.list_url, data="{not json", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_form_encoded_create(self):
        response = self.client.post(self.list_url, data=self.appointment_payload(channel="phone"))

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Appointment.objects.get().channel, "phone")

    def test_get_update_delete(self):
        appt_id = self.post_json(self.list_url, self.appointment_payload(title="Intake")).json()["id"]

        row = self.client.get(self.detail_url(appt_id)).json()
        self.assertEqual(row["title"], "Intake")
        self.assertEqual(row["start_at"], "2024-01-10 09:00:00")
        self.assertEqual(row["status"], "scheduled")

        updated = self.put_json(self.detail_url(appt_id), self.appointment_payload(
            "2024-01-10 11:00:00", "2024-01-10 12:00:00", title="Intake (moved)", status="confirmed",
        ))
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json(), {"ok": True})

        row = self.client.get(self.detail_url(appt_id)).json()
        self.assertEqual(row["start_at"], "2024-01-10 11:00:00")
        self.assertEqual(row["status"], "confirmed")

        deleted = self.client.delete(self.detail_url(appt_id))
        self.assertEqual(deleted.status_code, 200)

        self.assertEqual(self.client.get(self.detail_url(appt_id)).status_code, 404)
        self.assertEqual(self.client.delete(self.detail_url(appt_id)).status_code, 404)

    def test_invalid_id_and_unknown_action(self):
        response = self.client.get(self.detail_url("abc"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Invalid id")

        appt_id = self.post_json(self.list_url, self.appointment_payload()).json()["id"]
        response = self.client.post(self.action_url(appt_id, "reopen"))
        self.assertEqual(response.status_code, 404)

    def test_status_actions(self):
        print("\n[TEST] confirm / mark-done / no-show buttons")

        for action, expected in (("confirm", "confirmed"), ("mark-done", "done"), ("no-show", "no_show")):
            with self.subTest(action):
                Appointment.objects.all().delete()
                appt_id = self.post_json(self.list_url, self.appointment_payload()).json()["id"]
                if action != "confirm":
                    self.client.post(self.action_url(appt_id, "confirm"))

                response = self.client.post(self.action_url(appt_id, action))
                print(f"  - {action}: {response.status_code}")
                self.assertEqual(response.status_code, 200)
                self.assertEqual(Appointment.objects.get(pk=appt_id).status, expected)

    def test_confirm_conflict_keeps_status(self):
        self.post_json(self.list_url, self.appointment_payload())
        racer = Appointment.objects.create(
            client=self.ana,
            lawyer=self.laura,
            start_at="2024-01-10 09:10:00",
            end_at="2024-01-10 09:40:00",
        )

        response = self.client.post(self.action_url(racer.id, "confirm"))

        self.assertEqual(response.status_code, 409)
        racer.refresh_from_db()
        self.assertEqual(racer.status, "scheduled")

    def test_actions_are_post_only(self):
        appt_id = self.post_json(self.list_url, self.appointment_payload()).json()["id"]
        self.assertEqual(self.client.get(self.action_url(appt_id, "cancel")).status_code, 405)

    def test_list_endpoint(self):
        self.post_json(self.list_url, self.appointment_payload("2024-01-10 09:00:00", "2024-01-10 09:30:00"))
        self.post_json(self.list_url, self.appointment_payload("2024-01-11 09:00:00", "2024-01-11 09:30:00"))

        response = self.client.get(self.list_url, {"from": "2024-01-11 00:00:00", "limit": 10})
        body = response.json()

        print("\n[TEST] list:", body)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total"], 1)
        self.assertEqual(body["limit"], 10)
        self.assertEqual(body["items"][0]["client_name"], "Ana Perez")
        self.assertEqual(body["items"][0]["lawyer_name"], "Laura Gomez")

        bad = self.client.get(self.list_url, {"to": "tomorrow"})
        self.assertEqual(bad.status_code, 400)


class DashboardSummaryTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.login_staff()

    def test_summary_for_a_given_day(self):
        case = Case.objects.create(client=self.ana, title="Lease dispute")
        today = Appointment.objects.create(
            client=self.ana, case=case, lawyer=self.laura,
            start_at="2024-01-10 09:00:00", end_at="2024-01-10 09:30:00",
        )
        tomorrow = Appointment.objects.create(
            client=self.ana, lawyer=self.laura, status="confirmed",
            start_at="2024-01-11 09:00:00", end_at="2024-01-11 09:30:00",
        )
        Appointment.objects.create(
            client=self.ana, lawyer=self.laura, status="cancelled",
            start_at="2024-01-12 09:00:00", end_at="2024-01-12 09:30:00",
        )
        Consultation.objects.create(full_name="Carla", email="c@test.com", message="Need help with a lease")
        Consultation.objects.create(full_name="Carla", email="c@test.com", message="Following up on my lease")

        response = self.client.get(reverse("dashboard:home"), {"date": "2024-01-10"})
        body = response.json()

        print("\n[TEST] dashboard summary:", body["kpis"])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["date"], "2024-01-10")
        self.assertEqual(body["kpis"]["clients"], 1)
        self.assertEqual(body["kpis"]["cases"], 1)
        self.assertEqual(body["kpis"]["appointments"], 3)
        self.assertEqual(body["kpis"]["consultations_new"], 2)
        self.assertEqual([a["id"] for a in body["agenda"]], [today.id])
        # cancelled appointments are not "upcoming"
        self.assertEqual([a["id"] for a in body["upcoming"]], [tomorrow.id])
        # same person shows up once
        self.assertEqual(len(body["latest_consultations"]), 1)

    def test_consultations_list(self):
        Consultation.objects.create(full_name="Carla", email="c@test.com", message="Need help with a lease")

        body = self.client.get(reverse("dashboard:consultations")).json()

        self.assertTrue(body["ok"])
        self.assertEqual(body["consultations"][0]["full_name"], "Carla")


class SessionApiTests(ApiTestCase):
    def test_login_me_logout(self):
        response = self.post_json(reverse("dashboard:login"), {"username": "staff", "password": "pass12345"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username"], "staff")
        self.assertTrue(self.client.session.get_expire_at_browser_close())

        me = self.client.get(reverse("dashboard:me"))
        self.assertEqual(me.status_code, 200)

        self.assertEqual(self.client.post(reverse("dashboard:logout")).status_code, 200)
        self.assertEqual(self.client.get(reverse("dashboard:me")).status_code, 401)

    def test_remember_me_keeps_session_two_weeks(self):
        self.post_json(reverse("dashboard:login"), {
            "username": "staff", "password": "pass12345", "remember": "on",
        })

        self.assertFalse(self.client.session.get_expire_at_browser_close())
        self.assertEqual(self.client.session.get_expiry_age(), 1209600)

    def test_bad_credentials(self):
        response = self.post_json(reverse("dashboard:login"), {"username": "staff", "password": "wrong"})
        self.assertEqual(response.status_code, 401)

    def test_non_staff_cannot_log_in(self):
        response = self.post_json(reverse("dashboard:login"), {"username": "user", "password": "pass12345"})
        self.assertEqual(response.status_code, 403)
