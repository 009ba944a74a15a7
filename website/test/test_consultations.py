import json
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from website.models import Consultation


class ConsultationIntakeTests(TestCase):
    def setUp(self):
        self.url = reverse("consultation_create")
        self.payload = {
            "full_name": "Carla Mendez",
            "email": "carla@test.com",
            "phone": "1155550000",
            "area": "Labor",
            "message": "I was dismissed without notice and need advice.",
            "urgency": "high",
        }

    def post_json(self, payload):
        return self.client.post(self.url, data=json.dumps(payload), content_type="application/json")

    @override_settings(CONSULTATION_NOTIFY_EMAIL="office@firm.test")
    def test_valid_consultation_is_stored_and_notified(self):
        print("\n[TEST] contact form creates a consultation and emails the office")

        response = self.post_json(self.payload)
        print("  - status:", response.status_code, response.json())

        self.assertEqual(response.status_code, 201)
        consultation = Consultation.objects.get(pk=response.json()["id"])
        self.assertEqual(consultation.status, "new")
        self.assertEqual(consultation.urgency, "high")

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["office@firm.test"])
        self.assertIn("Carla Mendez", mail.outbox[0].subject)

    @override_settings(CONSULTATION_NOTIFY_EMAIL="")
    def test_no_notification_without_recipient(self):
        response = self.post_json(self.payload)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(mail.outbox), 0)

    def test_form_encoded_post_and_default_urgency(self):
        data = dict(self.payload)
        del data["urgency"]

        response = self.client.post(self.url, data=data)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Consultation.objects.get().urgency, "normal")

    def test_invalid_input_is_rejected(self):
        print("\n[TEST] invalid contact form input -> VALIDATION_ERROR")

        cases = {
            "email": {"email": "not-an-email"},
            "full_name": {"full_name": "Al"},
            "message": {"message": "help"},
            "urgency": {"urgency": "yesterday"},
        }
        for field, override in cases.items():
            with self.subTest(field):
                response = self.post_json({**self.payload, **override})
                body = response.json()
                print(f"  - {field}: {body}")
                self.assertEqual(response.status_code, 400)
                self.assertEqual(body["error"]["code"], "VALIDATION_ERROR")
                self.assertEqual(body["error"]["details"]["field"], field)

        self.assertFalse(Consultation.objects.exists())

    def test_malformed_json(self):
        response = self.client.post(self.url, data="{oops", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)


class HealthTests(TestCase):
    def test_health(self):
        response = self.client.get(reverse("health"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
