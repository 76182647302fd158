from smtplib import SMTPException
from unittest.mock import patch

from django.core import mail
from django.forms import ValidationError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from .email_utils import send_email


@override_settings(DEFAULT_FROM_EMAIL="owner@tenantix.app")
class SendEmailHelperTest(TestCase):
    """notifications.email_utils.send_email"""

    def test_sends_html_mail(self):
        sent = send_email("tenant@example.com", "Lease signed", "<p>Welcome <b>home</b></p>")

        self.assertEqual(sent, 1)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["tenant@example.com"])
        self.assertEqual(message.from_email, "owner@tenantix.app")
        self.assertEqual(message.subject, "Lease signed")
        self.assertEqual(message.body, "Welcome home")
        self.assertEqual(message.alternatives[0][0], "<p>Welcome <b>home</b></p>")
        self.assertEqual(message.alternatives[0][1], "text/html")

    @patch("notifications.email_utils.send_mail", side_effect=SMTPException("relay refused"))
    def test_backend_failure_is_reraised(self, _send_mail):
        with self.assertRaises(ValidationError) as ctx:
            send_email("tenant@example.com", "Rent due", "<p>Pay up</p>")
        self.assertIn("relay refused", ctx.exception.messages[0])


class SendEmailViewTest(TestCase):
    """POST /api/sendEmail/"""

    url = "/api/sendEmail/"

    def setUp(self):
        self.client = APIClient()

    def test_success(self):
        response = self.client.post(self.url, {
            "to": "tenant@example.com",
            "subject": "Contract ready",
            "body": "<p>Please sign the contract.</p>",
        }, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "success", "message": "Email sent"})
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["tenant@example.com"])

    def test_invalid_payload(self):
        response = self.client.post(self.url, {"to": "not-an-email", "subject": ""}, format="json")

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["status"], "error")
        self.assertIn("to", body["errors"])
        self.assertIn("body", body["errors"])
        self.assertEqual(len(mail.outbox), 0)

    @patch("notifications.email_utils.send_mail", side_effect=SMTPException("relay refused"))
    def test_backend_failure(self, _send_mail):
        response = self.client.post(self.url, {
            "to": "tenant@example.com",
            "subject": "Rent due",
            "body": "<p>Pay up</p>",
        }, format="json")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["status"], "error")
        self.assertIn("relay refused", response.json()["message"])
