from django.apps import apps
from django.test import TestCase
from rest_framework.test import APIClient


class HealthEndpointTest(TestCase):
    """GET /api/health/"""

    def setUp(self):
        self.client = APIClient()
        self.registry = apps.get_app_config("chat").registry

    def tearDown(self):
        self.registry.discard("health-test-channel")

    def test_reports_ok(self):
        response = self.client.get("/api/health/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "success")
        self.assertEqual(response.json()["message"], "ok")

    def test_counts_online_users(self):
        before = self.client.get("/api/health/").json()["data"]["online_users"]

        self.registry.register("health-alice", "health-test-channel")
        self.registry.register("health-bob", "health-test-channel")

        after = self.client.get("/api/health/").json()["data"]["online_users"]
        self.assertEqual(after, before + 2)
