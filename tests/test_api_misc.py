import unittest
from unittest.mock import patch

from api_case import ApiTestCase
from nutriscan.ai import AIServiceError


class ChatTestCase(ApiTestCase):
    @patch("nutriscan.routes.chat_reply", return_value="Try adding lentils for fiber.")
    def test_chat_does_not_need_a_session(self, chat_reply):
        response = self.client.post("/api/chat", json={"content": "  How do I eat more fiber?  "})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"response": "Try adding lentils for fiber."})
        chat_reply.assert_called_once_with("How do I eat more fiber?")

    def test_chat_requires_content(self):
        self.assertJsonError(self.client.post("/api/chat", json={}), 400)
        self.assertJsonError(self.client.post("/api/chat", json={"content": "   "}), 400)

    @patch("nutriscan.routes.chat_reply", side_effect=AIServiceError("OPENAI_API_KEY is not configured."))
    def test_chat_ai_failure(self, _chat_reply):
        body = self.assertJsonError(self.client.post("/api/chat", json={"content": "Hi"}), 500)
        self.assertEqual(body["message"], "Failed to get response from AI assistant")


class WaitlistTestCase(ApiTestCase):
    def test_join_waitlist(self):
        response = self.client.post(
            "/api/waitlist",
            json={"email": "Fan@Example.com", "fullName": "Fan", "interests": ["meal plans", "reports"]},
        )
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body["message"], "Successfully joined waitlist")
        self.assertEqual(body["entry"]["email"], "fan@example.com")
        self.assertEqual(body["entry"]["interests"], "meal plans, reports")

    def test_duplicate_email_is_rejected(self):
        self.client.post("/api/waitlist", json={"email": "fan@example.com"})
        response = self.client.post("/api/waitlist", json={"email": "FAN@example.com"})
        body = self.assertJsonError(response, 400)
        self.assertEqual(body["message"], "Email already registered on waitlist")

    def test_invalid_email(self):
        self.assertJsonError(self.client.post("/api/waitlist", json={"email": "nope"}), 400)


class ReportTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.register()
        self.add_food_entry(self.user["id"], food_name="Porridge", calories=350)
        self.client.post(
            "/api/workout-plans",
            json={"name": "Morning mobility", "exercises": [{"name": "Cat-Cow", "sets": 1, "reps": 10}], "caloriesBurned": 60},
        )

    def test_pdf_download(self):
        for report_type in ("all", "food", "meals", "workouts"):
            response = self.client.get(f"/api/reports/pdf?type={report_type}")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.mimetype, "application/pdf")
            self.assertTrue(response.data.startswith(b"%PDF"))
            self.assertIn(f"nutriscan-{report_type}-report-", response.headers["Content-Disposition"])
            response.close()

    def test_type_defaults_to_all(self):
        response = self.client.get("/api/reports/pdf")
        self.assertEqual(response.status_code, 200)
        self.assertIn("nutriscan-all-report-", response.headers["Content-Disposition"])
        response.close()

    def test_unknown_report_type(self):
        self.assertJsonError(self.client.get("/api/reports/pdf?type=sleep"), 400)


class ErrorHandlingTestCase(ApiTestCase):
    def test_unknown_route_is_json_404(self):
        body = self.assertJsonError(self.client.get("/api/does-not-exist"), 404)
        self.assertEqual(body["error"], "Not Found")

    def test_unexpected_errors_are_logged_and_hidden(self):
        self.register()
        with patch("nutriscan.routes.build_report_pdf", side_effect=RuntimeError("boom")):
            with self.assertLogs(self.app.logger, level="ERROR"):
                response = self.client.get("/api/reports/pdf")
        body = self.assertJsonError(response, 500)
        self.assertNotIn("boom", body["message"])

    def test_security_headers(self):
        response = self.client.post("/api/logout")
        self.assertEqual(response.headers["X-Content-Type-Options"], "nosniff")
        self.assertEqual(response.headers["X-Frame-Options"], "DENY")


class MemoryBackendTestCase(ApiTestCase):
    storage_backend = "memory"

    def test_api_works_without_a_database(self):
        user = self.register()
        response = self.client.post(
            "/api/meal-plans",
            json={"name": "Snack day", "meals": [{"name": "Apple", "ingredients": ["apple"], "calories": 95}]},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["userId"], user["id"])
        self.assertEqual(len(self.client.get("/api/meal-plans").get_json()), 1)

        self.client.post("/api/logout")
        self.assertEqual(self.login().status_code, 200)


if __name__ == "__main__":
    unittest.main()
