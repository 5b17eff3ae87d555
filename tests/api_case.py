import tempfile
import unittest
from pathlib import Path

from nutriscan import create_app, db
from nutriscan.storage import get_storage


class ApiTestCase(unittest.TestCase):
    storage_backend = "database"

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        tmp_path = Path(self.tmpdir.name)
        self.app = create_app(
            {
                "TESTING": True,
                "SECRET_KEY": "test-secret",
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{(tmp_path / 'nutriscan-test.db').as_posix()}",
                "UPLOAD_FOLDER": str(tmp_path / "uploads"),
                "STORAGE_BACKEND": self.storage_backend,
            }
        )
        with self.app.app_context():
            db.create_all()
        self.client = self.app.test_client()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def register(self, username="alice", password="pass12345", email=None, full_name="Alice Doe", client=None):
        client = client or self.client
        response = client.post(
            "/api/register",
            json={
                "username": username,
                "password": password,
                "email": email or f"{username}@example.com",
                "fullName": full_name,
            },
        )
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()

    def login(self, username="alice", password="pass12345", client=None):
        client = client or self.client
        return client.post("/api/login", json={"username": username, "password": password})

    def add_food_entry(self, user_id, **fields):
        values = {"food_name": "Apple", "calories": 95, "protein": 0.5, "carbs": 25, "fats": 0.3}
        values.update(fields)
        with self.app.app_context():
            return get_storage().create_food_entry(user_id=user_id, **values).id

    def assertJsonError(self, response, status):
        self.assertEqual(response.status_code, status)
        body = response.get_json()
        self.assertIn("message", body)
        self.assertIn("error", body)
        return body
