"""End-to-end tests for the user registry HTTP API."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from usercrud.api import create_app
from usercrud.application import build_store, create_application
from usercrud.config import Settings
from usercrud.store import InMemoryRepository, UserStore


class UserRegistryAPITests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = UserStore(InMemoryRepository())
        self.client = TestClient(create_app(store=self.store))

    def _create(self, name: str = "Ana", age: int = 30, email: str = "ana@x.com"):
        return self.client.post("/v1/users", json={"name": name, "age": age, "email": email})

    def test_healthcheck(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_user_lifecycle(self) -> None:
        created = self._create()
        self.assertEqual(created.status_code, 201, created.text)
        payload = created.json()
        self.assertEqual(payload["id"], 1)
        self.assertIsNone(payload["updated_at"])

        duplicate = self._create(name="Bea", age=25)
        self.assertEqual(duplicate.status_code, 409, duplicate.text)
        self.assertEqual(duplicate.json()["detail"]["error"], "duplicate_email")

        updated = self.client.put(
            "/v1/users/1",
            json={"name": "Ana Silva", "age": 31, "email": "ana@x.com"},
        )
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["name"], "Ana Silva")
        self.assertIsNotNone(updated.json()["updated_at"])

        deleted = self.client.delete("/v1/users/1")
        self.assertEqual(deleted.status_code, 204, deleted.text)

        missing = self.client.get("/v1/users/1")
        self.assertEqual(missing.status_code, 404, missing.text)
        self.assertEqual(missing.json()["detail"]["error"], "not_found")

        listing = self.client.get("/v1/users")
        self.assertEqual(listing.status_code, 200, listing.text)
        self.assertEqual(listing.json(), {"users": []})

    def test_validation_failures_map_to_422(self) -> None:
        cases = [
            ({"name": "ab", "age": 30, "email": "ab@x.com"}, "invalid_name"),
            ({"name": "Ana", "age": 151, "email": "ana@x.com"}, "invalid_age"),
            ({"name": "Ana", "age": 30, "email": "not-an-email"}, "invalid_email"),
        ]
        for body, error in cases:
            with self.subTest(error=error):
                response = self.client.post("/v1/users", json=body)
                self.assertEqual(response.status_code, 422, response.text)
                self.assertEqual(response.json()["detail"]["error"], error)

        self.assertEqual(self.store.list().unwrap(), [])

    def test_non_integer_identifiers_are_rejected(self) -> None:
        response = self.client.get("/v1/users/abc")
        self.assertEqual(response.status_code, 422, response.text)

        response = self.client.post("/v1/users", json={"name": "Ana", "age": "old", "email": "ana@x.com"})
        self.assertEqual(response.status_code, 422, response.text)

    def test_non_integer_ages_are_rejected_before_the_store(self) -> None:
        for age in (True, "30", 30.5):
            with self.subTest(age=age):
                response = self.client.post(
                    "/v1/users", json={"name": "Ana", "age": age, "email": "ana@x.com"}
                )
                self.assertEqual(response.status_code, 422, response.text)

        self.assertEqual(self.store.list().unwrap(), [])

    def test_long_search_fragment_returns_empty_listing(self) -> None:
        self._create()

        response = self.client.get("/v1/users", params={"q": "x" * 101})

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json(), {"users": []})

    def test_missing_users_on_update_and_delete(self) -> None:
        update = self.client.put("/v1/users/7", json={"name": "Ana", "age": 30, "email": "ana@x.com"})
        self.assertEqual(update.status_code, 404, update.text)

        delete = self.client.delete("/v1/users/7")
        self.assertEqual(delete.status_code, 404, delete.text)

    def test_listing_is_sorted_and_searchable(self) -> None:
        self._create(name="Carla", email="carla@x.com")
        self._create(name="Ana Silva", email="ana@x.com")
        self._create(name="Mariana", email="mariana@x.com")

        listing = self.client.get("/v1/users")
        self.assertEqual(
            [user["name"] for user in listing.json()["users"]],
            ["Ana Silva", "Carla", "Mariana"],
        )

        search = self.client.get("/v1/users", params={"q": "ana"})
        self.assertEqual([user["name"] for user in search.json()["users"]], ["Mariana"])


class SQLiteBackedAPITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.settings = Settings(database_path=Path(self._tempdir.name) / "users.sqlite3")

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def test_records_persist_between_applications(self) -> None:
        with TestClient(create_application(settings=self.settings)) as client:
            created = client.post("/v1/users", json={"name": "Ana", "age": 30, "email": "ana@x.com"})
            self.assertEqual(created.status_code, 201, created.text)

        store = build_store(self.settings)
        self.assertEqual([user.email for user in store.list().unwrap()], ["ana@x.com"])

    def test_storage_failures_map_to_503(self) -> None:
        store = build_store(self.settings)
        self.settings.database_path.unlink()
        self.settings.database_path.mkdir()

        with TestClient(create_app(store=store)) as client:
            response = client.get("/v1/users")

        self.assertEqual(response.status_code, 503, response.text)
        self.assertEqual(response.json()["detail"]["error"], "storage_error")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
