from __future__ import annotations

import importlib
import sys
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from userapi.application import build_store, create_application, create_serverless_app
from userapi.config import Settings
from userapi.database import Database
from userapi.memory import MemoryStore
from userapi.store import ConfigError, StoreConnectionError


class BuildStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tempdir.name)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def test_memory_store_is_seeded(self) -> None:
        store = build_store(Settings(store="memory"))
        self.assertIsInstance(store, MemoryStore)
        self.assertEqual(len(store.list_users()), 3)

    def test_memory_store_without_seed(self) -> None:
        store = build_store(Settings(store="memory"), seed=False)
        self.assertEqual(store.list_users(), [])

    def test_database_store_is_initialised_and_seeded(self) -> None:
        store = build_store(Settings(database_url=str(self.root / "users.sqlite3")))
        self.assertIsInstance(store, Database)
        self.assertEqual(store.connectivity(), "ok")
        self.assertEqual([user.name for user in store.list_users()], ["John Doe", "Jane Smith", "Bob Johnson"])
        store.close()

    def test_strict_mode_propagates_missing_configuration(self) -> None:
        with self.assertRaises(ConfigError):
            build_store(Settings(database_url=None))

    def test_strict_mode_propagates_connection_failures(self) -> None:
        with self.assertRaises(StoreConnectionError):
            build_store(Settings(database_url=str(self.root / "missing" / "users.sqlite3")))

    def test_lenient_mode_returns_disconnected_database(self) -> None:
        store = build_store(Settings(database_url=None), strict=False)
        self.assertIsInstance(store, Database)
        self.assertEqual(store.connectivity(), "disconnected")


class ServerlessAppTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tempdir.name)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def test_database_is_connected_lazily(self) -> None:
        data_dir = self.root / "data"
        settings = Settings(database_url=str(data_dir / "users.sqlite3"), static_dir=self.root / "public")
        app = create_serverless_app(settings)

        with TestClient(app) as client:
            failed = client.get("/api/v1/users")
            self.assertEqual(failed.status_code, 500)
            self.assertEqual(failed.json(), {"success": False, "message": "Database connection failed"})
            self.assertEqual(failed.headers["access-control-allow-origin"], "*")

            health = client.get("/api/health")
            self.assertEqual(health.status_code, 200)
            self.assertEqual(health.json()["data"]["database"], "disconnected")

            data_dir.mkdir()

            recovered = client.get("/api/v1/users")
            self.assertEqual(recovered.status_code, 200, recovered.text)
            self.assertEqual(recovered.json()["data"], [])

            created = client.post("/api/v1/users", json={"name": "Ada", "email": "ada@example.com"})
            self.assertEqual(created.status_code, 201)
            self.assertEqual(client.get("/api/health").json()["data"]["database"], "ok")

        app.state.store.close()

    def test_missing_configuration_does_not_block_health(self) -> None:
        app = create_serverless_app(Settings(database_url=None))

        with TestClient(app) as client:
            self.assertEqual(client.post("/api/users", json={"name": "A", "email": "a@x.com"}).status_code, 500)
            self.assertEqual(client.get("/api/v1/health").status_code, 200)

    def test_standalone_application_uses_settings(self) -> None:
        public = self.root / "public"
        public.mkdir()
        (public / "index.html").write_text("<p>hello</p>", encoding="utf-8")
        app = create_application(Settings(store="memory", static_dir=public))

        with TestClient(app) as client:
            self.assertIn("hello", client.get("/").text)
            self.assertEqual(len(client.get("/api/v1/users").json()["data"]), 3)


def test_serverless_module_exposes_app(monkeypatch) -> None:
    monkeypatch.setenv("USER_STORE", "memory")
    monkeypatch.delenv("PORT", raising=False)
    sys.modules.pop("userapi.serverless", None)
    try:
        module = importlib.import_module("userapi.serverless")
        with TestClient(module.app) as client:
            response = client.get("/api/v1/users")
        assert response.status_code == 200
        assert len(response.json()["data"]) == 3
    finally:
        sys.modules.pop("userapi.serverless", None)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
