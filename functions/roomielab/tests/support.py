import unittest
from typing import Optional

from fastapi.testclient import TestClient

from roomielab.app import create_app
from roomielab.db import InMemoryDbClient
from roomielab.dependencies import get_auth_client, get_db_client
from roomielab.firebase_constants import USERS_COLLECTION
from roomielab.identity import InMemoryAuthClient


class ApiTestCase(unittest.TestCase):
    """Base case wiring a TestClient to freshly reset in-memory backends."""

    def setUp(self):
        self.client = TestClient(create_app())
        self.db = get_db_client()
        self.auth = get_auth_client()
        assert isinstance(self.db, InMemoryDbClient)
        assert isinstance(self.auth, InMemoryAuthClient)
        self.db.reset()
        self.auth.reset()

    def make_user(
        self,
        email: str = "alice@example.com",
        display_name: str = "Alice",
        claims: Optional[dict] = None,
    ) -> tuple[str, dict]:
        """Register a user in both backends and return (uid, auth headers)."""
        uid = self.auth.create_user(email, "secret123", display_name)
        self.db.set(
            USERS_COLLECTION,
            uid,
            {
                "uid": uid,
                "email": email,
                "displayName": display_name,
                "profileImageUrl": None,
                "preferences": {},
                "createdAt": "2024-01-01T00:00:00+00:00",
                "updatedAt": "2024-01-01T00:00:00+00:00",
            },
        )
        token = self.auth.issue_token(uid, email, claims=claims)
        return uid, {"Authorization": f"Bearer {token}"}

    def create_project(self, headers: dict, **overrides) -> str:
        body = {
            "name": "Living room",
            "description": "Cozy living room makeover",
            "roomType": "living",
            "tags": ["cozy"],
        }
        body.update(overrides)
        response = self.client.post("/api/projects", json=body, headers=headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]["projectId"]
