import unittest
from unittest import mock

from firebase_admin import auth as firebase_auth

from roomielab.auth import extract_bearer_token
from roomielab.errors import ApiError
from roomielab.firebase_constants import PROJECTS_COLLECTION
from roomielab.identity import FirebaseAuthClient, TokenVerificationError
from roomielab.tests.support import ApiTestCase

PROJECT_BODY = {"name": "Studio", "description": "Small studio apartment"}


class ExtractBearerTokenTests(unittest.TestCase):
    def assert_rejected(self, header, message):
        with self.assertRaises(ApiError) as ctx:
            extract_bearer_token(header)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.message, message)

    def test_missing_header(self):
        self.assert_rejected(None, "No token provided")

    def test_wrong_scheme(self):
        self.assert_rejected("Basic abc", "No token provided")

    def test_empty_token(self):
        self.assert_rejected("Bearer ", "Invalid token format")
        self.assert_rejected("Bearer    ", "Invalid token format")

    def test_extracts_token(self):
        self.assertEqual(extract_bearer_token("Bearer abc.def"), "abc.def")


class FirebaseAuthClientTests(unittest.TestCase):
    @mock.patch("roomielab.identity.firebase_auth.verify_id_token")
    def test_revoked_token_is_rejected(self, verify):
        verify.side_effect = firebase_auth.RevokedIdTokenError("Token revoked")
        client = FirebaseAuthClient(app=mock.sentinel.app)
        with self.assertRaises(TokenVerificationError):
            client.verify_id_token("revoked-token")
        verify.assert_called_once_with(
            "revoked-token", app=mock.sentinel.app, check_revoked=True
        )

    @mock.patch("roomielab.identity.firebase_auth.verify_id_token")
    def test_valid_token(self, verify):
        verify.return_value = {"uid": "u1", "email": "a@example.com", "admin": True}
        identity = FirebaseAuthClient(app=mock.sentinel.app).verify_id_token("t")
        self.assertEqual(identity.uid, "u1")
        self.assertTrue(identity.is_admin)


class AuthGateTests(ApiTestCase):
    def test_no_token(self):
        response = self.client.post("/api/projects", json=PROJECT_BODY)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.json(), {"success": False, "error": "No token provided"}
        )

    def test_unknown_token(self):
        response = self.client.get(
            "/api/projects", headers={"Authorization": "Bearer not-a-token"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid or expired token")

    def test_expired_token_has_no_side_effect(self):
        uid, _ = self.make_user()
        token = self.auth.issue_token(uid, "alice@example.com", expires_in=-1)
        with self.assertLogs("roomielab.auth", level="WARNING"):
            response = self.client.post(
                "/api/projects",
                json=PROJECT_BODY,
                headers={"Authorization": f"Bearer {token}"},
            )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid or expired token")
        self.assertEqual(self.db.query(PROJECTS_COLLECTION), [])

    def test_valid_token(self):
        uid, headers = self.make_user()
        response = self.client.get("/api/auth/verify-token", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["data"], {"uid": uid, "email": "alice@example.com"}
        )

    def test_admin_claim_required(self):
        _, headers = self.make_user()
        response = self.client.post(
            "/api/furniture",
            json={
                "name": "Armchair",
                "description": "A comfortable armchair",
                "category": "seating",
                "price": 120,
            },
            headers=headers,
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "Admin privileges required")


if __name__ == "__main__":
    unittest.main()
