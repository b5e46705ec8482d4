import unittest
from unittest import mock
from urllib.parse import parse_qs, urlparse

from roomielab.config import Settings
from roomielab.firebase_constants import USERS_COLLECTION
from roomielab.tests.support import ApiTestCase

SIGNUP_BODY = {
    "email": "Carol@Example.com",
    "password": "hunter22",
    "displayName": "Carol",
}


class AuthRouteTests(ApiTestCase):
    def test_signup_creates_identity_and_profile(self):
        response = self.client.post("/api/auth/signup", json=SIGNUP_BODY)
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["email"], "carol@example.com")

        stored = self.db.get(USERS_COLLECTION, data["uid"]).data
        self.assertEqual(stored["displayName"], "Carol")
        self.assertEqual(stored["preferences"], {})
        self.assertIsNone(stored["profileImageUrl"])
        self.assertEqual(self.auth.users[data["uid"]].password, "hunter22")

    def test_signup_duplicate_email(self):
        self.client.post("/api/auth/signup", json=SIGNUP_BODY)
        response = self.client.post("/api/auth/signup", json=SIGNUP_BODY)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "Email already in use")

    def test_signup_validation(self):
        response = self.client.post(
            "/api/auth/signup", json={"email": "bad", "password": "x"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(len(response.json()["errors"]), 3)
        self.assertEqual(self.auth.users, {})

    def test_login_records_last_login(self):
        uid, _ = self.make_user()
        response = self.client.post("/api/auth/login", json={"uid": uid})
        self.assertEqual(response.status_code, 200)
        self.assertIn("lastLogin", self.db.get(USERS_COLLECTION, uid).data)

        response = self.client.post("/api/auth/login", json={"uid": "ghost"})
        self.assertEqual(response.status_code, 404)

    def test_logout(self):
        response = self.client.post("/api/auth/logout")
        self.assertEqual(response.json()["message"], "Logged out successfully")

    def test_forgot_and_reset_password(self):
        uid, _ = self.make_user()
        response = self.client.post(
            "/api/auth/forgot-password", json={"email": "alice@example.com"}
        )
        self.assertEqual(response.status_code, 200)
        link = response.json()["data"]["link"]
        code = parse_qs(urlparse(link).query)["oobCode"][0]

        response = self.client.post(
            "/api/auth/reset-password",
            json={"oobCode": code, "newPassword": "brand-new"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.auth.users[uid].password, "brand-new")

        response = self.client.post(
            "/api/auth/reset-password",
            json={"oobCode": code, "newPassword": "brand-new"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid or expired reset code")

    def test_forgot_password_hides_link_in_production(self):
        self.make_user()
        with mock.patch(
            "roomielab.routes.auth.get_settings",
            return_value=Settings(environment="production"),
        ):
            response = self.client.post(
                "/api/auth/forgot-password", json={"email": "alice@example.com"}
            )
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["data"])

    def test_change_password(self):
        uid, headers = self.make_user()
        response = self.client.post(
            "/api/auth/change-password", json={"newPassword": "short"}, headers=headers
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/api/auth/change-password",
            json={"newPassword": "longer-secret"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.auth.users[uid].password, "longer-secret")

    def test_delete_account_route(self):
        uid, headers = self.make_user()
        response = self.client.delete("/api/auth/account", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertNotIn(uid, self.auth.users)


if __name__ == "__main__":
    unittest.main()
