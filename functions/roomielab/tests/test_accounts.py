import unittest

from roomielab.accounts import delete_user_data
from roomielab.db import InMemoryDbClient
from roomielab.firebase_constants import (
    DESIGNS_COLLECTION,
    PROJECTS_COLLECTION,
    USERS_COLLECTION,
    favorites_path,
    recently_viewed_path,
)
from roomielab.identity import InMemoryAuthClient


class FlakyDbClient(InMemoryDbClient):
    def __init__(self, failing_id):
        super().__init__()
        self.failing_id = failing_id

    def delete(self, collection, doc_id):
        if doc_id == self.failing_id:
            raise RuntimeError("delete failed")
        super().delete(collection, doc_id)


class DeleteUserDataTests(unittest.TestCase):
    def seed(self, db, auth):
        uid = auth.create_user("alice@example.com", "secret123", "Alice")
        db.set(USERS_COLLECTION, uid, {"uid": uid})
        for i in range(2):
            db.set(PROJECTS_COLLECTION, f"p{i}", {"userId": uid})
        for i in range(3):
            db.set(DESIGNS_COLLECTION, f"d{i}", {"userId": uid})
        db.set(DESIGNS_COLLECTION, "other", {"userId": "someone-else"})
        db.set(favorites_path(uid), "sofa", {"itemId": "sofa"})
        db.set(recently_viewed_path(uid), "lamp", {"itemId": "lamp"})
        return uid

    def test_deletes_every_phase(self):
        db, auth = InMemoryDbClient(), InMemoryAuthClient()
        uid = self.seed(db, auth)

        deleted = delete_user_data(db, auth, uid, max_workers=2)

        self.assertEqual(
            deleted,
            {
                PROJECTS_COLLECTION: 2,
                DESIGNS_COLLECTION: 3,
                favorites_path(uid): 1,
                recently_viewed_path(uid): 1,
            },
        )
        self.assertEqual(db.count(PROJECTS_COLLECTION), 0)
        self.assertEqual(db.count(DESIGNS_COLLECTION), 1)
        self.assertIsNone(db.get(USERS_COLLECTION, uid))
        self.assertEqual(auth.users, {})

    def test_failure_is_logged_and_raised_without_rollback(self):
        db, auth = FlakyDbClient("d1"), InMemoryAuthClient()
        uid = self.seed(db, auth)

        with self.assertLogs("roomielab.accounts", level="ERROR") as logs:
            with self.assertRaises(RuntimeError):
                delete_user_data(db, auth, uid)

        self.assertIn("designs/d1", logs.output[0])
        # Projects went in the first phase and stay deleted.
        self.assertEqual(db.count(PROJECTS_COLLECTION), 0)
        self.assertEqual(db.count(DESIGNS_COLLECTION), 2)
        self.assertIsNotNone(db.get(USERS_COLLECTION, uid))
        self.assertIn(uid, auth.users)


if __name__ == "__main__":
    unittest.main()
