import unittest

from roomielab.firebase_constants import FURNITURE_COLLECTION, PROJECTS_COLLECTION
from roomielab.tests.support import ApiTestCase


class ProjectRouteTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner_id, self.owner = self.make_user()
        self.bob_id, self.bob = self.make_user("bob@example.com", "Bob")

    def test_create_and_get_project(self):
        project_id = self.create_project(self.owner, tags=["cozy", "<>"])
        response = self.client.get(f"/api/projects/{project_id}", headers=self.owner)
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["id"], project_id)
        self.assertEqual(data["userId"], self.owner_id)
        self.assertEqual(data["tags"], ["cozy"])
        self.assertEqual(data["collaborators"], [])
        self.assertEqual(data["items"], [])
        self.assertFalse(data["isPublic"])

    def test_short_name_is_rejected_without_writing(self):
        response = self.client.post(
            "/api/projects",
            json={"name": "ab", "description": "Cozy living room makeover"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["error"], "Validation failed")
        self.assertEqual([e["field"] for e in payload["errors"]], ["name"])
        self.assertEqual(self.db.query(PROJECTS_COLLECTION), [])

    def test_name_emptied_by_sanitizing_is_rejected_without_writing(self):
        response = self.client.post(
            "/api/projects",
            json={"name": "'''", "description": "Cozy living room makeover"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertEqual([e["field"] for e in errors], ["name"])
        self.assertEqual(errors[0]["message"], "Project name is required")
        self.assertEqual(self.db.query(PROJECTS_COLLECTION), [])

    def test_list_only_returns_own_projects(self):
        self.create_project(self.owner)
        self.create_project(self.bob, name="Bob's den")
        response = self.client.get("/api/projects", headers=self.owner)
        projects = response.json()["data"]
        self.assertEqual(len(projects), 1)
        self.assertEqual(projects[0]["userId"], self.owner_id)

    def test_update_is_owner_only(self):
        project_id = self.create_project(self.owner)
        response = self.client.put(
            f"/api/projects/{project_id}", json={"name": "Hijacked"}, headers=self.bob
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.put(
            f"/api/projects/{project_id}",
            json={"name": "Renamed room", "userId": self.bob_id},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 200)
        stored = self.db.get(PROJECTS_COLLECTION, project_id).data
        self.assertEqual(stored["name"], "Renamed room")
        self.assertEqual(stored["userId"], self.owner_id)

    def test_missing_project(self):
        response = self.client.get("/api/projects/nope", headers=self.owner)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Project not found")

    def test_delete_project(self):
        project_id = self.create_project(self.owner)
        self.assertEqual(
            self.client.delete(f"/api/projects/{project_id}", headers=self.bob).status_code,
            403,
        )
        response = self.client.delete(f"/api/projects/{project_id}", headers=self.owner)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.db.get(PROJECTS_COLLECTION, project_id))

    def test_items(self):
        project_id = self.create_project(self.owner)
        self.db.set(FURNITURE_COLLECTION, "sofa", {"name": "Sofa", "price": 300})
        for _ in range(2):
            response = self.client.post(
                f"/api/projects/{project_id}/items",
                json={"itemId": "sofa"},
                headers=self.owner,
            )
            self.assertEqual(response.status_code, 200)

        response = self.client.get(f"/api/projects/{project_id}/items", headers=self.owner)
        self.assertEqual(response.json()["data"], [{"id": "sofa", "name": "Sofa", "price": 300}])

        response = self.client.delete(
            f"/api/projects/{project_id}/items/sofa", headers=self.owner
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.get(PROJECTS_COLLECTION, project_id).data["items"], [])

    def test_share_by_email_grants_read_access(self):
        project_id = self.create_project(self.owner)
        self.assertEqual(
            self.client.get(f"/api/projects/{project_id}", headers=self.bob).status_code,
            403,
        )
        response = self.client.post(
            f"/api/projects/{project_id}/share",
            json={"email": "Bob@Example.com"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(
            self.client.get(f"/api/projects/{project_id}", headers=self.bob).status_code,
            200,
        )
        # Collaborators still cannot change the project itself.
        response = self.client.put(
            f"/api/projects/{project_id}", json={"name": "Mine now"}, headers=self.bob
        )
        self.assertEqual(response.status_code, 403)

    def test_share_with_unknown_email(self):
        project_id = self.create_project(self.owner)
        response = self.client.post(
            f"/api/projects/{project_id}/share",
            json={"email": "nobody@example.com"},
            headers=self.owner,
        )
        self.assertEqual(response.status_code, 404)

    def test_collaborator_lifecycle(self):
        project_id = self.create_project(self.owner)
        url = f"/api/projects/{project_id}/collaborators"

        response = self.client.post(
            url, json={"userId": self.bob_id, "role": "editor"}, headers=self.owner
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"], {"userId": self.bob_id, "role": "editor"})

        response = self.client.post(url, json={"userId": self.bob_id}, headers=self.owner)
        self.assertEqual(response.status_code, 409)

        response = self.client.get(url, headers=self.bob)
        collaborators = response.json()["data"]
        self.assertEqual(len(collaborators), 1)
        self.assertEqual(collaborators[0]["uid"], self.bob_id)
        self.assertEqual(collaborators[0]["role"], "editor")

        response = self.client.put(
            f"{url}/{self.bob_id}", json={"role": "viewer"}, headers=self.owner
        )
        self.assertEqual(response.status_code, 200)
        roles = self.db.get(PROJECTS_COLLECTION, project_id).data["collaboratorRoles"]
        self.assertEqual(roles, {self.bob_id: "viewer"})

        response = self.client.delete(f"{url}/{self.bob_id}", headers=self.owner)
        self.assertEqual(response.status_code, 200)
        stored = self.db.get(PROJECTS_COLLECTION, project_id).data
        self.assertEqual(stored["collaborators"], [])
        self.assertEqual(stored["collaboratorRoles"], {})

    def test_collaborator_errors(self):
        project_id = self.create_project(self.owner)
        url = f"/api/projects/{project_id}/collaborators"

        response = self.client.post(url, json={"userId": self.owner_id}, headers=self.owner)
        self.assertEqual(response.status_code, 400)

        response = self.client.post(url, json={"userId": "ghost"}, headers=self.owner)
        self.assertEqual(response.status_code, 404)

        response = self.client.post(url, json={"userId": self.owner_id}, headers=self.bob)
        self.assertEqual(response.status_code, 403)

        response = self.client.put(f"{url}/ghost", json={"role": "admin"}, headers=self.owner)
        self.assertEqual(response.status_code, 404)

        response = self.client.put(
            f"{url}/{self.bob_id}", json={"role": "superuser"}, headers=self.owner
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
