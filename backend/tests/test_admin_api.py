import pytest

from pcm.crud.permissions import ADMIN_ROLES, ADMIN_USERS, PROJECT_READ, PROJECT_WRITE, WBS_READ


@pytest.fixture
def admin_h(make_user, auth_headers):
    return auth_headers(make_user([ADMIN_USERS, ADMIN_ROLES, PROJECT_READ, PROJECT_WRITE], login="root"))


def test_projects_crud(client, admin_h, project):
    r = client.post("/projects", json={"code": "PRJ-200", "name": "Substation"}, headers=admin_h)
    assert r.status_code == 201
    pid = r.json()["id"]

    assert client.post("/projects", json={"code": "PRJ-200", "name": "Dup"}, headers=admin_h).status_code == 409

    r = client.put(f"/projects/{pid}", json={"name": "Substation B", "description": "phase 2"}, headers=admin_h)
    assert r.status_code == 200
    assert (r.json()["code"], r.json()["name"], r.json()["description"]) == ("PRJ-200", "Substation B", "phase 2")

    assert client.put("/projects/9999", json={"name": "x"}, headers=admin_h).status_code == 404
    codes = [p["code"] for p in client.get("/projects", headers=admin_h).json()]
    assert codes == ["PRJ-100", "PRJ-200"]


def test_projects_listing_follows_role_scope(client, make_user, auth_headers, project, other_project):
    scoped = make_user([PROJECT_READ], project_id=other_project.id)
    r = client.get("/projects", headers=auth_headers(scoped))
    assert [p["code"] for p in r.json()] == ["PRJ-101"]


def test_roles_and_assignment(client, admin_h, project, make_user, auth_headers):
    r = client.post("/admin/roles", json={"name": "wbs-viewers", "permissions": [WBS_READ]}, headers=admin_h)
    assert r.status_code == 201
    role = r.json()
    assert role["permissions"] == [WBS_READ]
    assert client.post("/admin/roles", json={"name": "wbs-viewers"}, headers=admin_h).status_code == 409

    r = client.post("/admin/users", json={"login": "auditor", "password": "secret123"}, headers=admin_h)
    assert r.status_code == 201
    uid = r.json()["id"]
    assert client.post("/admin/users", json={"login": "auditor", "password": "secret123"}, headers=admin_h).status_code == 409

    r = client.post(f"/admin/users/{uid}/roles", json={"role_id": role["id"], "project_id": project.id}, headers=admin_h)
    assert r.status_code == 201
    assert r.json()["project_id"] == project.id
    assert client.post(f"/admin/users/{uid}/roles", json={"role_id": 9999}, headers=admin_h).status_code == 404

    token = client.post("/auth/login", json={"login": "auditor", "password": "secret123"}).json()["access_token"]
    auditor = {"Authorization": f"Bearer {token}"}
    assert client.get("/projects/100/wbs", headers=auditor).status_code == 200
    assert client.get("/auth/me?project_id=100", headers=auditor).json()["permissions"] == [WBS_READ]
    assert client.get("/auth/me?project_id=101", headers=auditor).json()["permissions"] == []

    r = client.put(f"/admin/roles/{role['id']}/permissions", json={"permissions": []}, headers=admin_h)
    assert r.json()["permissions"] == []
    assert client.get("/projects/100/wbs", headers=auditor).status_code == 403


def test_deactivated_user_is_locked_out(client, admin_h, make_user, auth_headers, project):
    u = make_user([WBS_READ], login="leaver")
    h = auth_headers(u)
    assert client.get("/projects/100/wbs", headers=h).status_code == 200

    r = client.patch(f"/admin/users/{u.id}", json={"is_active": False}, headers=admin_h)
    assert r.status_code == 200
    assert r.json()["is_active"] is False
    assert client.get("/projects/100/wbs", headers=h).status_code == 401
    assert client.post("/auth/login", json={"login": "leaver", "password": "secret123"}).status_code == 401


def test_admin_routes_need_admin(client, make_user, auth_headers):
    h = auth_headers(make_user([WBS_READ]))
    assert client.get("/admin/users", headers=h).status_code == 403
    assert client.get("/admin/roles", headers=h).status_code == 403
