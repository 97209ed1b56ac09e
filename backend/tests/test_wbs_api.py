import pytest
from fastapi import Depends
from sqlalchemy.orm import Session

from pcm.core.config import settings
from pcm.core.deps import get_db, get_wbs_engine
from pcm.crud.permissions import WBS_CREATE, WBS_DELETE, WBS_READ, WBS_UPDATE
from pcm.services.wbs.engine import WBSEngine

ALL_WBS = [WBS_READ, WBS_CREATE, WBS_UPDATE, WBS_DELETE]


@pytest.fixture
def editor(make_user, project):
    return make_user(ALL_WBS, login="editor")


@pytest.fixture
def h(auth_headers, editor):
    return auth_headers(editor)


def _create(client, h, project_id=100, **body):
    r = client.post(f"/projects/{project_id}/wbs", json=body, headers=h)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def analysis(client, h):
    root = _create(client, h, code="1.0", name="Analysis")
    req = _create(client, h, parent_id=root["id"], code="1.1", name="Requirements")
    design = _create(client, h, parent_id=root["id"], code="1.2", name="Design")
    return root, req, design


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_requires_token(client, project):
    assert client.get("/projects/100/wbs").status_code == 401
    bad = {"Authorization": "Bearer not-a-token"}
    assert client.get("/projects/100/wbs", headers=bad).status_code == 401


def test_requires_permission(client, project, make_user, auth_headers):
    reader = make_user([WBS_READ])
    r = client.post("/projects/100/wbs", json={"code": "1.0", "name": "Analysis"}, headers=auth_headers(reader))
    assert r.status_code == 403
    assert r.json()["code"] == "PERMISSION_DENIED"


def test_project_scoped_role(client, project, other_project, make_user, auth_headers):
    scoped = make_user([WBS_READ], project_id=project.id)
    headers = auth_headers(scoped)
    assert client.get("/projects/100/wbs", headers=headers).status_code == 200
    assert client.get("/projects/101/wbs", headers=headers).status_code == 403


def test_tree_scenario(client, h, analysis):
    root, req, design = analysis
    assert (root["level_number"], root["sort_order"]) == (1, 0)
    assert (req["level_number"], req["sort_order"]) == (2, 0)
    assert (design["level_number"], design["sort_order"]) == (2, 1)

    tree = client.get("/projects/100/wbs", headers=h).json()
    assert len(tree) == 1
    assert [c["code"] for c in tree[0]["children"]] == ["1.1", "1.2"]
    assert tree[0]["children"][0]["children"] == []

    flat = client.get("/projects/100/wbs/flat", headers=h).json()
    assert sorted(i["code"] for i in flat) == ["1.0", "1.1", "1.2"]


def test_empty_project_tree(client, h):
    r = client.get("/projects/100/wbs", headers=h)
    assert r.status_code == 200
    assert r.json() == []


def test_bad_project_id_is_400(client, h):
    r = client.get("/projects/abc/wbs", headers=h)
    assert r.status_code == 400


@pytest.mark.parametrize(
    "body",
    [
        {"code": "1.0"},
        {"name": "Analysis"},
        {"code": "", "name": "Analysis"},
    ],
)
def test_create_validation(client, h, body):
    r = client.post("/projects/100/wbs", json=body, headers=h)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_create_unknown_parent_is_404(client, h):
    r = client.post("/projects/100/wbs", json={"parent_id": 999, "code": "1.1", "name": "x"}, headers=h)
    assert r.status_code == 404
    assert r.json()["code"] == "PARENT_NOT_FOUND"


def test_get_and_update_item(client, h, analysis):
    _, req, _ = analysis
    assert client.get(f"/wbs/items/{req['id']}", headers=h).json()["name"] == "Requirements"

    r = client.put(f"/wbs/items/{req['id']}", json={"name": "Requirements analysis"}, headers=h)
    assert r.status_code == 200
    assert r.json()["name"] == "Requirements analysis"
    assert r.json()["code"] == "1.1"

    assert client.get("/wbs/items/9999", headers=h).status_code == 404
    assert client.put("/wbs/items/9999", json={"name": "x"}, headers=h).status_code == 404


def test_delete_requires_reason(client, h, analysis):
    _, req, _ = analysis
    assert client.request("DELETE", f"/wbs/items/{req['id']}", headers=h).status_code == 400
    r = client.request("DELETE", f"/wbs/items/{req['id']}", json={"change_reason": ""}, headers=h)
    assert r.status_code == 400


def test_delete_leaf_and_conflict(client, h, analysis):
    root, req, design = analysis
    r = client.request("DELETE", f"/wbs/items/{root['id']}", json={"change_reason": "cleanup"}, headers=h)
    assert r.status_code == 409
    assert r.json()["code"] == "ITEM_HAS_CHILDREN"

    r = client.request("DELETE", f"/wbs/items/{req['id']}", json={"change_reason": "merged"}, headers=h)
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert client.get(f"/wbs/items/{design['id']}", headers=h).json()["sort_order"] == 0

    r = client.request("DELETE", f"/wbs/items/{req['id']}", json={"change_reason": "again"}, headers=h)
    assert r.status_code == 404


@pytest.mark.parametrize("body", [{}, {"new_sort_order": "1"}, {"new_sort_order": -1}, {"new_sort_order": 1.5}])
def test_reorder_validation(client, h, analysis, body):
    r = client.post(f"/wbs/items/{analysis[1]['id']}/reorder", json=body, headers=h)
    assert r.status_code == 400


def test_reorder(client, h, analysis):
    root, req, design = analysis
    r = client.post(f"/wbs/items/{req['id']}/reorder", json={"new_sort_order": 5}, headers=h)
    assert r.status_code == 200
    body = r.json()
    assert (body["parent_id"], body["sort_order"], body["level_number"]) == (root["id"], 5, 2)
    assert client.get(f"/wbs/items/{design['id']}", headers=h).json()["sort_order"] == 0

    r = client.post(f"/wbs/items/{design['id']}/reorder", json={"new_parent_id": None, "new_sort_order": 0}, headers=h)
    assert (r.json()["parent_id"], r.json()["level_number"]) == (None, 1)

    r = client.post(f"/wbs/items/{root['id']}/reorder", json={"new_parent_id": req["id"], "new_sort_order": 0}, headers=h)
    assert r.status_code == 400
    assert r.json()["code"] == "WBS_CYCLE"

    assert client.post("/wbs/items/9999/reorder", json={"new_sort_order": 0}, headers=h).status_code == 404


def test_change_history(client, h, analysis):
    _, req, _ = analysis
    client.put(f"/wbs/items/{req['id']}", json={"name": "Reqs", "change_reason": "shorter"}, headers=h)

    item_changes = client.get(f"/wbs/items/{req['id']}/changes", headers=h).json()
    assert [c["change_type"] for c in item_changes] == ["UPDATE", "CREATE"]
    assert item_changes[0]["old_value"]["name"] == "Requirements"
    assert item_changes[0]["new_value"]["name"] == "Reqs"
    assert item_changes[0]["change_reason"] == "shorter"

    project_changes = client.get("/projects/100/wbs/changes?limit=2", headers=h).json()
    assert len(project_changes) == 2
    assert project_changes[0]["change_type"] == "UPDATE"


def test_change_log_failure_header(client, app, h, project):
    def broken_sink(db, **kwargs):
        raise RuntimeError("audit table unavailable")

    def _engine(db: Session = Depends(get_db)):
        return WBSEngine(db, change_log=broken_sink)

    app.dependency_overrides[get_wbs_engine] = _engine
    r = client.post("/projects/100/wbs", json={"code": "1.0", "name": "Analysis"}, headers=h)
    assert r.status_code == 201
    assert r.headers["X-Change-Log"] == "failed"

    del app.dependency_overrides[get_wbs_engine]
    tree = client.get("/projects/100/wbs", headers=h).json()
    assert [n["code"] for n in tree] == ["1.0"]
    assert client.get(f"/wbs/items/{r.json()['id']}/changes", headers=h).json() == []


def test_export_formats(client, h, analysis, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "EXPORT_DIR", str(tmp_path))

    r = client.get("/projects/100/wbs/export", headers=h)
    assert r.status_code == 200
    assert r.json()[0]["children"][1]["code"] == "1.2"
    assert "id" not in r.json()[0]

    r = client.get("/projects/100/wbs/export?format=xlsx&include_ids=true", headers=h)
    assert r.status_code == 200
    assert r.content[:2] == b"PK"

    r = client.get("/projects/100/wbs/export?format=pdf", headers=h)
    assert r.status_code == 200
    assert r.content.startswith(b"%PDF")
    assert list(tmp_path.iterdir()) == []

    assert client.get("/projects/100/wbs/export?format=csv", headers=h).status_code == 400


def test_login_and_me(client, make_user):
    u = make_user([WBS_READ], login="planner", password="s3cret-pass")
    r = client.post("/auth/login", json={"login": "planner", "password": "wrong-pass"})
    assert r.status_code == 401

    r = client.post("/auth/login", json={"login": "planner", "password": "s3cret-pass"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["id"] == u.id
    assert me["permissions"] == [WBS_READ]


def test_item_routes_follow_project_scope(client, h, analysis, other_project, make_user, auth_headers):
    _, req, design = analysis
    outsider = auth_headers(make_user(ALL_WBS, project_id=other_project.id))
    url = f"/wbs/items/{req['id']}"

    assert client.get(url, headers=outsider).status_code == 403
    assert client.put(url, json={"name": "renamed"}, headers=outsider).status_code == 403
    assert client.post(f"{url}/reorder", json={"new_sort_order": 3}, headers=outsider).status_code == 403
    assert client.get(f"{url}/changes", headers=outsider).status_code == 403
    r = client.request("DELETE", url, json={"change_reason": "gone"}, headers=outsider)
    assert r.status_code == 403

    item = client.get(url, headers=h).json()
    assert (item["name"], item["sort_order"]) == ("Requirements", 0)

    theirs = _create(client, outsider, project_id=other_project.id, code="A", name="Site prep")
    assert client.get(f"/wbs/items/{theirs['id']}", headers=outsider).status_code == 200
    r = client.put(f"/wbs/items/{theirs['id']}", json={"name": "Site preparation"}, headers=outsider)
    assert r.status_code == 200


def test_item_routes_without_any_grant(client, analysis, make_user, auth_headers):
    nobody = auth_headers(make_user())
    assert client.get(f"/wbs/items/{analysis[1]['id']}", headers=nobody).status_code == 403
    # no grant anywhere: refused before the item is looked up
    assert client.get("/wbs/items/9999", headers=nobody).status_code == 403


def test_deleted_item_history_stays_scoped(client, h, analysis, project, other_project, make_user, auth_headers):
    _, req, _ = analysis
    client.request("DELETE", f"/wbs/items/{req['id']}", json={"change_reason": "merged"}, headers=h)

    member = auth_headers(make_user([WBS_READ], project_id=project.id))
    outsider = auth_headers(make_user([WBS_READ], project_id=other_project.id))
    changes = client.get(f"/wbs/items/{req['id']}/changes", headers=member)
    assert changes.status_code == 200
    assert [c["change_type"] for c in changes.json()] == ["DELETE", "CREATE"]
    assert client.get(f"/wbs/items/{req['id']}/changes", headers=outsider).status_code == 403
