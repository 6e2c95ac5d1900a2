"""
手工测试 API 测试
"""


def create_session(client, project_id="kanban", **extra):
    response = client.post("/api/manual/sessions", json={"project_id": project_id, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_list_checklists(client):
    """README.md 不计入；项目 ID 取第一个映射到该文件的别名"""
    response = client.get("/api/manual/checklists")

    assert response.status_code == 200
    assert response.json() == [{
        "project_id": "kanban",
        "name": "Kanban",
        "filename": "kanban.md",
        "item_count": 4,
        "category_count": 2,
    }]


def test_get_checklist_by_alias(client):
    response = client.get("/api/manual/checklists/kanban-board")

    assert response.status_code == 200
    data = response.json()
    assert data["categories"] == ["Auth", "Boards"]
    assert data["items"][2] == {"index": 2, "category": "Auth > Edge Cases", "title": "Login with bad password"}


def test_get_checklist_missing(client):
    response = client.get("/api/manual/checklists/grablist")

    assert response.status_code == 404
    assert response.json() == {"error": "Checklist not found for project"}


def test_get_checklist_invalid_id(client):
    assert client.get("/api/manual/checklists/..%2Fsecrets").status_code in (400, 404)
    assert client.get("/api/manual/checklists/bad.id").status_code == 400


def test_create_session(client):
    data = create_session(client, created_by="qa", notes="Firefox")

    assert data["session_id"].startswith("session-")
    assert data["status"] == "in_progress"
    assert data["total_items"] == 4
    assert data["created_by"] == "qa"
    assert [item["index"] for item in data["items"]] == [0, 1, 2, 3]
    assert all(item["status"] == "pending" for item in data["items"])


def test_create_session_requires_project(client):
    response = client.post("/api/manual/sessions", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid project ID"}


def test_create_session_without_checklist(client):
    response = client.post("/api/manual/sessions", json={"project_id": "grablist"})

    assert response.status_code == 404


def test_list_and_get_sessions(client):
    session = create_session(client)

    response = client.get("/api/manual/sessions", params={"project_id": "kanban"})
    assert response.status_code == 200
    assert [s["session_id"] for s in response.json()] == [session["session_id"]]
    assert "items" not in response.json()[0]

    response = client.get(f"/api/manual/sessions/{session['session_id']}")
    assert response.status_code == 200
    assert len(response.json()["items"]) == 4


def test_list_sessions_invalid_status(client):
    assert client.get("/api/manual/sessions", params={"status": "paused"}).status_code == 400


def test_get_session_not_found(client):
    response = client.get("/api/manual/sessions/session-missing")

    assert response.status_code == 404
    assert response.json() == {"error": "Session not found"}


def test_item_status_flow(client):
    session = create_session(client)
    first, second = session["items"][0], session["items"][1]

    response = client.patch(f"/api/manual/items/{first['id']}", json={"status": "passed"})
    assert response.status_code == 200
    assert response.json()["status"] == "passed"
    assert response.json()["tested_at"] is not None

    response = client.patch(f"/api/manual/items/{second['id']}", json={"status": "failed"})
    assert response.status_code == 400
    assert response.json() == {"error": "Error description required for failed items"}

    response = client.patch(
        f"/api/manual/items/{second['id']}",
        json={"status": "failed", "error_description": "Nothing happens"},
    )
    assert response.status_code == 200
    assert response.json()["error_description"] == "Nothing happens"

    detail = client.get(f"/api/manual/sessions/{session['session_id']}").json()
    assert (detail["passed_items"], detail["failed_items"], detail["skipped_items"]) == (1, 1, 0)


def test_item_invalid_status(client):
    session = create_session(client)

    response = client.patch(f"/api/manual/items/{session['items'][0]['id']}", json={"status": "done"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid status"}


def test_item_not_found(client):
    assert client.patch("/api/manual/items/9999", json={"status": "passed"}).status_code == 404
    assert client.delete("/api/manual/items/9999").status_code == 404


def test_custom_item_lifecycle(client):
    session = create_session(client)
    session_id = session["session_id"]

    response = client.post(f"/api/manual/sessions/{session_id}/items", json={"title": "Export CSV"})
    assert response.status_code == 201
    item = response.json()
    assert item["index"] == 4
    assert item["category"] == "Custom"
    assert item["is_custom"] is True

    response = client.delete(f"/api/manual/items/{item['id']}")
    assert response.status_code == 200
    assert response.json() == {"session_id": session_id, "deleted": True, "skipped": False}

    detail = client.get(f"/api/manual/sessions/{session_id}").json()
    assert detail["total_items"] == 4
    assert len(detail["items"]) == 4


def test_delete_checklist_item_skips(client):
    session = create_session(client)
    session_id = session["session_id"]
    item_id = session["items"][0]["id"]

    response = client.delete(f"/api/manual/items/{item_id}")

    assert response.status_code == 200
    assert response.json() == {"session_id": session_id, "deleted": False, "skipped": True}
    detail = client.get(f"/api/manual/sessions/{session_id}").json()
    assert detail["total_items"] == 4
    assert detail["skipped_items"] == 1
    assert detail["items"][0]["status"] == "skipped"


def test_add_item_requires_title(client):
    session = create_session(client)

    response = client.post(f"/api/manual/sessions/{session['session_id']}/items", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Title is required"}


def test_update_session(client):
    session_id = create_session(client)["session_id"]

    response = client.patch(f"/api/manual/sessions/{session_id}", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "No updates provided"}

    response = client.patch(f"/api/manual/sessions/{session_id}", json={"status": "completed"})
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["completed_at"] is not None

    response = client.patch(f"/api/manual/sessions/{session_id}", json={"status": "in_progress"})
    assert response.status_code == 400

    response = client.patch(f"/api/manual/sessions/{session_id}", json={"notes": "retro"})
    assert response.status_code == 200
    assert response.json()["notes"] == "retro"


def test_bug_report(client, fake_tracker):
    session = create_session(client)
    session_id = session["session_id"]
    for item in session["items"][:2]:
        client.patch(
            f"/api/manual/items/{item['id']}",
            json={"status": "failed", "error_description": "Broken"},
        )

    response = client.post(f"/api/manual/sessions/{session_id}/report")

    assert response.status_code == 200
    data = response.json()
    assert data["cards_created"] == 1
    assert data["cards"][0]["category"] == "Auth"
    assert data["cards"][0]["fail_count"] == 2
    assert data["cards"][0]["card_url"] == "https://tracker.test/card/card-1"
    assert len(fake_tracker.requests) == 1

    detail = client.get(f"/api/manual/sessions/{session_id}").json()
    assert detail["items"][0]["tracker_card_id"] == "card-1"


def test_bug_report_without_failures(client, fake_tracker):
    session_id = create_session(client)["session_id"]

    response = client.post(f"/api/manual/sessions/{session_id}/report")

    assert response.status_code == 200
    assert response.json() == {"message": "No failed items", "cards_created": 0, "cards": []}
    assert fake_tracker.requests == []


def test_bug_report_unknown_session(client, fake_tracker):
    assert client.post("/api/manual/sessions/session-missing/report").status_code == 404
