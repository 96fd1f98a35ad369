import pytest

from sheet_timeclock.models.common import DocumentMetadata

from conftest import utc

SHEET_ID = "sheet-1"


@pytest.fixture
def worker(client, source, login_employee):
    source.documents[SHEET_ID] = DocumentMetadata(title="Timesheet", last_modified=utc(2024, 3, 1, 8))
    return login_employee()


def test_document_routes_require_login(client):
    assert client.get("/api/documents").status_code == 401
    assert client.post("/api/documents", json={"document_url": SHEET_ID}).status_code == 401


def test_track_list_and_remove_document(client, worker):
    added = client.post(
        "/api/documents", json={"document_url": f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit"},
    )
    assert added.status_code == 200
    assert added.json()["data"]["title"] == "Timesheet"
    assert added.json()["data"]["added_by"] == worker.email

    listed = client.get("/api/documents").json()["data"]
    assert [doc["id"] for doc in listed] == [SHEET_ID]

    assert client.delete(f"/api/documents/{SHEET_ID}").status_code == 200
    assert client.get("/api/documents").json()["data"] == []
    assert client.delete(f"/api/documents/{SHEET_ID}").status_code == 404


def test_track_document_errors(client, worker):
    invalid = client.post("/api/documents", json={"document_url": "https://example.com/nope"})
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "Invalid Google Sheet URL or ID"

    inaccessible = client.post("/api/documents", json={"document_url": "unknown-sheet"})
    assert inaccessible.status_code == 400
    assert inaccessible.json()["message"] == "Unable to access this Google Sheet"

    client.post("/api/documents", json={"document_url": SHEET_ID})
    duplicate = client.post("/api/documents", json={"document_url": SHEET_ID})
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "This sheet is already being tracked"


def test_document_status(client, source, worker):
    client.post("/api/documents", json={"document_url": SHEET_ID})

    unchanged = client.get(f"/api/documents/{SHEET_ID}/status").json()["data"]
    assert unchanged["has_changes"] is False

    source.documents[SHEET_ID] = DocumentMetadata(title="Timesheet", last_modified=utc(2024, 3, 1, 9))
    changed = client.get(f"/api/documents/{SHEET_ID}/status").json()["data"]
    assert changed["has_changes"] is True

    assert client.get("/api/documents/other/status").status_code == 404


def test_session_lifecycle(client, worker):
    client.post("/api/documents", json={"document_url": SHEET_ID})
    assert "data" not in client.get("/api/sessions/active").json()

    started = client.post("/api/sessions/start", json={"document_id": SHEET_ID})
    assert started.status_code == 200
    assert started.json()["data"]["document_title"] == "Timesheet"

    again = client.post("/api/sessions/start", json={"document_id": SHEET_ID})
    assert again.status_code == 400
    assert again.json()["message"] == "A work session is already active"

    active = client.get("/api/sessions/active").json()["data"]
    assert active["session_id"] == started.json()["data"]["session_id"]

    ended = client.post("/api/sessions/end").json()
    assert ended["data"]["recorded"] is False
    assert ended["message"] == "No significant activity to record"

    assert client.post("/api/sessions/end").status_code == 400


def test_session_needs_a_tracked_document(client, worker):
    response = client.post("/api/sessions/start", json={"document_id": "untracked"})

    assert response.status_code == 404
