from datetime import timedelta

import pytest

from sheet_timeclock.main import app
from sheet_timeclock.models.common import DocumentMetadata
from sheet_timeclock.services.employee_service import find_by_email

from conftest import utc

NEW_EMPLOYEE = {"name": "Petr Svoboda", "email": "petr@example.com", "password": "pw-123", "hourly_rate": 250}


@pytest.fixture
def admin_client(client, login_admin):
    login_admin()
    return client


def test_employee_routes_require_login(client):
    for method, path in [
        ("get", "/api/employees"),
        ("post", "/api/employees"),
        ("delete", "/api/employees/x"),
    ]:
        response = getattr(client, method)(path)
        assert response.status_code == 401, path


def test_employee_routes_require_admin(client, login_employee):
    login_employee()

    response = client.get("/api/employees")

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Admin access required"}


def test_add_and_list_employees(admin_client):
    created = admin_client.post("/api/employees", json=NEW_EMPLOYEE)

    assert created.status_code == 200
    assert created.json()["data"]["email"] == "petr@example.com"

    employees = admin_client.get("/api/employees").json()["data"]
    assert {emp["email"] for emp in employees} == {"admin@example.com", "petr@example.com"}
    for emp in employees:
        assert "password_hash" not in emp
        assert "access_token" not in emp


def test_duplicate_employee(admin_client):
    admin_client.post("/api/employees", json=NEW_EMPLOYEE)

    response = admin_client.post("/api/employees", json={**NEW_EMPLOYEE, "name": "Other"})

    assert response.status_code == 400
    assert response.json()["message"] == "Employee with this email already exists"
    assert len(admin_client.get("/api/employees").json()["data"]) == 2


@pytest.mark.parametrize("payload", [
    {"name": "X", "email": "x@example.com", "password": "pw"},
    {**NEW_EMPLOYEE, "hourly_rate": 0},
    {**NEW_EMPLOYEE, "email": "not-an-email"},
])
def test_invalid_employee_payload(admin_client, payload):
    response = admin_client.post("/api/employees", json=payload)

    body = response.json()
    assert response.status_code == 400
    assert body["success"] is False
    assert body["errors"]


def test_admin_account_cannot_be_deleted(admin_client, store):
    admin = find_by_email(store, "admin@example.com")

    response = admin_client.delete(f"/api/employees/{admin.id}")

    assert response.status_code == 403
    assert response.json()["message"] == "Cannot delete admin account"


def test_delete_employee(admin_client, store):
    employee_id = admin_client.post("/api/employees", json=NEW_EMPLOYEE).json()["data"]["id"]

    assert admin_client.delete(f"/api/employees/{employee_id}").status_code == 200
    assert find_by_email(store, NEW_EMPLOYEE["email"]) is None
    assert admin_client.delete(f"/api/employees/{employee_id}").status_code == 404


def test_reset_credential(admin_client):
    employee_id = admin_client.post("/api/employees", json=NEW_EMPLOYEE).json()["data"]["id"]

    response = admin_client.post(f"/api/employees/{employee_id}/reset-credential", json={"new_password": "fresh"})
    assert response.status_code == 200

    admin_client.get("/auth/logout", follow_redirects=False)
    login = admin_client.post("/auth/login", json={"email": NEW_EMPLOYEE["email"], "password": "fresh"})
    assert login.status_code == 200


def test_reset_credential_for_unknown_employee(admin_client):
    response = admin_client.post("/api/employees/missing/reset-credential", json={"new_password": "fresh"})

    assert response.status_code == 404


def test_deleting_employee_closes_their_work_session(client, store, source, login_employee, login_admin):
    employee = login_employee(hourly_rate=120)
    source.documents["sheet-1"] = DocumentMetadata(title="Timesheet", last_modified=utc(2024, 3, 1, 8))
    client.post("/api/documents", json={"document_url": "sheet-1"})
    client.post("/api/sessions/start", json={"document_id": "sheet-1"})
    engine = app.state.session_engine
    session = engine.active_for(employee.id)
    tasks = list(session.tasks)
    engine.clock = lambda: session.start_time + timedelta(minutes=10)

    client.cookies.clear()
    login_admin()
    response = client.delete(f"/api/employees/{employee.id}")

    assert response.status_code == 200
    assert engine.active_count == 0
    assert all(task.done() for task in tasks)
    history = store.load("history")
    assert [(r["employee_email"], r["duration_minutes"], r["salary_amount"]) for r in history] == [
        (employee.email, 10, 20),
    ]
