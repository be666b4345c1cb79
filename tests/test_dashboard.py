from conftest import PDF_BYTES, add_account, add_employee, login, login_admin


def test_admin_dashboard(client, db):
    e42 = add_employee(db, "Jane Roe", code="E42")
    add_employee(db, "Max Moe", status="inactive")
    add_account(db, "jane@example.com", "secret1", employee_ref=e42.id, department="Ops")
    add_account(db, "max@example.com", "secret1", department="Sales")
    login_admin(client)
    client.post(
        "/salary-slips/",
        data={"employee_id": e42.id, "month": "May", "year": "2024"},
        files={"file": ("may.pdf", PDF_BYTES, "application/pdf")},
    )

    body = client.get("/dashboard").json()
    assert body["welcome"] == "Welcome back, Administrator"
    assert body["profile"]["role"] == "admin"
    assert body["stats"] == {
        "total_employees": 2,
        "active_employees": 1,
        "total_salary_slips": 1,
        "departments": 2,
    }
    assert body["quick_actions"] == ["salary_slips", "employees"]


def test_employee_dashboard(client, db):
    e42 = add_employee(db, "Jane Roe", code="E42")
    e99 = add_employee(db, "Max Moe", code="E99")
    add_account(db, "jane@example.com", "secret1", employee_ref=e42.id, name="Jane Roe")
    login_admin(client)
    for emp in (e42, e99, e99):
        client.post(
            "/salary-slips/",
            data={"employee_id": emp.id, "month": "May" if emp is e42 else "June", "year": "2024"},
            files={"file": ("slip.pdf", PDF_BYTES, "application/pdf")},
        )

    login(client, "jane@example.com", "secret1")
    body = client.get("/dashboard").json()
    assert body["welcome"] == "Welcome back, Jane Roe"
    assert body["stats"] == {"my_salary_slips": 1}
    assert body["quick_actions"] == ["salary_slips"]
    assert body["current_period"].split()[0] in (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    )


def test_dashboard_requires_login(client):
    assert client.get("/dashboard").status_code == 401
