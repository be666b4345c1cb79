from conftest import add_account, add_employee, login, login_admin


def login_employee(client, db):
    emp = add_employee(db, "Jane Roe", code="E42")
    add_account(db, "jane@example.com", "secret1", employee_ref=emp.id)
    login(client, "jane@example.com", "secret1")
    return emp


def test_admin_crud(client):
    login_admin(client)

    created = client.post("/employees/", json={"name": " Ann Lee ", "code": "E1", "phone": "555-0101"})
    assert created.status_code == 201
    emp = created.json()
    assert emp["name"] == "Ann Lee"
    assert emp["status"] == "active"

    assert client.get(f"/employees/{emp['id']}").json()["code"] == "E1"

    updated = client.patch(f"/employees/{emp['id']}", json={"status": "inactive", "address": "12 Main St"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "inactive"
    assert updated.json()["phone"] == "555-0101"

    assert client.delete(f"/employees/{emp['id']}").status_code == 204
    assert client.get(f"/employees/{emp['id']}").status_code == 404


def test_search(client, db):
    add_employee(db, "Ann Lee", code="E1")
    add_employee(db, "Bob Stone", code="E2")
    login_admin(client)

    names = [e["name"] for e in client.get("/employees/", params={"q": "stone"}).json()]
    assert names == ["Bob Stone"]
    assert len(client.get("/employees/").json()) == 2


def test_validation(client):
    login_admin(client)
    assert client.post("/employees/", json={"name": "   "}).status_code == 400
    assert client.post("/employees/", json={"name": "X", "status": "retired"}).status_code == 422
    assert client.patch("/employees/missing", json={"name": "X"}).status_code == 404


def test_employee_cannot_manage_roster(client, db):
    emp = login_employee(client, db)

    assert client.get("/employees/").status_code == 403
    assert client.get(f"/employees/{emp.id}").status_code == 403
    assert client.post("/employees/", json={"name": "Intruder"}).status_code == 403
    assert client.delete(f"/employees/{emp.id}").status_code == 403


def test_anonymous_gets_roster_only(client, db):
    add_employee(db, "Ann Lee")
    assert client.get("/employees/roster").status_code == 200
    assert client.get("/employees/").status_code == 401


def test_admin_edits_profiles(client, db):
    emp = add_employee(db, "Jane Roe")
    user = add_account(db, "jane@example.com", "secret1")
    login_admin(client)

    assert [p["email"] for p in client.get("/admin/profiles/").json()] == ["jane@example.com"]

    resp = client.patch(f"/admin/profiles/{user.id}", json={"employee_ref": emp.id, "department": "Ops"})
    assert resp.status_code == 200
    assert resp.json()["employee_ref"] == emp.id
    assert resp.json()["department"] == "Ops"

    assert client.patch(f"/admin/profiles/{user.id}", json={"employee_ref": "missing"}).status_code == 400
    assert client.patch("/admin/profiles/missing", json={"name": "X"}).status_code == 404


def test_employee_cannot_edit_profiles(client, db):
    login_employee(client, db)
    assert client.get("/admin/profiles/").status_code == 403
