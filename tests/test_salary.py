from datetime import timedelta

import pytest

from conftest import PDF_BYTES, add_account, add_employee, login, login_admin
from portal.auth.jwt_handler import PURPOSE_STORAGE, create_token
from portal.salary.router import filter_slips, normalize_month


def upload(client, employee_id, month="November", year=2024, data=PDF_BYTES, name="slip.pdf", ctype="application/pdf"):
    return client.post(
        "/salary-slips/",
        data={"employee_id": employee_id, "month": month, "year": str(year)},
        files={"file": (name, data, ctype)},
    )


@pytest.fixture
def staff(db):
    e42 = add_employee(db, "Jane Roe", code="E42")
    e99 = add_employee(db, "Max Moe", code="E99")
    add_account(db, "jane@example.com", "secret1", employee_ref=e42.id)
    return e42, e99


@pytest.mark.parametrize("value,expected", [
    ("November", "November"),
    ("nov", "November"),
    ("11", "November"),
    (3, "March"),
    ("13", None),
    ("no", None),
    ("", None),
])
def test_normalize_month(value, expected):
    assert normalize_month(value) == expected


def test_upload_and_reupload_overwrites(client, staff, storage):
    e42, _ = staff
    login_admin(client)

    first = upload(client, e42.id, month="nov")
    assert first.status_code == 201
    body = first.json()
    assert body["month"] == "November"
    assert body["employee_code"] == "E42"
    assert body["uploaded_by"] == "admin@gmail.com"

    second = upload(client, e42.id, month="11", data=PDF_BYTES + b"v2")
    assert second.status_code == 201
    assert second.json()["id"] == body["id"]

    slips = client.get("/salary-slips/").json()
    assert len(slips) == 1
    assert storage.download(f"{e42.id}/2024/november.pdf").endswith(b"v2")


@pytest.mark.parametrize("kwargs", [
    {"data": b"not a pdf"},
    {"name": "slip.docx"},
    {"ctype": "image/png"},
    {"month": "Smarch"},
    {"year": 1999},
])
def test_upload_rejects_bad_input(client, staff, kwargs):
    e42, _ = staff
    login_admin(client)
    assert upload(client, e42.id, **kwargs).status_code == 400


def test_upload_unknown_employee(client, staff):
    login_admin(client)
    assert upload(client, "missing").status_code == 404


def test_employee_cannot_upload(client, staff):
    e42, _ = staff
    login(client, "jane@example.com", "secret1")
    assert upload(client, e42.id).status_code == 403


def test_employee_sees_only_own_slips(client, staff):
    e42, e99 = staff
    login_admin(client)
    upload(client, e42.id, month="October")
    upload(client, e42.id, month="November")
    other = upload(client, e99.id, month="November").json()

    login(client, "jane@example.com", "secret1")
    slips = client.get("/salary-slips/").json()
    assert [s["month"] for s in slips] == ["November", "October"]
    assert all(s["employee_ref"] == e42.id for s in slips)
    assert all(s["employee_name"] is None for s in slips)

    # asking for someone else's rows changes nothing
    assert len(client.get("/salary-slips/", params={"employee_id": e99.id}).json()) == 2
    assert client.get(f"/salary-slips/{other['id']}/download").status_code == 404


def test_admin_filters(client, staff):
    e42, e99 = staff
    login_admin(client)
    upload(client, e42.id, month="October")
    upload(client, e99.id, month="November")
    upload(client, e99.id, month="November", year=2023)

    assert len(client.get("/salary-slips/").json()) == 3
    assert len(client.get("/salary-slips/", params={"employee_id": e99.id}).json()) == 2
    assert len(client.get("/salary-slips/", params={"month": "nov", "year": 2024}).json()) == 1
    assert client.get("/salary-slips/", params={"month": "nope"}).status_code == 400


def test_unlinked_employee_sees_nothing(client, staff, db):
    e42, _ = staff
    add_account(db, "floater@example.com", "secret1", employee_ref=None)
    login_admin(client)
    upload(client, e42.id)

    login(client, "floater@example.com", "secret1")
    assert client.get("/salary-slips/").json() == []


def test_signed_download(client, staff):
    e42, _ = staff
    login_admin(client)
    slip = upload(client, e42.id).json()

    login(client, "jane@example.com", "secret1")
    signed = client.get(f"/salary-slips/{slip['id']}/download")
    assert signed.status_code == 200
    url = signed.json()["url"]
    assert url.startswith("/storage/signed/")

    client.post("/auth/logout")
    resp = client.get(url)
    assert resp.status_code == 200
    assert resp.content == PDF_BYTES
    assert resp.headers["content-type"] == "application/pdf"
    assert "salary_E42_november_2024.pdf" in resp.headers["content-disposition"]


def test_expired_or_forged_link_denied(client, staff, storage):
    e42, _ = staff
    login_admin(client)
    upload(client, e42.id)
    path = f"{e42.id}/2024/november.pdf"

    expired = storage.create_signed_url(path, -5)
    assert client.get(expired).status_code == 403

    wrong_purpose = create_token({"bucket": storage.bucket, "path": path}, "access", timedelta(minutes=5))
    assert client.get(f"/storage/signed/{wrong_purpose}").status_code == 403
    assert client.get("/storage/signed/garbage").status_code == 403


def test_missing_file_is_404(client, staff, storage):
    e42, _ = staff
    login_admin(client)
    slip = upload(client, e42.id).json()
    (storage.root / e42.id / "2024" / "november.pdf").unlink()

    assert client.get(f"/salary-slips/{slip['id']}/download").status_code == 404


def test_filter_slips_orders_newest_first():
    from types import SimpleNamespace

    slips = [
        SimpleNamespace(month="March", year=2024, employee_ref="a"),
        SimpleNamespace(month="December", year=2023, employee_ref="a"),
        SimpleNamespace(month="November", year=2024, employee_ref="b"),
    ]
    assert [(s.month, s.year) for s in filter_slips(slips)] == [
        ("November", 2024), ("March", 2024), ("December", 2023),
    ]
    assert [s.employee_ref for s in filter_slips(slips, employee_ref="b")] == ["b"]
    assert [s.month for s in filter_slips(slips, year=2023)] == ["December"]
