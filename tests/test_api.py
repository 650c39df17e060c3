import pytest
from fastapi.testclient import TestClient

from bookkeeper.config import Settings, get_settings
from bookkeeper.main import create_app
from bookkeeper.presentation.dependencies import get_store


@pytest.fixture
def client(store, tmp_path):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: Settings(upload_dir=str(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


def _login(client, username, password):
    resp = client.post("/api/auth/token", data={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin", "admin")


@pytest.fixture
def user_headers(client, admin_headers):
    headers = {}
    for name in ("alice", "bob"):
        resp = client.post(
            "/api/auth/users",
            json={"username": name, "password": "pw", "is_admin": False},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        headers[name] = _login(client, name, "pw")
    return headers


def _expense(client, headers, **overrides):
    payload = {
        "date": "2024-05-01",
        "amount": 25.0,
        "vat": 5.0,
        "category": "Cash",
        "purchaser": "Warren",
        "company": "Makro",
    }
    payload.update(overrides)
    resp = client.post("/api/expenses", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/expenses").status_code == 401
    assert client.get("/api/balances").status_code == 401


def test_bad_credentials(client):
    resp = client.post("/api/auth/token", data={"username": "admin", "password": "nope"})
    assert resp.status_code == 401


def test_me_and_logout(client, admin_headers):
    assert client.get("/api/auth/me", headers=admin_headers).json()["username"] == "admin"

    assert client.post("/api/auth/logout", headers=admin_headers).json() == {"success": True}
    assert client.get("/api/auth/me", headers=admin_headers).json() is None
    assert client.get("/api/expenses", headers=admin_headers).status_code == 401


def test_user_management_is_admin_only(client, user_headers, admin_headers):
    assert client.get("/api/auth/users", headers=user_headers["alice"]).status_code == 403

    names = [u["username"] for u in client.get("/api/auth/users", headers=admin_headers).json()]
    assert names == ["admin", "alice", "bob"]

    dup = client.post(
        "/api/auth/users",
        json={"username": "alice", "password": "x"},
        headers=admin_headers,
    )
    assert dup.status_code == 400


def test_expense_visibility_between_users(client, user_headers, admin_headers):
    created = _expense(client, user_headers["alice"])

    assert client.get("/api/expenses", headers=user_headers["bob"]).json() == []
    alice_view = client.get("/api/expenses", headers=user_headers["alice"]).json()
    assert [e["id"] for e in alice_view] == [created["id"]]
    _expense(client, user_headers["bob"])
    assert len(client.get("/api/expenses", headers=admin_headers).json()) == 2


def test_expense_lifecycle(client, user_headers, admin_headers):
    expense = _expense(client, user_headers["alice"])
    url = f"/api/expenses/{expense['id']}"

    edited = client.put(
        url,
        json={"date": "2024-05-02", "amount": 30, "category": "Card", "purchaser": "Leo"},
        headers=user_headers["alice"],
    )
    assert edited.status_code == 200
    assert edited.json()["category"] == "Card"

    assert client.put(
        url,
        json={"date": "2024-05-02", "amount": 1, "category": "Card", "purchaser": "Leo"},
        headers=user_headers["bob"],
    ).status_code == 403

    assert client.patch(
        f"{url}/reimbursed", json={"is_reimbursed": True}, headers=user_headers["alice"]
    ).status_code == 403
    flagged = client.patch(f"{url}/reimbursed", json={"is_reimbursed": True}, headers=admin_headers)
    assert flagged.json()["is_reimbursed"] is True

    listed = client.get(
        "/api/expenses", params={"reimbursed": "true"}, headers=admin_headers
    ).json()
    assert [e["id"] for e in listed] == [expense["id"]]

    assert client.delete(url, headers=user_headers["alice"]).status_code == 403
    assert client.delete(url, headers=admin_headers).json() == {"deleted": True}
    assert client.delete(url, headers=admin_headers).status_code == 404


def test_negative_amount_is_a_bad_request(client, user_headers):
    resp = client.post(
        "/api/expenses",
        json={"date": "2024-05-01", "amount": -5, "category": "Cash", "purchaser": "Leo"},
        headers=user_headers["alice"],
    )
    assert resp.status_code == 400


def test_expense_export_download(client, user_headers, admin_headers):
    _expense(client, user_headers["alice"])

    assert client.get("/api/expenses/export", headers=user_headers["alice"]).status_code == 403
    resp = client.get("/api/expenses/export", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "filename=expenses-" in resp.headers["content-disposition"]
    assert resp.text.split("\n")[1] == "2024-05-01,25,5,Cash,Warren,Makro,alice,No"


def test_expense_import_upload(client, user_headers):
    csv_text = "Date,Amount,VAT,Category\n2024-05-01,10,0,Cash\nbroken\n"

    resp = client.post(
        "/api/expenses/import",
        files={"file": ("expenses.csv", csv_text.encode(), "text/csv")},
        headers=user_headers["alice"],
    )

    assert resp.json() == {"succeeded": 1, "failed": 1}


def test_live_poll(client, user_headers):
    first = client.get("/api/expenses/live", headers=user_headers["alice"]).json()
    assert first["changed"] is True and first["expenses"] == []

    idle = client.get(
        "/api/expenses/live", params={"since": first["version"]}, headers=user_headers["alice"]
    ).json()
    assert idle == {"version": first["version"], "changed": False, "expenses": None}

    _expense(client, user_headers["alice"])
    moved = client.get(
        "/api/expenses/live", params={"since": first["version"]}, headers=user_headers["alice"]
    ).json()
    assert moved["changed"] is True
    assert len(moved["expenses"]) == 1


def test_income_update_scenario(client, user_headers):
    created = client.post(
        "/api/income",
        json={
            "date": "2024-05-01",
            "room": "K4",
            "name": "Party",
            "bill": 500,
            "paid": 300,
            "payment_methods": [{"type": "Cash", "amount": 300}],
        },
        headers=user_headers["alice"],
    ).json()
    assert created["outstanding"] == 200

    updated = client.put(
        f"/api/income/{created['id']}",
        json={
            "paid": 500,
            "payment_methods": [
                {"type": "Cash", "amount": 300},
                {"type": "Card", "amount": 200},
            ],
        },
        headers=user_headers["alice"],
    ).json()
    assert updated["outstanding"] == 0

    assert client.put(
        "/api/income/missing", json={"paid": 1}, headers=user_headers["alice"]
    ).status_code == 404


def test_income_unknown_room(client, user_headers):
    resp = client.post(
        "/api/income",
        json={"date": "2024-05-01", "room": "Roof", "name": "x", "bill": 1, "paid": 0},
        headers=user_headers["alice"],
    )
    assert resp.status_code == 400


def test_balance_override_scenario(client, user_headers, admin_headers):
    client.post(
        "/api/income",
        json={
            "date": "2024-05-01",
            "room": "Bar",
            "name": "Tab",
            "bill": 120,
            "paid": 120,
            "payment_methods": [{"type": "Cash", "amount": 120}],
        },
        headers=user_headers["alice"],
    )
    _expense(client, user_headers["bob"], amount=20, category="Cash")

    cash = client.get("/api/balances", headers=user_headers["alice"]).json()["balances"]["Cash"]
    assert cash == {"calculated": 100.0, "override": None, "final": 100.0}

    assert client.put(
        "/api/balances/overrides/Cash", json={"amount": 1000}, headers=user_headers["alice"]
    ).status_code == 403
    client.put("/api/balances/overrides/Cash", json={"amount": 1000}, headers=admin_headers)
    cash = client.get("/api/balances", headers=admin_headers).json()["balances"]["Cash"]
    assert cash == {"calculated": 100.0, "override": 1000.0, "final": 1000.0}

    client.delete("/api/balances/overrides/Cash", headers=admin_headers)
    cash = client.get("/api/balances", headers=admin_headers).json()["balances"]["Cash"]
    assert cash["final"] == 100.0


def test_director_loan_override(client, admin_headers):
    client.put("/api/balances/director-loans/Leo", json={"amount": 250}, headers=admin_headers)

    loans = client.get("/api/balances", headers=admin_headers).json()["director_loans"]

    assert loans["Leo"] == {"calculated": 0.0, "override": 250.0, "final": 250.0}
    assert loans["Diego"]["final"] == 0.0


def test_receipt_upload_and_download(client, user_headers):
    resp = client.post(
        "/uploads",
        files={"file": ("receipt.PNG", b"fake-image", "image/png")},
        headers=user_headers["alice"],
    )
    name = resp.json()["path"]
    assert name.endswith(".png")

    download = client.get(f"/uploads/{name}", headers=user_headers["bob"])
    assert download.status_code == 200
    assert download.content == b"fake-image"

    assert client.get("/uploads/missing.png", headers=user_headers["bob"]).status_code == 404
    assert client.get(f"/uploads/{name}").status_code == 401
    assert client.post(
        "/uploads", files={"file": ("r.png", b"x", "image/png")}
    ).status_code == 401
