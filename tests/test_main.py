import pytest
from fastapi.testclient import TestClient

from cashbook.main import create_app, format_rupiah

DIRECTOR = ("direktur", "dir-pw")
TREASURER = ("bendahara", "ben-pw")
CASHIER = ("kasir", "kas-pw")


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


def _post_txn(client, auth, **overrides):
    data = {
        "date": "2025-01-03",
        "type": "income",
        "amount": "200000",
        "category": "Penjualan (Pangan)",
        "description": "Penjualan beras",
    }
    data.update(overrides)
    return client.post("/transactions", data=data, auth=auth, follow_redirects=False)


def _only_id(client, auth):
    rows = client.get("/api/transactions", auth=auth).json()
    assert len(rows) == 1
    return rows[0]["id"]


def test_format_rupiah():
    assert format_rupiah(161511100) == "Rp 161.511.100"
    assert format_rupiah(-5000) == "-Rp 5.000"
    assert format_rupiah(0) == "Rp 0"


def test_pages_require_credentials(client):
    assert client.get("/").status_code == 401
    assert client.get("/", auth=("direktur", "wrong")).status_code == 401
    assert client.get("/", auth=DIRECTOR).status_code == 200


def test_public_page_needs_no_login(client):
    response = client.get("/public")
    assert response.status_code == 200
    assert "BUMDESa Margajaya" in response.text


def test_treasurer_submission_waits_for_director(client):
    response = _post_txn(client, TREASURER)
    assert response.status_code == 303
    assert response.headers["location"] == "/"

    txn_id = _only_id(client, TREASURER)
    record = client.get("/api/transactions", auth=DIRECTOR).json()[0]
    assert record["status"] == "pending"
    assert record["approvedBy"] is None
    assert client.get("/api/summary").json()["balance"] == 0
    assert "Penjualan beras" in client.get("/pending", auth=DIRECTOR).text

    forbidden = client.post(f"/transactions/{txn_id}/approve", auth=TREASURER)
    assert forbidden.status_code == 403

    approved = client.post(
        f"/transactions/{txn_id}/approve", auth=DIRECTOR, follow_redirects=False
    )
    assert approved.status_code == 303
    summary = client.get("/api/summary").json()
    assert summary["balance"] == 200000
    assert summary["approved_count"] == 1
    assert summary["income_count"] == 1
    assert summary["expense_count"] == 0
    assert summary["by_category"] == {"Penjualan (Pangan)": {"income": 200000, "expense": 0}}

    again = client.post(f"/transactions/{txn_id}/approve", auth=DIRECTOR)
    assert again.status_code == 409


def test_reject_and_missing_ids(client):
    _post_txn(client, TREASURER)
    txn_id = _only_id(client, TREASURER)

    rejected = client.post(
        f"/transactions/{txn_id}/reject", auth=DIRECTOR, follow_redirects=False
    )
    assert rejected.status_code == 303
    assert client.get("/api/transactions", auth=DIRECTOR).json() == []
    assert client.post(f"/transactions/{txn_id}/reject", auth=DIRECTOR).status_code == 404


def test_invalid_intake_is_bad_request(client):
    response = _post_txn(client, TREASURER, amount="abc")
    assert response.status_code == 400
    assert response.json()["detail"] == "amount invalid"
    assert client.get("/api/transactions", auth=DIRECTOR).json() == []


def test_treasurer_cannot_delete_another_treasurers_entry(client):
    _post_txn(client, CASHIER, description="Kasir punya")
    txn_id = _only_id(client, CASHIER)

    assert client.get("/api/transactions", auth=TREASURER).json() == []
    assert client.post(f"/transactions/{txn_id}/delete", auth=TREASURER).status_code == 403

    deleted = client.post(
        f"/transactions/{txn_id}/delete", auth=CASHIER, follow_redirects=False
    )
    assert deleted.status_code == 303
    assert client.get("/api/transactions", auth=DIRECTOR).json() == []


def test_htmx_submission_returns_partial(client):
    response = client.post(
        "/transactions",
        data={
            "date": "2025-01-01",
            "type": "income",
            "amount": "1000000",
            "category": "Modal Awal",
            "description": "Modal desa",
        },
        auth=DIRECTOR,
        headers={"HX-Request": "true"},
    )
    assert response.status_code == 200
    assert "Rp 1.000.000" in response.text
    assert "Modal desa" in response.text
    assert "<html" not in response.text


def test_book_and_export(client):
    _post_txn(client, DIRECTOR, date="2025-01-01", amount="1000000", category="Modal Awal",
              description="Modal, tahap 1")
    _post_txn(client, DIRECTOR, date="2025-01-02", type="expense", amount="300000",
              category="Belanja Stok Barang", description="Stok beras")
    _post_txn(client, TREASURER, date="2025-01-03")

    book = client.get("/book", auth=TREASURER)
    assert book.status_code == 200
    assert "Total Transaksi Tercatat: 2 transaksi" in book.text

    response = client.get("/export.csv", auth=TREASURER)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="BKU_BUMDESa_Margajaya_' in response.headers["content-disposition"]
    lines = response.text.lstrip("\ufeff").splitlines()
    assert len(lines) == 3
    assert '"Modal, tahap 1"' in lines[1]
    assert lines[2].endswith('0,300000,700000,"direktur","direktur"')


def test_oversized_amount_is_bad_request(client):
    response = _post_txn(client, TREASURER, amount="99999999999999999999")
    assert response.status_code == 400
    assert response.json()["detail"] == "amount too large"
    assert client.get("/api/transactions", auth=DIRECTOR).json() == []


def test_forged_retry_id_is_bad_request(client):
    response = _post_txn(client, TREASURER, txn_id="-5")
    assert response.status_code == 400
    assert client.get("/api/transactions", auth=DIRECTOR).json() == []
