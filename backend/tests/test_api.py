"""HTTP surface end to end on an in-memory database: status codes, payload shapes, error mapping."""
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import Workbook, load_workbook

from sitebook.config import settings


def xlsx_bytes(rows):
    wb = Workbook()
    for r in rows:
        wb.active.append(r)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


async def make_worker(client, name="Ramesh", wage="600"):
    r = await client.post("/api/workers", json={"full_name": name, "daily_wage": wage, "aadhaar_number": "1234 5678 9012"})
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_worker_aadhaar_masked_in_list_revealed_on_get(client):
    w = await make_worker(client)
    listed = (await client.get("/api/workers")).json()
    assert listed[0]["aadhaar_number"] == "XXXX XXXX 9012"
    single = (await client.get(f"/api/workers/{w['id']}")).json()
    assert single["aadhaar_number"] == "123456789012"


@pytest.mark.asyncio
async def test_attendance_upsert_returns_cost_delta(client):
    w = await make_worker(client, wage="800")
    r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", "hajri_count": "1.5"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["record"]["notation"] == "P ½"
    assert Decimal(body["daily_cost"]) == Decimal("1200")
    assert Decimal(body["cost_delta"]) == Decimal("1200")

    r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", "kharchi_amount": "300"})
    body = r.json()
    assert Decimal(body["record"]["hajri_count"]) == Decimal("1.5")
    assert Decimal(body["net_daily_earning"]) == Decimal("900")
    assert Decimal(body["cost_delta"]) == 0

    r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", "status": "Absent"})
    assert Decimal(r.json()["cost_delta"]) == Decimal("-1200")


@pytest.mark.asyncio
async def test_attendance_validation(client):
    w = await make_worker(client)
    r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", "hajri_count": "0.3"})
    assert r.status_code == 422
    r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", "kharchi_amount": "-5"})
    assert r.status_code == 422
    r = await client.put("/api/attendance", json={"worker_id": 999, "date": "2024-05-02", "hajri_count": "1"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_attendance_rejects_numbers_the_columns_cannot_hold(client):
    w = await make_worker(client)
    for change in ({"hajri_count": "1e30"}, {"hajri_count": "10000"}, {"kharchi_amount": "1e13"}):
        r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", **change})
        assert r.status_code == 422, r.text
    r = await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-05-02", "hajri_count": "9999.75"})
    assert r.status_code == 200, r.text


@pytest.mark.asyncio
async def test_estimate_import_zeroes_oversized_cells(client):
    content = xlsx_bytes([
        ["Description", "Unit", "Qty", "Rate"],
        ["Rock cutting", "cum", 1e30, 50],
        ["PCC", "cum", 2, 100],
    ])
    r = await client.post("/api/estimates/import", files={"file": ("Quarry.xlsx", content, "application/octet-stream")})
    assert r.status_code == 201, r.text
    est = r.json()
    assert Decimal(est["items"][0]["quantity"]) == 0
    assert Decimal(est["total"]) == Decimal("200")


@pytest.mark.asyncio
async def test_worker_month_sheet(client):
    w = await make_worker(client, wage="500")
    await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-02-01", "hajri_count": "1", "kharchi_amount": "100"})
    await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-02-02", "hajri_count": "0.5"})
    r = await client.get(f"/api/attendance/workers/{w['id']}/month", params={"year": 2024, "month": 2})
    body = r.json()
    assert len(body["days"]) == 29
    assert Decimal(body["gross_earning"]) == Decimal("750")
    assert Decimal(body["net_payable"]) == Decimal("650")


@pytest.mark.asyncio
async def test_ledger_flow(client):
    r = await client.post("/api/ledger", json={"entry_date": "2024-01-01", "description": "RA Bill 1", "bill_amount": "100000"})
    assert r.status_code == 201
    r = await client.post("/api/ledger", json={"entry_date": "2024-01-10", "description": "NEFT", "payment_received": "60000"})
    assert r.status_code == 201
    r = await client.post("/api/ledger", json={"entry_date": "2024-01-11", "description": "empty"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Please enter either a Bill Amount or Payment Received."

    view = (await client.get("/api/ledger")).json()
    assert [Decimal(e["balance"]) for e in view["entries"]] == [Decimal("100000"), Decimal("40000")]
    assert Decimal(view["totals"]["net_due"]) == Decimal("40000")
    assert view["totals"]["is_consistent"] is True

    entry_id = view["entries"][0]["id"]
    assert (await client.delete(f"/api/ledger/{entry_id}")).status_code == 204
    assert (await client.delete(f"/api/ledger/{entry_id}")).status_code == 404


@pytest.mark.asyncio
async def test_estimate_import_and_activation(client):
    content = xlsx_bytes([
        ["Description", "Unit", "Qty", "Rate", "Category", "Remarks"],
        ["Excavation", "cum", 100, 250, "Earthwork", "hard soil"],
        ["PCC", "cum", "10", "4,800", "Concrete", None],
    ])
    files = {"file": ("Tower A.boq.xlsx", content, "application/octet-stream")}
    preview = await client.post("/api/estimates/import/preview", files=files)
    assert preview.status_code == 200, preview.text
    assert preview.json()["suggested_mapping"]["quantity"] == "Qty"

    r = await client.post("/api/estimates/import", files=files, data={"extra_columns": '["Remarks"]'})
    assert r.status_code == 201, r.text
    est = r.json()
    assert est["name"] == "Tower A"
    assert Decimal(est["total"]) == Decimal("73000")
    assert est["items"][0]["extra_data"] == {"Remarks": "hard soil"}
    assert [c["category"] for c in est["categories"]] == ["Earthwork", "Concrete"]

    other = (await client.post("/api/estimates", json={"name": "Extras"})).json()
    await client.post(f"/api/estimates/{est['id']}/activate")
    await client.post(f"/api/estimates/{other['id']}/activate")
    listing = (await client.get("/api/estimates")).json()
    assert [e["id"] for e in listing["estimates"] if e["is_active"]] == [other["id"]]
    assert Decimal(listing["budget_total"]) == Decimal("73000")
    assert (await client.get("/api/estimates/active")).json()["id"] == other["id"]


@pytest.mark.asyncio
async def test_estimate_import_bad_mapping(client):
    content = xlsx_bytes([["Name", "Size"], ["x", 1]])
    r = await client.post(
        "/api/estimates/import",
        files={"file": ("x.xlsx", content, "application/octet-stream")},
    )
    assert r.status_code == 400
    assert "Map a column" in r.json()["detail"]


@pytest.mark.asyncio
async def test_dashboard_and_monthly_report(client):
    w = await make_worker(client, wage="700")
    await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-06-05", "hajri_count": "2"})
    est = (await client.post("/api/estimates", json={"name": "Main"})).json()
    await client.post(f"/api/estimates/{est['id']}/items", json=[{"description": "Slab", "quantity": "10", "rate": "1000"}])
    await client.post(f"/api/estimates/{est['id']}/activate")
    await client.post("/api/expenses", json={"date": "2024-06-06", "category": "material", "amount": "5000"})
    await client.post("/api/payments", json={"worker_id": w["id"], "amount": "1400", "payment_date": "2024-06-07"})

    d = (await client.get("/api/dashboard", params={"date": "2024-06-05"})).json()
    assert d["today"]["present_today"] == 1
    assert Decimal(d["today"]["todays_labor_cost"]) == Decimal("1400")
    assert Decimal(d["financials"]["total_budget"]) == Decimal("10000")
    assert Decimal(d["financials"]["material_cost"]) == Decimal("5000")
    assert d["active_estimate"]["name"] == "Main"

    rep = (await client.get("/api/dashboard/monthly-report", params={"year": 2024, "month": 6})).json()
    assert Decimal(rep["income"]) == Decimal("1400")
    assert Decimal(rep["profit"]) == Decimal("-3600")
    assert rep["expense_breakdown"][0]["name"] == "Material"


@pytest.mark.asyncio
async def test_payment_receipt_pdf(client):
    w = await make_worker(client)
    p = (await client.post("/api/payments", json={"worker_id": w["id"], "amount": "500", "payment_date": "2024-06-07", "payment_type": "cash_advance"})).json()
    assert p["worker_name"] == "Ramesh"
    r = await client.get(f"/api/payments/{p['id']}/receipt.pdf")
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_branding_update_reaches_app_state(client):
    from sitebook.main import app
    r = await client.put("/api/settings/branding", json={"project_name": "Shree Builders", "bg_type": "white"})
    assert r.status_code == 200
    assert app.state.branding.display_name == "Shree Builders"
    assert (await client.get("/api/settings/branding")).json()["bg_type"] == "white"
    r = await client.put("/api/settings/branding", json={"bg_type": "neon"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_branding_kept_in_memory_when_commit_fails(db, monkeypatch):
    from types import SimpleNamespace
    from sqlalchemy.ext.asyncio import AsyncSession
    from sitebook.branding import BrandingConfig
    from sitebook.routers.settings import _apply

    before = BrandingConfig(project_name="Shree Builders")
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(branding=before)))

    async def failing_commit(self):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    with pytest.raises(RuntimeError):
        await _apply(request, db, {"project_name": "Renamed"})
    assert request.app.state.branding is before


def test_app_title_comes_from_settings():
    from sitebook.main import app
    assert app.title == settings.app_name


@pytest.mark.asyncio
async def test_expense_with_bill_photo_fallback(client):
    form = {"date": "2024-06-01", "amount": "250", "category": "Transport"}
    bad_file = {"file": ("bill.exe", b"MZ", "application/octet-stream")}
    r = await client.post("/api/expenses/with-bill", data=form, files=bad_file)
    assert r.status_code == 400
    r = await client.post("/api/expenses/with-bill", data={**form, "allow_without_photo": "true"}, files=bad_file)
    assert r.status_code == 201
    assert r.json()["bill_photo_url"] is None
    r = await client.post("/api/expenses/with-bill", data=form, files={"file": ("bill.jpg", b"\xff\xd8jpeg", "image/jpeg")})
    assert r.status_code == 201
    assert r.json()["bill_photo_url"].startswith("bills/shared/")


@pytest.mark.asyncio
async def test_material_duplicate_conflict(client):
    assert (await client.post("/api/expenses/materials", json={"name": "Cement", "default_rate": "380"})).status_code == 201
    assert (await client.post("/api/expenses/materials", json={"name": "cement"})).status_code == 409


@pytest.mark.asyncio
async def test_export_attendance_register(client):
    w = await make_worker(client)
    await client.put("/api/attendance", json={"worker_id": w["id"], "date": "2024-07-03", "hajri_count": "0.75"})
    r = await client.get("/api/attendance/export", params={"year": 2024, "month": 7})
    assert r.status_code == 200
    ws = load_workbook(BytesIO(r.content)).active
    row = [c.value for c in ws[2]]
    assert row[0] == "Ramesh"
    assert "¾" in row


@pytest.mark.asyncio
async def test_backup_requires_admin_token(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_token", None)
    assert (await client.get("/api/backup/history")).status_code == 503
    monkeypatch.setattr(settings, "admin_token", "secret")
    assert (await client.get("/api/backup/history", headers={"X-Admin-Token": "nope"})).status_code == 403
    r = await client.get("/api/backup/history", headers={"X-Admin-Token": "secret"})
    assert r.status_code == 200
    assert r.json() == []
    r = await client.get("/api/backup/download/notes.txt", headers={"X-Admin-Token": "secret"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_magic_attendance_commit(client):
    a = await make_worker(client, "Ramesh Kumar")
    r = await client.post("/api/magic/attendance/commit", json={
        "date": "2024-08-01",
        "rows": [
            {"worker_name": "Ramesh", "status": "Present", "worker_id": a["id"]},
            {"worker_name": "Ghost", "status": "Present"},
        ],
    })
    body = r.json()
    assert body["saved"] == 1
    assert body["skipped"] == ["Ghost"]
    records = (await client.get("/api/attendance/records", params={"worker_id": a["id"]})).json()
    assert Decimal(records[0]["hajri_count"]) == Decimal("1")


@pytest.mark.asyncio
async def test_magic_expense_commit(client):
    r = await client.post("/api/magic/expenses/commit", json={
        "date": "2024-08-01",
        "items": [
            {"item_name": "Cement", "quantity": "50", "unit": "bags", "amount": "19000", "category": "Material"},
            {"item_name": "Nothing", "amount": "0"},
        ],
    })
    assert r.json()["saved"] == 1
    expenses = (await client.get("/api/expenses")).json()
    assert expenses[0]["description"] == "Cement (bags)"
    assert Decimal(expenses[0]["rate"]) == Decimal("380")


@pytest.mark.asyncio
async def test_magic_parse_without_key_is_502(client, monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    r = await client.post("/api/magic/expenses/parse", json={"text": "cement 50 bags"})
    assert r.status_code == 502
