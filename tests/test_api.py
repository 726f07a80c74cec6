import asyncio
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from backoffice.crud import team as team_crud
from backoffice.db import get_db
from backoffice.dependencies import get_ai_client, get_storage
import backoffice.main as main_module
from backoffice.main import app
from backoffice.models.base import Base
from backoffice.models.invoice import Invoice, InvoiceStatus
from tests.factories import BrokenStorage, FakeAiClient, InMemoryStorage, make_supplier

PDF = ("invoice.pdf", b"%PDF-1.4 fake", "application/pdf")
MILK_INVOICE = {
    "details": {"invoice_number": "MET-889"},
    "orders": [{"description": "Milk", "qty": 10, "price": 2.5, "total": 25}],
    "totals": {"grand_total": 25},
}


class Harness:
    def __init__(self, client, session_factory, ai, storage):
        self.client = client
        self.session_factory = session_factory
        self.ai = ai
        self.storage = storage

    def seed(self, fn):
        """Run fn(session) against the test database and return its result"""
        async def _run():
            async with self.session_factory() as session:
                return await fn(session)
        return asyncio.run(_run())


@pytest.fixture
def api(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)

    async def _create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_tables())
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    ai = FakeAiClient()
    storage = InMemoryStorage()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: ai
    app.dependency_overrides[get_storage] = lambda: storage

    yield Harness(TestClient(app), session_factory, ai, storage)

    app.dependency_overrides.clear()


def upload_invoice(api, supplier_id):
    response = api.client.post(
        "/invoices/",
        data={"supplier_id": supplier_id, "invoice_date": "2026-03-02"},
        files={"invoice_file": PDF},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_healthz(api):
    assert api.client.get("/healthz").json() == {"ok": True}


def test_lifespan_prepares_schema(monkeypatch):
    calls = []

    async def fake_create_tables():
        calls.append("create")

    monkeypatch.setattr(main_module, "create_db_and_tables", fake_create_tables)
    with TestClient(app) as client:
        assert client.get("/healthz").status_code == 200

    assert calls == ["create"]


def test_invoice_upload_and_process(api):
    supplier = api.seed(lambda db: make_supplier(db))
    invoice = upload_invoice(api, supplier.id)
    assert invoice["status"] == "uploaded"
    assert invoice["supplier"]["company_name"] == "Metro Coffee Co"

    api.ai.invoice = MILK_INVOICE
    response = api.client.post(f"/invoices/{invoice['id']}/process")

    assert response.status_code == 200
    body = response.json()
    assert body["outcome"] == "processed"
    assert body["invoice"]["invoice_number"] == "MET-889"
    assert body["invoice"]["total"] == 25.0

    listing = api.client.get("/invoices/").json()
    assert listing["stats"] == {"processing_queue": 0, "needs_review": 0, "approved": 1, "match_rate": 100}

    again = api.client.post(f"/invoices/{invoice['id']}/process")
    assert again.status_code == 409
    assert again.json() == {"detail": "Invoice has already been processed.", "outcome": "conflict"}


def test_upload_storage_failure_is_retryable(api):
    supplier = api.seed(lambda db: make_supplier(db))
    app.dependency_overrides[get_storage] = lambda: BrokenStorage()

    response = api.client.post(
        "/invoices/",
        data={"supplier_id": supplier.id, "invoice_date": "2026-03-02"},
        files={"invoice_file": PDF},
    )

    assert response.status_code == 500
    assert response.json()["outcome"] == "retry"
    assert "No space left on device" in response.json()["detail"]
    assert api.client.get("/invoices/").json()["invoices"] == []


def test_items_cannot_be_edited_while_processing(api):
    supplier = api.seed(lambda db: make_supplier(db))
    invoice = upload_invoice(api, supplier.id)
    api.ai.invoice = {**MILK_INVOICE, "totals": {"grand_total": 30}}
    api.client.post(f"/invoices/{invoice['id']}/process")

    async def start_processing(db):
        row = await db.get(Invoice, invoice["id"])
        row.status = InvoiceStatus.PROCESSING.value
        await db.commit()

    api.seed(start_processing)
    response = api.client.put(
        f"/invoices/{invoice['id']}/items",
        json={"orders": [{"description": "Milk", "qty": 12, "price": 2.5}]},
    )

    assert response.status_code == 409
    assert response.json() == {"detail": "Invoice is currently being processed.", "outcome": "conflict"}


def test_invoice_rejection_is_422(api):
    supplier = api.seed(lambda db: make_supplier(db))
    invoice = upload_invoice(api, supplier.id)
    api.ai.invoice = {"status": "invalid", "invalid_reason": "This is a menu"}

    response = api.client.post(f"/invoices/{invoice['id']}/process")

    assert response.status_code == 422
    body = response.json()
    assert body["outcome"] == "rejected"
    assert body["message"] == "This is a menu"
    assert body["invoice"]["status"] == "rejected"


def test_invoice_ai_failure_is_retryable(api):
    supplier = api.seed(lambda db: make_supplier(db))
    invoice = upload_invoice(api, supplier.id)
    api.ai.invoice = RuntimeError("connection reset")

    response = api.client.post(f"/invoices/{invoice['id']}/process")

    assert response.status_code == 500
    assert response.json()["outcome"] == "retry"
    assert response.json()["detail"] == "AI processing failed: connection reset"
    assert api.client.get(f"/invoices/{invoice['id']}").json()["status"] == "needs review"


def test_invoice_items_update(api):
    supplier = api.seed(lambda db: make_supplier(db))
    invoice = upload_invoice(api, supplier.id)
    api.ai.invoice = {**MILK_INVOICE, "orders": [{"description": "Milk", "qty": 10, "price": 2.5, "total": 30}]}
    assert api.client.post(f"/invoices/{invoice['id']}/process").json()["outcome"] == "needs_review"

    response = api.client.put(
        f"/invoices/{invoice['id']}/items",
        json={"orders": [{"description": "Milk", "qty": 10, "price": 2.5}]},
    )
    assert response.status_code == 200
    assert response.json()["outcome"] == "processed"
    assert response.json()["message"] == "Invoice items updated successfully."

    empty = api.client.put(f"/invoices/{invoice['id']}/items", json={"orders": []})
    assert empty.status_code == 422


def test_invoice_upload_rejects_unknown_supplier_and_type(api):
    missing = api.client.post(
        "/invoices/",
        data={"supplier_id": "nope", "invoice_date": "2026-03-02"},
        files={"invoice_file": PDF},
    )
    assert missing.status_code == 404

    supplier = api.seed(lambda db: make_supplier(db))
    wrong_type = api.client.post(
        "/invoices/",
        data={"supplier_id": supplier.id, "invoice_date": "2026-03-02"},
        files={"invoice_file": ("notes.txt", b"hello", "text/plain")},
    )
    assert wrong_type.status_code == 422
    assert wrong_type.json()["outcome"] == "invalid"


def test_invoice_delete(api):
    supplier = api.seed(lambda db: make_supplier(db))
    invoice = upload_invoice(api, supplier.id)

    assert api.client.delete(f"/invoices/{invoice['id']}").status_code == 204
    assert api.client.get(f"/invoices/{invoice['id']}").status_code == 404
    assert api.storage.files == {}


def test_recipe_costing_endpoints(api):
    a = api.client.post("/ingredients/", json={"name": "Flour", "unit": "kg", "current_price": "3.00"})
    b = api.client.post("/ingredients/", json={"name": "Butter", "unit": "kg", "current_price": 5})
    assert a.status_code == b.status_code == 201

    recipe = api.client.post("/recipes/", json={
        "name": "Shortbread",
        "selling_price": 22,
        "ingredients": [
            {"ingredient_id": a.json()["id"], "quantity": 2},
            {"ingredient_id": b.json()["id"], "quantity": 1},
        ],
    })
    assert recipe.status_code == 201
    assert recipe.json()["cost"] == 11.0
    assert recipe.json()["margin"] == 50.0

    # a new price shows up on the next read
    flour = api.client.put(f"/ingredients/{a.json()['id']}", json={"name": "Flour", "unit": "kg", "current_price": 4})
    assert flour.json()["current_price"] == 4.0
    assert flour.json()["seven_day_change"] == 33
    assert api.client.get(f"/recipes/{recipe.json()['id']}").json()["cost"] == 13.0

    bad = api.client.post("/recipes/", json={
        "name": "Ghost cake",
        "selling_price": 10,
        "ingredients": [{"ingredient_id": "missing", "quantity": 1}],
    })
    assert bad.status_code == 422
    assert bad.json()["detail"] == "Ingredient not found: missing"


def test_reconciliation_flow(api):
    flour = api.client.post("/ingredients/", json={"name": "Flour", "current_price": 1}).json()
    recipe = api.client.post("/recipes/", json={
        "name": "Bread", "selling_price": 5,
        "ingredients": [{"ingredient_id": flour["id"], "quantity": 1}],
    }).json()

    params = {"branch": "Sydney CBD", "date": "2026-03-02"}
    rec = api.client.get("/sales-reconciliations/for-date", params=params).json()
    assert api.client.get("/sales-reconciliations/for-date", params=params).json()["id"] == rec["id"]

    api.ai.receipt = {"is_valid_sales_receipt": True, "total_sales": 100}
    uploaded = api.client.post(
        f"/sales-reconciliations/{rec['id']}/receipt",
        files={"receipt": ("z.jpg", b"jpeg", "image/jpeg")},
    )
    assert uploaded.status_code == 200
    assert uploaded.json()["outcome"] == "pending"
    assert uploaded.json()["reconciliation"]["total_sales_from_receipt"] == 100.0

    too_much = api.client.put(
        f"/sales-reconciliations/{rec['id']}/breakdown",
        json={"items": [{"recipe_id": recipe["id"], "quantity": 21, "actual_price": 5}]},
    )
    assert too_much.status_code == 422
    assert too_much.json()["outcome"] == "invalid"

    breakdown = api.client.put(
        f"/sales-reconciliations/{rec['id']}/breakdown",
        json={"items": [{"recipe_id": recipe["id"], "quantity": 19, "actual_price": 5}]},
    )
    assert breakdown.json()["outcome"] == "needs_review"
    assert breakdown.json()["reconciliation"]["variance"] == 5.0
    assert breakdown.json()["reconciliation"]["total_cogs"] == 19.0

    confirmed = api.client.post(f"/sales-reconciliations/{rec['id']}/confirm")
    assert confirmed.json()["outcome"] == "reconciled"
    assert api.client.post(f"/sales-reconciliations/{rec['id']}/confirm").status_code == 409

    fresh = api.client.get("/sales-reconciliations/for-date", params=params).json()
    assert fresh["id"] != rec["id"]

    history = api.client.get("/sales-reconciliations/history", params={"branch": "Sydney CBD"}).json()
    assert [h["id"] for h in history] == [rec["id"]]


def test_rejected_receipt_is_422(api):
    params = {"branch": "Sydney CBD", "date": "2026-03-02"}
    rec = api.client.get("/sales-reconciliations/for-date", params=params).json()
    api.ai.receipt = {"is_valid_sales_receipt": False}

    response = api.client.post(
        f"/sales-reconciliations/{rec['id']}/receipt",
        files={"receipt": ("cat.png", b"png", "image/png")},
    )

    assert response.status_code == 422
    assert response.json()["outcome"] == "rejected"
    assert response.json()["message"] == "Document is not a valid sales receipt"

    flagged = api.client.post(f"/sales-reconciliations/{rec['id']}/flag")
    assert flagged.json()["outcome"] == "needs_review"


def test_dashboard_shape(api):
    response = api.client.get("/sales-reconciliations/dashboard", params={"branch": "Sydney CBD"})
    assert response.json() == {
        "total_sales_mtd": 0.0,
        "avg_variance_percent": 0.0,
        "pending_reconciliations": 0,
        "needs_review_reconciliations": 0,
    }


def test_generate_insights_and_track_kpi(api):
    flour = api.client.post("/ingredients/", json={"name": "Flour", "current_price": 1}).json()
    api.ai.insight = lambda payload: {"title": f"{payload['dataType']}: {payload['data']['name']}"}

    response = api.client.post("/ai-insights/generate-all")
    assert response.status_code == 200
    assert response.json()["message"] == "Insight generation process completed successfully for 1 items."

    insights = api.client.get("/ai-insights/").json()
    assert len(insights) == 1
    detail = api.client.get(f"/ai-insights/{insights[0]['id']}").json()
    assert detail["entity"]["id"] == flour["id"]
    assert detail["entity"]["name"] == "Flour"

    kpi = {
        "ai_insight_id": insights[0]["id"],
        "title": "Flour under $1",
        "baseline_value": 1,
        "target_value": 0.9,
        "unit": "$/kg",
        "start_date": "2026-03-02",
        "end_date": "2026-06-01",
    }
    created = api.client.post("/kpis/", json=kpi)
    assert created.status_code == 201
    duplicate = api.client.post("/kpis/", json=kpi)
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "A KPI for this insight already exists."


def test_generate_insights_with_no_data(api):
    response = api.client.post("/ai-insights/generate-all")
    assert response.status_code == 422
    assert response.json()["detail"].startswith("No insights could be generated.")


def test_kpi_validation_and_missing_insight(api):
    response = api.client.post("/kpis/", json={
        "ai_insight_id": "missing",
        "title": "t",
        "baseline_value": 1,
        "target_value": 2,
        "unit": "u",
        "start_date": "2026-03-02",
        "end_date": "2026-03-01",
    })
    assert response.status_code == 422

    response = api.client.post("/kpis/", json={
        "ai_insight_id": "missing",
        "title": "t",
        "baseline_value": 1,
        "target_value": 2,
        "unit": "u",
        "start_date": "2026-03-02",
        "end_date": "2026-03-09",
    })
    assert response.status_code == 404


def test_timesheet_endpoints(api):
    member = api.seed(lambda db: team_crud.create_team_member(db, "Sarah", "Johnson", Decimal("24.00")))

    clocked = api.client.post("/timesheets/clock-in", json={"team_id": member.id})
    assert clocked.status_code == 200
    assert clocked.json()["status"] == "active"
    assert api.client.post("/timesheets/clock-in", json={"team_id": member.id}).status_code == 409

    assert api.client.post("/timesheets/take-break", json={"team_id": member.id}).json()["status"] == "on_break"
    assert api.client.post("/timesheets/end-break", json={"team_id": member.id}).json()["status"] == "active"
    out = api.client.post("/timesheets/clock-out", json={"team_id": member.id})
    assert out.json()["status"] == "completed"

    manual = api.client.post("/timesheets/", json={
        "employee_id": member.id, "date": "2026-03-02", "clock_in": "09:00", "clock_out": "17:30",
    })
    assert manual.status_code == 201
    assert manual.json()["gross_pay"] == 204.0

    backwards = api.client.post("/timesheets/", json={
        "employee_id": member.id, "date": "2026-03-02", "clock_in": "17:00", "clock_out": "09:00",
    })
    assert backwards.status_code == 422

    assert api.client.post("/timesheets/autoclose").json() == {"ok": True, "closed": 0}


def test_roster_week_is_replaced(api):
    shift = {"day": "mon", "startTime": "07:00", "endTime": "15:00", "target": 3, "assignedStaff": ["1001"]}

    # a Wednesday is normalized to its Monday
    first = api.client.post("/rosters/", json={"week_start": "2026-03-04", "shifts": [shift, {**shift, "day": "tue"}]})
    assert first.status_code == 200
    assert {s["day"] for s in first.json()} == {"MON", "TUE"}
    assert first.json()[0]["week_start"] == "2026-03-02"

    api.client.post("/rosters/", json={"week_start": "2026-03-02", "shifts": [{**shift, "day": "fri"}]})
    week = api.client.get("/rosters/", params={"week_start": "2026-03-06"}).json()
    assert [s["day"] for s in week] == ["FRI"]
    assert week[0]["assigned_staff"] == ["1001"]
