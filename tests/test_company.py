from decimal import Decimal

from app.models.audit_log import AuditLog
from app.models.company import Company
from conftest import FakeResult, entity_handler, make_company, make_user

UPDATE = {
    "name": "  Acme Capital ",
    "email": "hello@acme.com",
    "phone": "416-555-0199",
    "default_admin_fee_percent": "12.5",
}


def test_get_company(client, fake_db, use_actor):
    use_actor(make_user(role="AGENT"))
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))

    resp = client.get("/api/v1/company")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == "default"
    assert Decimal(data["default_admin_fee_percent"]) == Decimal("10.00")


def test_update_company_settings(client, fake_db):
    company = make_company()
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=company)))

    resp = client.patch("/api/v1/company", json=UPDATE)

    assert resp.status_code == 200
    assert company.name == "Acme Capital"
    assert company.default_admin_fee_percent == Decimal("12.50")
    [entry] = fake_db.added_of(AuditLog)
    assert entry.action == "company.settings.updated"
    assert "default_admin_fee_percent" in entry.changes
    assert fake_db.commits == 1


def test_blank_fee_means_zero(client, fake_db):
    company = make_company()
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=company)))

    resp = client.patch("/api/v1/company", json={**UPDATE, "default_admin_fee_percent": ""})

    assert resp.status_code == 200
    assert company.default_admin_fee_percent == Decimal("0.00")


def test_fee_above_hundred_is_rejected(client, fake_db):
    resp = client.patch("/api/v1/company", json={**UPDATE, "default_admin_fee_percent": "150"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_rate"
    assert fake_db.executed == []


def test_agent_cannot_update_company(client, fake_db, use_actor):
    use_actor(make_user(role="AGENT"))

    resp = client.patch("/api/v1/company", json=UPDATE)

    assert resp.status_code == 403
    assert resp.json()["message"] == "Missing permission: company.manage"


def test_missing_company_returns_404(client, fake_db):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=None)))

    resp = client.get("/api/v1/company")

    assert resp.status_code == 404
