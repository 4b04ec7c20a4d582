from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import AuthorizationError
from app.models.audit_log import AuditLog
from app.models.company import Company
from app.models.lead import Lead
from app.services import funding
from conftest import FakeResult, entity_handler, make_company, make_lead, make_user


def _route(fake_db, lead, company=None):
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=lead)))
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=company or make_company())))


# -- calculator --------------------------------------------------------------


def test_admin_fee_is_percentage_of_funded_amount():
    assert funding.compute_admin_fee(Decimal("10000"), Decimal("10")) == Decimal("1000.00")


def test_admin_fee_rounds_half_up_to_cents():
    assert funding.compute_admin_fee(Decimal("100.10"), Decimal("5")) == Decimal("5.01")
    assert funding.compute_admin_fee(Decimal("333.33"), Decimal("2.5")) == Decimal("8.33")


def test_admin_fee_needs_amount_and_rate():
    assert funding.compute_admin_fee(None, Decimal("10")) is None
    assert funding.compute_admin_fee(Decimal("100"), None) is None


def test_total_excludes_discharge_amount():
    total = funding.compute_total_loan_amount(Decimal("10000.00"), Decimal("1000.00"), Decimal("45.00"))
    assert total == Decimal("11045.00")
    assert funding.compute_total_loan_amount(Decimal("500"), None, None) == Decimal("500.00")
    assert funding.compute_total_loan_amount(None, Decimal("10"), Decimal("45")) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("$1,234.5", Decimal("1234.50")),
        ("  42 ", Decimal("42.00")),
        (12.345, Decimal("12.35")),
        (7, Decimal("7.00")),
        ("", None),
        ("abc", None),
        ("NaN", None),
        (True, None),
        (None, None),
    ],
)
def test_coerce_money(raw, expected):
    assert funding.coerce_money(raw) == expected


def test_non_admin_cannot_override_rate():
    agent = make_user(role="AGENT")
    with pytest.raises(AuthorizationError) as excinfo:
        funding.resolve_admin_fee(
            actor=agent,
            funded_amount=Decimal("1000.00"),
            requested_rate=Decimal("12.00"),
            requested_fee=None,
            default_rate=Decimal("10.00"),
        )
    assert excinfo.value.code == "fee_override_forbidden"


def test_non_admin_may_echo_derived_values():
    agent = make_user(role="AGENT")
    fee = funding.resolve_admin_fee(
        actor=agent,
        funded_amount=Decimal("1000.00"),
        requested_rate=Decimal("10.00"),
        requested_fee=Decimal("100.00"),
        default_rate=Decimal("10.00"),
    )
    assert fee == Decimal("100.00")


def test_admin_fee_override_is_kept():
    admin = make_user(role="ADMIN")
    fee = funding.resolve_admin_fee(
        actor=admin,
        funded_amount=Decimal("1000.00"),
        requested_rate=None,
        requested_fee=Decimal("250.00"),
        default_rate=Decimal("10.00"),
    )
    assert fee == Decimal("250.00")


# -- endpoint ----------------------------------------------------------------


def test_funding_uses_company_default_rate_and_recomputes_total(client, fake_db):
    lead = make_lead(status="FUNDED")
    _route(fake_db, lead)

    resp = client.patch(
        f"/api/v1/leads/{lead.id}/funding",
        json={
            "funded_amount": "10,000",
            "ppsr_fee": "45",
            "discharge_amount": "300",
            "total_loan_amount": "1",
            "loan_payment_frequency": "bi-weekly",
            "first_payment_date": "2025-04-01",
        },
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert Decimal(data["admin_fee"]) == Decimal("1000.00")
    assert Decimal(data["total_loan_amount"]) == Decimal("11045.00")
    assert data["loan_payment_frequency"] == "BI_WEEKLY"
    assert lead.discharge_amount == Decimal("300.00")
    audit_rows = fake_db.added_of(AuditLog)
    assert len(audit_rows) == 1
    assert audit_rows[0].action == "lead.funding.updated"
    assert fake_db.commits == 1


def test_admin_can_override_rate(client, fake_db):
    lead = make_lead()
    _route(fake_db, lead)

    resp = client.patch(
        f"/api/v1/leads/{lead.id}/funding",
        json={"funded_amount": "2000", "admin_fee_rate": "15"},
    )

    assert resp.status_code == 200
    assert lead.admin_fee == Decimal("300.00")
    assert lead.total_loan_amount == Decimal("2300.00")


def test_agent_rate_override_is_forbidden(client, fake_db, use_actor):
    use_actor(make_user(role="AGENT"))
    lead = make_lead()
    _route(fake_db, lead)

    resp = client.patch(
        f"/api/v1/leads/{lead.id}/funding",
        json={"funded_amount": "2000", "admin_fee_rate": "15"},
    )

    assert resp.status_code == 403
    assert resp.json()["code"] == "fee_override_forbidden"
    assert lead.funded_amount is None
    assert fake_db.commits == 0


def test_agent_may_edit_ppsr_fee(client, fake_db, use_actor):
    use_actor(make_user(role="AGENT"))
    lead = make_lead()
    _route(fake_db, lead)

    resp = client.patch(
        f"/api/v1/leads/{lead.id}/funding",
        json={"funded_amount": "2000", "ppsr_fee": "60"},
    )

    assert resp.status_code == 200
    assert lead.admin_fee == Decimal("200.00")
    assert lead.total_loan_amount == Decimal("2260.00")


def test_blank_amounts_clear_funding(client, fake_db):
    lead = make_lead(funded_amount=Decimal("100.00"), total_loan_amount=Decimal("110.00"))
    _route(fake_db, lead)

    resp = client.patch(
        f"/api/v1/leads/{lead.id}/funding",
        json={"funded_amount": "", "ppsr_fee": "", "first_payment_date": ""},
    )

    assert resp.status_code == 200
    assert lead.funded_amount is None
    assert lead.admin_fee is None
    assert lead.total_loan_amount is None


def test_negative_amount_is_rejected(client, fake_db):
    lead = make_lead()
    _route(fake_db, lead)

    resp = client.patch(f"/api/v1/leads/{lead.id}/funding", json={"funded_amount": "-5"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "negative_amount"
    assert body["details"]["field"] == "funded_amount"


def test_funding_on_missing_lead_returns_404(client, fake_db):
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=None)))

    resp = client.patch(f"/api/v1/leads/{uuid4()}/funding", json={"funded_amount": "10"})

    assert resp.status_code == 404
