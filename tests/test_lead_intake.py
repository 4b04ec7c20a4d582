from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.models.company import Company
from app.models.lead import Lead
from app.models.note import Note
from app.models.user import User
from app.services import lead_intake
from conftest import FakeResult, entity_handler, make_company, make_lead, make_user

APPLICATION = {
    "loanType": "PERSONAL_LOAN",
    "firstName": "Jane",
    "lastName": "Doe",
    "email": "jane@example.com",
    "phone": "416-555-0100",
    "sin": "123-456-789",
    "consentGiven": True,
    "provinceState": "ON",
    "employmentStatus": "FULL_TIME",
    "amountRequested": "5000",
}


def _application(**overrides):
    payload = dict(APPLICATION)
    payload.update(overrides)
    return payload


@pytest.fixture
def anonymous(use_actor):
    use_actor(None)


def test_mask_sin_keeps_last_three_digits():
    assert lead_intake.mask_sin("123-456-789") == "***-***-789"
    assert lead_intake.mask_sin("123456789") == "***-***-789"
    assert lead_intake.mask_sin(None) is None


def test_normalize_phone_strips_formatting():
    assert lead_intake.normalize_phone("(416) 555-0100") == "4165550100"
    assert lead_intake.normalize_phone(None) == ""


# -- public create -----------------------------------------------------------


def test_public_submission_creates_unassigned_lead(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))

    resp = client.post("/api/v1/leads", json=_application())

    assert resp.status_code == 201
    body = resp.json()
    assert body["code"] == "created"
    data = body["data"]
    assert data["created"] is True
    assert data["lead"]["status"] == "UNASSIGNED"
    assert data["lead"]["current_owner_id"] is None

    [lead] = fake_db.added_of(Lead)
    assert lead.company_id == "default"
    assert lead.sin_full == "123-456-789"
    assert lead.application_count == 1
    assert lead.is_resubmission is False
    assert lead.consent_timestamp is not None
    assert fake_db.commits == 1


def test_public_submission_requires_consent(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))

    resp = client.post("/api/v1/leads", json=_application(consentGiven=False))

    assert resp.status_code == 400
    assert resp.json()["code"] == "consent_required"
    assert fake_db.added == []


def test_new_application_requires_sin(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))

    resp = client.post("/api/v1/leads", json=_application(sin=None))

    assert resp.status_code == 400
    assert resp.json()["code"] == "sin_required"


def test_invalid_phone_fails_validation(client, fake_db, anonymous):
    resp = client.post("/api/v1/leads", json=_application(phone="12345"))

    assert resp.status_code == 422
    assert resp.json()["message"].startswith("phone:")


def test_unknown_company_returns_404(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=None)))

    resp = client.post("/api/v1/leads", json=_application(companyId="nope"))

    assert resp.status_code == 404
    assert resp.json()["code"] == "company_not_found"
    assert fake_db.added == []


# -- resubmission ------------------------------------------------------------


def test_public_resubmission_updates_lead_in_place(client, fake_db, anonymous):
    owner = make_user(role="AGENT")
    original_created = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    lead = make_lead(
        status="QUALIFIED",
        current_owner_id=owner.id,
        created_at=original_created,
        application_count=2,
    )
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=lead)))

    resp = client.post(
        "/api/v1/leads",
        json=_application(isUpdate=True, leadId=str(lead.id), sin="***-***-789", city="Toronto"),
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["created"] is False
    assert lead.status == "UNASSIGNED"
    assert lead.current_owner_id == owner.id
    assert lead.application_count == 3
    assert lead.is_resubmission is True
    assert lead.last_application_date == original_created
    assert lead.created_at > original_created
    assert lead.sin_full == "123-456-789"
    assert lead.city == "Toronto"

    [note] = fake_db.added_of(Note)
    assert note.type == "RESUBMISSION"
    assert note.content == "Application resubmitted. Previous application date: 2025-03-01"
    assert note.user_id == owner.id
    assert fake_db.commits == 1


def test_resubmission_without_owner_credits_first_admin(client, fake_db, anonymous):
    admin_id = uuid4()
    lead = make_lead(status="DECLINED")
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=lead)))
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=admin_id)))

    resp = client.post("/api/v1/leads", json=_application(isUpdate=True, leadId=str(lead.id)))

    assert resp.status_code == 200
    assert fake_db.added_of(Note)[0].user_id == admin_id


def test_resubmission_of_missing_lead_returns_404(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=None)))

    resp = client.post("/api/v1/leads", json=_application(isUpdate=True, leadId=str(uuid4())))

    assert resp.status_code == 404
    assert resp.json()["message"] == "Lead not found for update"


def test_resubmission_cannot_take_over_another_applicants_lead(client, fake_db, anonymous):
    lead = make_lead(email="jane@example.com", phone="416-555-0100")
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=lead)))

    resp = client.post(
        "/api/v1/leads",
        json=_application(
            isUpdate=True,
            leadId=str(lead.id),
            firstName="Mallory",
            email="mallory@acme.com",
            phone="905-000-0000",
            sin="***-***-789",
        ),
    )

    assert resp.status_code == 404
    assert resp.json()["message"] == "Lead not found for update"
    assert lead.email == "jane@example.com"
    assert lead.first_name == "Jane"
    assert lead.application_count == 1
    assert fake_db.added == []
    assert fake_db.commits == 0


def test_resubmission_matches_on_phone_digits_alone(client, fake_db, anonymous):
    lead = make_lead(email="old@example.com", phone="416-555-0100")
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=lead)))
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=None)))

    resp = client.post(
        "/api/v1/leads",
        json=_application(isUpdate=True, leadId=str(lead.id), phone="(416) 555-0100"),
    )

    assert resp.status_code == 200
    assert lead.email == "jane@example.com"
    assert lead.application_count == 2


def test_update_requires_lead_id(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))

    resp = client.post("/api/v1/leads", json=_application(isUpdate=True))

    assert resp.status_code == 400
    assert resp.json()["code"] == "lead_id_required"


# -- internal submissions ----------------------------------------------------


def test_internal_edit_keeps_lifecycle_fields(client, fake_db, use_actor):
    agent = make_user(role="AGENT")
    use_actor(agent)
    lead = make_lead(status="CONNECTED", application_count=1)
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(Lead, FakeResult(scalar=lead)))

    resp = client.post(
        "/api/v1/leads",
        json=_application(isUpdate=True, isInternal=True, leadId=str(lead.id), lastName="Smith"),
    )

    assert resp.status_code == 200
    assert lead.last_name == "Smith"
    assert lead.status == "CONNECTED"
    assert lead.application_count == 1
    assert lead.is_resubmission is False
    [note] = fake_db.added_of(Note)
    assert note.type == "NOTE"
    assert note.content == lead_intake.INTERNAL_EDIT_NOTE
    assert note.user_id == agent.id


def test_internal_create_with_owner_is_connected(client, fake_db):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    owner = make_user(role="AGENT")
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=owner)))

    resp = client.post(
        "/api/v1/leads",
        json=_application(isInternal=True, ownerId=str(owner.id), consentGiven=False),
    )

    assert resp.status_code == 201
    [lead] = fake_db.added_of(Lead)
    assert lead.status == "CONNECTED"
    assert lead.current_owner_id == owner.id


def test_internal_create_with_inactive_owner_is_rejected(client, fake_db):
    fake_db.on_execute(entity_handler(Company, FakeResult(scalar=make_company())))
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=None)))

    resp = client.post(
        "/api/v1/leads",
        json=_application(isInternal=True, ownerId=str(uuid4())),
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "owner_not_assignable"
    assert fake_db.added_of(Lead) == []


def test_internal_submission_requires_authentication(client, fake_db, anonymous):
    resp = client.post("/api/v1/leads", json=_application(isInternal=True))

    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"


def test_internal_submission_uses_actor_company(client, fake_db, use_actor):
    use_actor(make_user(role="AGENT", company_id="other-co"))
    seen = []

    def _company(stmt):
        descriptions = stmt.column_descriptions
        if descriptions and descriptions[0].get("entity") is Company:
            seen.append(stmt.compile().params)
            return FakeResult(scalar=make_company(company_id="other-co"))
        return None

    fake_db.on_execute(_company)

    resp = client.post("/api/v1/leads", json=_application(isInternal=True, companyId="default"))

    assert resp.status_code == 201
    assert "other-co" in seen[0].values()
    assert fake_db.added_of(Lead)[0].company_id == "other-co"


# -- returning applicant lookup ---------------------------------------------


def test_check_returns_masked_prefill(client, fake_db, anonymous):
    lead = make_lead(city="Toronto")
    fake_db.on_execute(entity_handler(Lead, FakeResult(items=[lead])))

    resp = client.post(
        "/api/v1/leads/check", json={"email": "JANE@example.com", "phone": "(416) 555-0100"}
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["exists"] is True
    assert data["message"] == lead_intake.WELCOME_BACK_MESSAGE
    assert data["lead"]["sin_masked"] == "***-***-789"
    assert data["lead"]["sin_on_file"] is True
    assert data["lead"]["city"] == "Toronto"
    assert "sin" not in data["lead"]
    assert "123-456-789" not in resp.text


def test_check_without_match(client, fake_db, anonymous):
    fake_db.on_execute(entity_handler(Lead, FakeResult(items=[])))

    resp = client.post("/api/v1/leads/check", json={"email": "new@example.com", "phone": "4165550199"})

    assert resp.status_code == 200
    assert resp.json()["data"] == {"exists": False, "lead": None, "message": None}


def test_check_requires_email_and_phone(client, fake_db, anonymous):
    resp = client.post("/api/v1/leads/check", json={"email": "jane@example.com"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "contact_required"
