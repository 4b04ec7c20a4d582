from datetime import date, datetime, timedelta, timezone

from app.services import dashboard
from conftest import FakeResult, make_user, sequence_handler


def test_daily_series_is_zero_filled_and_oldest_first():
    today = date(2025, 3, 31)
    rows = [
        (datetime(2025, 3, 31, 9, tzinfo=timezone.utc), False),
        (datetime(2025, 3, 31, 10, tzinfo=timezone.utc), True),
        (datetime(2025, 3, 29, 10, tzinfo=timezone.utc), False),
        (datetime(2024, 12, 1, tzinfo=timezone.utc), False),
    ]

    series = dashboard.build_daily_series(rows, today, days=5)

    assert [point.date for point in series] == [
        "2025-03-27",
        "2025-03-28",
        "2025-03-29",
        "2025-03-30",
        "2025-03-31",
    ]
    assert [(point.new, point.resubmitted) for point in series] == [
        (0, 0),
        (0, 0),
        (1, 0),
        (0, 0),
        (1, 1),
    ]


def test_dashboard_stats(client, fake_db):
    owner = make_user(role="AGENT", first_name="Olive", last_name="Owner")
    now = datetime.now(timezone.utc)
    fake_db.on_execute(
        sequence_handler(
            [
                FakeResult(scalar=20),  # total
                FakeResult(scalar=4),  # mine
                FakeResult(scalar=6),  # unassigned
                FakeResult(scalar=8),  # this month
                FakeResult(scalar=5),  # funded
                FakeResult(scalar=3),  # resubmitted
                FakeResult(rows=[("UNASSIGNED", 6), ("FUNDED", 5), ("CONNECTED", 9)]),
                FakeResult(rows=[("PERSONAL_LOAN", 15), ("HOME_EQUITY", 5)]),
                FakeResult(rows=[(owner.id, 12), (None, 6), (make_user().id, 2)]),
                FakeResult(items=[owner]),
                FakeResult(rows=[(now, False), (now, True), (now - timedelta(days=1), False)]),
            ]
        )
    )

    resp = client.get("/api/v1/dashboard/stats")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["cards"] == {
        "totalLeads": 20,
        "myLeads": 4,
        "unassignedLeads": 6,
        "leadsThisMonth": 8,
        "conversionRate": "25.0",
        "resubmittedLeads": 3,
    }
    charts = data["charts"]
    assert charts["leadsByStatus"][1] == {"name": "FUNDED", "value": 5}
    assert charts["leadsByLoanType"][0] == {"name": "PERSONAL_LOAN", "value": 15}
    assert [row["name"] for row in charts["leadsByOwner"]] == ["Olive Owner", "Unassigned", "Unknown"]
    assert charts["leadsByOwner"][0]["ownerId"] == str(owner.id)

    over_time = charts["leadsOverTime"]
    assert len(over_time) == dashboard.TREND_DAYS
    assert over_time[-1] == {"date": now.date().isoformat(), "New": 1, "Resubmitted": 1}
    assert over_time[-2]["New"] == 1


def test_empty_company_dashboard(client, fake_db):
    fake_db.on_execute_return(FakeResult(scalar=0))

    resp = client.get("/api/v1/dashboard/stats")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["cards"]["totalLeads"] == 0
    assert data["cards"]["conversionRate"] == "0.0"
    assert data["charts"]["leadsByOwner"] == []
    assert sum(point["New"] for point in data["charts"]["leadsOverTime"]) == 0
