from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from affiliate_dashboard.main import app
from affiliate_dashboard.api import deps
from affiliate_dashboard.services.aggregation_queries import AggregationQueries

THURSDAY = datetime(2026, 10, 15, 10, 0)


def _seed(publisher_factory, offer_factory, agreement_factory, click_factory, conversion_factory):
    pub, offer = publisher_factory(), offer_factory("Spring Sale")
    agreement_factory(offer, pub, cut=20)
    click_factory(pub, offer, at=THURSDAY, count=100, unique=60)
    conversion_factory(pub, offer, at=THURSDAY, count=10)
    return pub


def test_publisher_dashboard_returns_camel_case_report(
    client, publisher_factory, offer_factory, agreement_factory, click_factory, conversion_factory
):
    pub = _seed(publisher_factory, offer_factory, agreement_factory, click_factory, conversion_factory)

    r = client.get("/api/v1/dashboard", params={"publisher_id": pub.id})

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["scope"] == "publisher"
    assert data["publisherId"] == pub.id
    assert data["totalClicks"] == 100
    assert data["totalConversions"] == 8
    assert data["rawTotalConversions"] == 10
    assert data["conversionsDifference"] == 2
    assert data["avgCommissionCut"] == 20.0
    assert data["conversionRate"] == 16.67
    assert data["netUniqueClicks"] == 48
    assert len(data["clicksOverTime"]) == 31
    assert len(data["weeklyClicks"]) == 7
    assert data["topPerformingOffers"][0]["offerName"] == "Spring Sale"
    assert data["recentActivity"] is not None
    assert "total_clicks" not in data
    assert r.headers.get("X-Request-ID")
    assert r.headers.get("X-Process-Time")


def test_publisher_identity_from_header(client, publisher_factory):
    pub = publisher_factory()
    r = client.get("/api/v1/dashboard", headers={"X-Publisher-ID": str(pub.id)})
    assert r.status_code == 200, r.text
    assert r.json()["publisherId"] == pub.id


def test_missing_publisher_identity_is_client_error(client):
    r = client.get("/api/v1/dashboard", headers={"X-Request-ID": "req-123"})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "publisher_id is required"
    assert body["request_id"] == "req-123"


def test_malformed_publisher_identity_is_client_error(client):
    for value in ("abc", "0", "-5"):
        r = client.get("/api/v1/dashboard", params={"publisher_id": value})
        assert r.status_code == 400, value


def test_malformed_dates_fall_back_to_current_month(client, publisher_factory):
    pub = publisher_factory()
    r = client.get(
        "/api/v1/dashboard",
        params={"publisher_id": pub.id, "start_date": "yesterday", "end_date": "2026-10-05"},
    )
    assert r.status_code == 200
    window = r.json()["window"]
    assert window == {"start": "2026-10-01", "end": "2026-11-01", "custom": False}


def test_custom_range_and_recent_activity_toggle(client, publisher_factory):
    pub = publisher_factory()
    r = client.get(
        "/api/v1/dashboard",
        params={
            "publisher_id": pub.id,
            "start_date": "2026-10-05",
            "end_date": "2026-10-11",
            "include_recent": "false",
        },
    )
    assert r.status_code == 200
    data = r.json()
    assert data["window"]["custom"] is True
    assert [p["period"] for p in data["clicksOverTime"]][0] == "2026-10-05"
    assert len(data["clicksOverTime"]) == 7
    assert data["recentActivity"] is None


def test_admin_dashboard_is_platform_wide(
    client, publisher_factory, offer_factory, agreement_factory, click_factory, conversion_factory
):
    _seed(publisher_factory, offer_factory, agreement_factory, click_factory, conversion_factory)
    other, offer = publisher_factory(), offer_factory("Other")
    click_factory(other, offer, at=THURSDAY, count=5)

    r = client.get("/api/v1/admin/dashboard")

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["scope"] == "platform"
    assert data["publisherId"] is None
    assert data["totalClicks"] == 105


def test_data_layer_failure_returns_500(client, tmp_path):
    broken = sessionmaker(bind=create_engine(f"sqlite+pysqlite:///{tmp_path / 'missing' / 'store.db'}"))
    previous = app.dependency_overrides[deps.get_session_factory]
    app.dependency_overrides[deps.get_session_factory] = lambda: broken
    try:
        r = client.get("/api/v1/dashboard", params={"publisher_id": 1})
        admin = client.get("/api/v1/admin/dashboard")
    finally:
        app.dependency_overrides[deps.get_session_factory] = previous

    assert r.status_code == 500
    assert r.json()["message"] == "Failed to fetch dashboard data"
    assert r.json()["success"] is False
    assert admin.status_code == 500


def test_unexpected_aggregate_error_returns_fetch_failure(client, publisher_factory, monkeypatch):
    pub = publisher_factory()

    def _broken(self):
        raise KeyError("name")

    monkeypatch.setattr(AggregationQueries, "offer_names", _broken)

    r = client.get("/api/v1/dashboard", params={"publisher_id": pub.id})

    assert r.status_code == 500
    assert r.json()["message"] == "Failed to fetch dashboard data"


def test_health_endpoints(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"

    detailed = client.get("/health/detailed")
    assert detailed.status_code == 200
    assert "database" in detailed.json()["checks"]

    root = client.get("/")
    assert root.json()["api_base"] == "/api/v1"
