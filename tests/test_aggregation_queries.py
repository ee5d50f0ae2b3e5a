from datetime import datetime
from affiliate_dashboard.models.db.enums import ConversionStatus
from affiliate_dashboard.services.aggregation_queries import AggregationQueries
from affiliate_dashboard.services.commission import OfferCount
from affiliate_dashboard.services.time_ranges import TimeWindow, month_bounds, week_bounds
NOW_NAIVE = datetime(2026, 10, 16, 14, 30)
OCTOBER = TimeWindow(datetime(2026, 10, 1), datetime(2026, 11, 1))


def test_clicks_by_offer_scoped_to_publisher(session_factory, publisher_factory, offer_factory, click_factory):
    pub, other = publisher_factory(), publisher_factory()
    offer_a, offer_b = offer_factory("A"), offer_factory("B")
    click_factory(pub, offer_a, count=3)
    click_factory(pub, offer_b, count=2)
    click_factory(other, offer_a, count=5)

    scoped = AggregationQueries(session_factory, pub.id).clicks_by_offer()
    assert scoped == [OfferCount(offer_a.id, pub.id, 3), OfferCount(offer_b.id, pub.id, 2)]


def test_platform_clicks_by_offer_keep_publishers_apart(
    session_factory, publisher_factory, offer_factory, click_factory
):
    pub, other = publisher_factory(), publisher_factory()
    offer_a, offer_b = offer_factory("A"), offer_factory("B")
    click_factory(pub, offer_a, count=3)
    click_factory(pub, offer_b, count=2)
    click_factory(other, offer_a, count=5)

    platform = AggregationQueries(session_factory).clicks_by_offer()
    assert {row.key: row.raw_count for row in platform} == {
        (offer_a.id, pub.id): 3,
        (offer_a.id, other.id): 5,
        (offer_b.id, pub.id): 2,
    }


def test_month_window_includes_last_millisecond(session_factory, publisher_factory, offer_factory, click_factory):
    pub, offer = publisher_factory(), offer_factory()
    click_factory(pub, offer, at=datetime(2026, 10, 31, 23, 59, 59, 999000))
    click_factory(pub, offer, at=datetime(2026, 11, 1))
    click_factory(pub, offer, at=datetime(2026, 10, 1))
    rows = AggregationQueries(session_factory, pub.id).clicks_by_offer(month_bounds(NOW_NAIVE))
    assert rows == [OfferCount(offer.id, pub.id, 2)]


def test_conversions_by_offer_sums_money_and_approvals(
    session_factory, publisher_factory, offer_factory, conversion_factory
):
    pub, offer = publisher_factory(), offer_factory()
    conversion_factory(pub, offer, count=2, amount=40.0, commission=4.25, status=ConversionStatus.APPROVED)
    conversion_factory(pub, offer, count=1, amount=10.5, commission=1.0)
    (row,) = AggregationQueries(session_factory, pub.id).conversions_by_offer(OCTOBER)
    assert (row.offer_id, row.publisher_id) == (offer.id, pub.id)
    assert row.conversions == 3
    assert row.commission == 9.5
    assert row.revenue == 90.5
    assert row.approved == 2


def test_click_counts_split_unique_and_total(session_factory, publisher_factory, offer_factory, click_factory):
    pub, offer = publisher_factory(), offer_factory()
    click_factory(pub, offer, count=10, unique=4)
    (row,) = AggregationQueries(session_factory, pub.id).click_counts_by_offer(OCTOBER)
    assert (row.unique_count, row.total_count) == (4, 10)


def test_daily_and_hourly_labels(session_factory, publisher_factory, offer_factory, click_factory, conversion_factory):
    pub, offer = publisher_factory(), offer_factory()
    click_factory(pub, offer, at=datetime(2026, 10, 3, 9, 15), count=2)
    click_factory(pub, offer, at=datetime(2026, 10, 16, 13, 5))
    conversion_factory(pub, offer, at=datetime(2026, 10, 3, 10, 0), commission=3.0, count=2)
    queries = AggregationQueries(session_factory, pub.id)

    assert queries.clicks_by_day(OCTOBER) == [("2026-10-03", 2), ("2026-10-16", 1)]
    assert queries.clicks_by_hour(OCTOBER) == [("09:00", 2), ("13:00", 1)]
    assert queries.conversions_by_day(OCTOBER) == [("2026-10-03", 2)]
    assert queries.commission_by_day(OCTOBER) == [("2026-10-03", 6.0)]


def test_clicks_by_weekday_restricted_to_week(session_factory, publisher_factory, offer_factory, click_factory):
    pub, offer = publisher_factory(), offer_factory()
    click_factory(pub, offer, at=datetime(2026, 10, 12, 8), count=2)  # Monday
    click_factory(pub, offer, at=datetime(2026, 10, 16, 8))  # Friday
    click_factory(pub, offer, at=datetime(2026, 10, 11, 8), count=7)  # previous Sunday
    rows = AggregationQueries(session_factory, pub.id).clicks_by_weekday(week_bounds(NOW_NAIVE))
    assert [(row.weekday_label, row.clicks) for row in rows] == [("Mon", 2), ("Fri", 1)]


def test_clicks_by_geo_top_n_with_unknown(session_factory, publisher_factory, offer_factory, click_factory):
    pub, offer = publisher_factory(), offer_factory()
    click_factory(pub, offer, geo="US", count=3)
    click_factory(pub, offer, geo="DE", count=3)
    click_factory(pub, offer, geo="FR", count=1)
    click_factory(pub, offer, geo=None, count=2)
    click_factory(pub, offer, geo="", count=1)
    rows = AggregationQueries(session_factory, pub.id).clicks_by_geo(OCTOBER, limit=3)
    # NULL and empty geos merge into one group; equal counts keep their sorted order
    assert rows == [("Unknown", 3), ("DE", 3), ("US", 3)]


def test_commission_cuts_publisher_and_platform(
    session_factory, publisher_factory, offer_factory, agreement_factory
):
    pub_a, pub_b = publisher_factory(), publisher_factory()
    offer, unconfigured = offer_factory("Configured"), offer_factory("Bare")
    agreement_factory(offer, pub_a, cut=20)
    agreement_factory(offer, pub_b, cut=None)

    cuts = AggregationQueries(session_factory, pub_a.id).commission_cuts()
    assert cuts[(offer.id, pub_a.id)] == 20.0
    assert cuts[(unconfigured.id, pub_a.id)] == 0.0
    # scoped lookups only carry the requesting publisher's agreements
    assert (offer.id, pub_b.id) not in cuts

    assert AggregationQueries(session_factory, pub_b.id).commission_cuts()[(offer.id, pub_b.id)] == 0.0

    platform = AggregationQueries(session_factory).commission_cuts()
    assert platform[(offer.id, pub_a.id)] == 20.0
    assert platform[(offer.id, pub_b.id)] == 0.0
    assert len(platform) == 2


def test_offer_names_skip_blank(session_factory, offer_factory):
    named, unnamed = offer_factory("Named"), offer_factory(None)
    names = AggregationQueries(session_factory).offer_names()
    assert names[named.id] == "Named"
    assert unnamed.id not in names
