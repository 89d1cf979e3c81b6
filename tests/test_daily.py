from datetime import date

from salesledger.backend.aggregator import (
    DailySalesAggregator,
    EngagementEvent,
    FollowUpStatus,
    SalesFilter,
    aggregate_daily_sales,
)
from salesledger.backend.aggregator.daily import UNKNOWN_BRAND, UNKNOWN_PRODUCT

from conftest import closed_won, make_customer, make_sale


def test_single_closed_won_event_creates_one_bucket(march, scenario_a_customer):
    buckets = DailySalesAggregator([scenario_a_customer], [], march).aggregate()

    assert list(buckets) == [date(2024, 3, 15)]
    bucket = buckets[date(2024, 3, 15)]
    assert bucket.engagement_revenue == 5000
    assert bucket.engagement_count == 1
    assert bucket.pos_count == 0
    assert bucket.pos_details == []
    assert bucket.salespersons_involved == ["Ravi"]

    line = bucket.engagement_details[0]
    assert line.customer_name == "Asha Verma"
    assert line.mobile == "9876543210"
    assert line.location == "Pune"
    assert line.remarks == "Paid in full"
    assert line.amount == 5000


def test_scheduled_event_creates_no_bucket(march):
    customer = make_customer(events=[EngagementEvent(date="2024-03-15", status=FollowUpStatus.SCHEDULED)])
    assert DailySalesAggregator([customer], [], march).aggregate() == {}


def test_engagement_and_pos_share_a_day(march, scenario_a_customer, scenario_c_sale):
    buckets = aggregate_daily_sales([scenario_a_customer], [scenario_c_sale], march)

    assert len(buckets) == 1
    bucket = buckets[0]
    assert bucket.engagement_count == 1
    assert bucket.pos_count == 1
    assert bucket.units_sold == 3
    assert bucket.total_count == 2

    pos_line = bucket.pos_details[0]
    assert pos_line.product_name == "Split AC 1.5T"
    assert pos_line.bill_number == "B-101"
    assert pos_line.description == "3 units of Split AC 1.5T"


def test_window_without_records_is_empty(mixed_records):
    customers, sales = mixed_records
    april = SalesFilter.from_params("2024-04-10", "2024-04-30")
    assert DailySalesAggregator(customers, sales, april).aggregate() == {}


def test_same_day_events_are_not_merged(march):
    customer = make_customer(events=[closed_won("2024-03-15", 1000), closed_won("2024-03-15", 2000)])
    bucket = DailySalesAggregator([customer], [], march).aggregate()[date(2024, 3, 15)]

    assert bucket.engagement_count == 2
    assert bucket.engagement_revenue == 3000
    assert [line.amount for line in bucket.engagement_details] == [1000, 2000]
    assert bucket.salespersons_involved == ["Ravi"]


def test_every_bucket_has_a_qualifying_event(mixed_records, march):
    customers, sales = mixed_records
    buckets = DailySalesAggregator(customers, sales, march).aggregate()

    assert buckets
    for bucket in buckets.values():
        assert bucket.engagement_count + bucket.pos_count > 0


def test_revenue_matches_detail_lines(mixed_records, march):
    customers, sales = mixed_records
    for bucket in DailySalesAggregator(customers, sales, march).aggregate().values():
        assert bucket.engagement_revenue >= 0
        assert bucket.engagement_revenue == sum(line.amount for line in bucket.engagement_details)


def test_aggregation_is_idempotent(mixed_records, march):
    customers, sales = mixed_records
    aggregator = DailySalesAggregator(customers, sales, march)

    first = aggregator.aggregate()
    first_snapshot = {day: bucket.to_dict() for day, bucket in first.items()}
    second = aggregator.aggregate()

    assert set(first_snapshot) == set(second)
    for day, bucket in second.items():
        assert bucket.to_dict() == first_snapshot[day]


def test_fold_order_across_sources_does_not_change_totals(mixed_records, march):
    customers, sales = mixed_records
    forward = DailySalesAggregator(customers, sales, march).aggregate()

    reverse = DailySalesAggregator(customers, sales, march)
    reverse._fold_pos()
    reverse._fold_engagement()

    assert set(forward) == set(reverse.buckets)
    for day, bucket in forward.items():
        other = reverse.buckets[day]
        assert other.engagement_revenue == bucket.engagement_revenue
        assert other.engagement_count == bucket.engagement_count
        assert other.pos_count == bucket.pos_count
        assert other.engagement_details == bucket.engagement_details
        assert other.pos_details == bucket.pos_details


def test_buckets_sorted_newest_first(mixed_records, march):
    customers, sales = mixed_records
    days = [bucket.date for bucket in aggregate_daily_sales(customers, sales, march)]

    assert days == [date(2024, 3, 20), date(2024, 3, 17), date(2024, 3, 15)]


def test_detail_lines_follow_source_order(mixed_records, march):
    customers, sales = mixed_records
    buckets = DailySalesAggregator(customers, sales, march).aggregate()
    bucket = buckets[date(2024, 3, 15)]

    assert [line.customer_name for line in bucket.engagement_details] == ["Asha Verma", "Meera Iyer"]
    assert bucket.salespersons_involved == ["Ravi", "Anil"]
    assert bucket.engagement_revenue == 7500


def test_engagement_channel_drops_pos_only_days(mixed_records, march):
    customers, sales = mixed_records
    sales_filter = SalesFilter.from_params("2024-03-01", "2024-03-31", channel="engagement")
    buckets = DailySalesAggregator(customers, sales, sales_filter).aggregate()

    assert set(buckets) == {date(2024, 3, 15), date(2024, 3, 20)}
    # 両チャネルとも集約済み
    assert buckets[date(2024, 3, 15)].pos_count == 1


def test_pos_channel_drops_engagement_only_days(mixed_records):
    customers, sales = mixed_records
    sales_filter = SalesFilter.from_params("2024-03-01", "2024-03-31", channel="pos")
    buckets = DailySalesAggregator(customers, sales, sales_filter).aggregate()

    assert set(buckets) == {date(2024, 3, 15), date(2024, 3, 17)}
    assert buckets[date(2024, 3, 15)].engagement_count == 2


def test_salesperson_filter(mixed_records):
    customers, sales = mixed_records
    sales_filter = SalesFilter.from_params("2024-03-01", "2024-03-31", salesperson_id="sp2")
    buckets = DailySalesAggregator(customers, sales, sales_filter).aggregate()

    assert buckets[date(2024, 3, 15)].engagement_revenue == 2500
    assert date(2024, 3, 20) not in buckets
    # 在庫販売は担当者で絞り込まない
    assert date(2024, 3, 17) in buckets


def test_bad_dates_are_skipped(mixed_records, march):
    customers, sales = mixed_records
    sales = sales + [make_sale("s9", "31/31/2024", 4)]
    aggregator = DailySalesAggregator(customers, sales, march)
    buckets = aggregator.aggregate()

    assert aggregator.skipped_dates == 2
    assert sum(bucket.units_sold for bucket in buckets.values()) == 4


def test_inverted_window_yields_empty_result(mixed_records):
    customers, sales = mixed_records
    inverted = SalesFilter.from_params("2024-03-31", "2024-03-01")
    assert DailySalesAggregator(customers, sales, inverted).aggregate() == {}


def test_missing_product_details_use_fallbacks(march):
    sale = make_sale(product_name="", brand_name="")
    sale.model_number = ""
    bucket = aggregate_daily_sales([], [sale], march)[0]

    line = bucket.pos_details[0]
    assert line.product_name == UNKNOWN_PRODUCT
    assert line.brand_name == UNKNOWN_BRAND
    assert line.model_number == ""


def test_bucket_to_dict(march, scenario_a_customer, scenario_c_sale):
    bucket = aggregate_daily_sales([scenario_a_customer], [scenario_c_sale], march)[0]
    result = bucket.to_dict()

    assert result['date'] == "2024-03-15"
    assert result['display_date'] == "15/03/2024"
    assert result['full_date'] == "Friday, 15 March 2024"
    assert result['average_sale_amount'] == 5000
    assert result['pos_details'][0]['description'] == "3 units of Split AC 1.5T"


def test_non_finite_amount_does_not_qualify(march):
    customer = make_customer(events=[closed_won("2024-03-15", float("inf")), closed_won("2024-03-15", 800)])
    bucket = aggregate_daily_sales([customer], [], march)[0]

    assert bucket.engagement_count == 1
    assert bucket.engagement_revenue == 800
