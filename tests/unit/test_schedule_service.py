from datetime import UTC, datetime

from webtracker.services.schedule_service import compute_schedule, resolve_timezone


def test_same_day_transit_one_hour_after_creation():
    schedule = compute_schedule(datetime(2024, 3, 4, 12, 0, tzinfo=UTC), "UK", "Nigeria")

    assert schedule.scheduled_transit_time == datetime(2024, 3, 4, 13, 0, tzinfo=UTC)
    assert schedule.out_for_delivery_time == datetime(2024, 3, 5, 8, 0, tzinfo=UTC)
    assert schedule.expected_delivery_time == datetime(2024, 3, 5, 10, 0, tzinfo=UTC)
    assert schedule.sender_timezone == "Europe/London"
    assert schedule.recipient_timezone == "Africa/Lagos"


def test_late_evening_rolls_to_next_business_morning():
    # 23:00 in Lagos
    schedule = compute_schedule(datetime(2024, 3, 4, 22, 0, tzinfo=UTC), "Nigeria", "UK")

    assert schedule.scheduled_transit_time == datetime(2024, 3, 5, 7, 0, tzinfo=UTC)
    assert schedule.expected_delivery_time == datetime(2024, 3, 6, 9, 0, tzinfo=UTC)


def test_early_morning_waits_for_business_day_start():
    # 05:00 in Lagos
    schedule = compute_schedule(datetime(2024, 3, 4, 4, 0, tzinfo=UTC), "nigeria", "usa")

    assert schedule.scheduled_transit_time == datetime(2024, 3, 4, 7, 0, tzinfo=UTC)


def test_ordering_invariant():
    for hour in range(24):
        schedule = compute_schedule(datetime(2024, 6, 1, hour, 30, tzinfo=UTC), "USA", "China")
        assert schedule.scheduled_transit_time < schedule.out_for_delivery_time
        assert schedule.out_for_delivery_time < schedule.expected_delivery_time


def test_unknown_country_uses_utc():
    assert resolve_timezone("Atlantis") == "UTC"
    assert resolve_timezone("  United Kingdom ") == "Europe/London"


def test_naive_input_is_treated_as_utc():
    schedule = compute_schedule(datetime(2024, 3, 4, 12, 0), "", "")

    assert schedule.scheduled_transit_time == datetime(2024, 3, 4, 13, 0, tzinfo=UTC)
