"""Unit tests for the Event model and materialization results."""

from datetime import date, datetime, timedelta, timezone

import pytz

from eventseries.series.models import (
    Event,
    MaterializationFailure,
    MaterializationResult,
    SeriesStatus,
)


class TestEvent:
    """Event model behaviour."""

    def test_event_when_naive_datetimes_then_taken_as_utc(self) -> None:
        event = Event(id="e", title="t", start=datetime(2024, 1, 1, 9), end=datetime(2024, 1, 1, 10))

        assert event.start.tzinfo is not None
        assert event.start.utcoffset() == timedelta(0)

    def test_local_start_when_timezone_set_then_converted(self) -> None:
        event = Event(
            id="e",
            title="t",
            start=datetime(2024, 7, 1, 16, 0, tzinfo=timezone.utc),
            end=datetime(2024, 7, 1, 17, 0, tzinfo=timezone.utc),
            timezone="America/Los_Angeles",
        )

        assert event.local_start.hour == 9
        assert event.time_of_day.hour == 9

    def test_local_start_when_timezone_unknown_then_start_unchanged(self) -> None:
        start = datetime(2024, 7, 1, 16, 0, tzinfo=timezone.utc)
        event = Event(id="e", title="t", start=start, end=start, timezone="Mars/Olympus")

        assert event.local_start == start

    def test_local_start_when_no_timezone_then_offset_of_start_kept(self) -> None:
        plus_five = timezone(timedelta(hours=5))
        start = datetime(2024, 1, 1, 0, 30, tzinfo=plus_five)
        event = Event(id="e", title="t", start=start, end=start + timedelta(hours=1))

        assert event.timezone is None
        assert event.local_start.date() == date(2024, 1, 1)
        assert event.local_start.utcoffset() == timedelta(hours=5)

    def test_overlaps_when_touching_window_edge_then_true(self) -> None:
        event = Event(
            id="e",
            title="t",
            start=datetime(2024, 1, 1, 9, tzinfo=pytz.utc),
            end=datetime(2024, 1, 1, 10, tzinfo=pytz.utc),
        )

        assert event.overlaps(datetime(2024, 1, 1, 10, tzinfo=pytz.utc), datetime(2024, 1, 2, tzinfo=pytz.utc))
        assert not event.overlaps(
            datetime(2024, 1, 1, 10, 1, tzinfo=pytz.utc), datetime(2024, 1, 2, tzinfo=pytz.utc)
        )

    def test_series_template_when_flag_without_rule_then_not_template(self) -> None:
        event = Event(
            id="e",
            title="t",
            start=datetime(2024, 1, 1, 9),
            end=datetime(2024, 1, 1, 10),
            is_recurring=True,
        )

        assert not event.is_series_template
        assert not event.is_instance

    def test_event_when_dumped_to_json_then_datetimes_iso_and_status_value(
        self, weekly_series: Event
    ) -> None:
        template = weekly_series.model_copy(update={"series_status": SeriesStatus.ACTIVE})

        data = template.model_dump(mode="json")

        assert data["start"] == "2024-01-01T10:00:00+00:00"
        assert data["series_status"] == "active"
        assert data["recurrence_rule"]["frequency"] == "weekly"


class TestMaterializationResult:
    """Result bookkeeping."""

    def test_result_when_empty_then_ok(self) -> None:
        assert MaterializationResult().ok

    def test_result_when_failures_then_not_ok_and_dates_listed(self) -> None:
        result = MaterializationResult(
            failures=[MaterializationFailure(date(2024, 1, 8), "locked")]
        )

        assert not result.ok
        assert result.failed_dates == [date(2024, 1, 8)]
