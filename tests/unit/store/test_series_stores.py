"""Behaviour shared by every SeriesStore implementation."""

from datetime import date, datetime
from typing import Any

import pytest
import pytz

from eventseries.recurrence.models import Frequency, RecurrenceRule
from eventseries.series.materializer import InstanceMaterializer
from eventseries.series.models import Event, ModifiedOccurrence
from eventseries.store.base import earliest_local_date

UTC = pytz.utc


class TestSeriesStoreContract:
    """Run against both the in-memory and the SQLite store."""

    @pytest.mark.asyncio
    async def test_get_event_when_saved_then_round_trips(
        self, any_store: Any, weekly_series: Event
    ) -> None:
        await any_store.save_event(weekly_series)

        loaded = await any_store.get_event("yoga")

        assert loaded == weekly_series
        assert loaded.recurrence_rule.days_of_week == [1, 3]

    @pytest.mark.asyncio
    async def test_get_event_when_missing_then_none(self, any_store: Any) -> None:
        assert await any_store.get_event("missing") is None

    @pytest.mark.asyncio
    async def test_insert_if_absent_when_id_exists_then_false_and_unchanged(
        self, any_store: Any, event_factory: Any
    ) -> None:
        assert await any_store.insert_if_absent(event_factory(title="First"))
        assert not await any_store.insert_if_absent(event_factory(title="Second"))

        stored = await any_store.get_event("standalone")
        assert stored.title == "First"

    @pytest.mark.asyncio
    async def test_save_event_when_id_exists_then_replaced(
        self, any_store: Any, event_factory: Any
    ) -> None:
        await any_store.save_event(event_factory(title="First"))
        await any_store.save_event(event_factory(title="Second"))

        stored = await any_store.get_event("standalone")
        assert stored.title == "Second"

    @pytest.mark.asyncio
    async def test_find_instances_when_series_materialized_then_only_its_instances(
        self, any_store: Any, weekly_series: Event, series_factory: Any
    ) -> None:
        other = series_factory("other")
        materializer = InstanceMaterializer(any_store)
        await materializer.materialize(weekly_series, [date(2024, 1, 3), date(2024, 1, 1)], modified=[])
        await materializer.materialize(other, [date(2024, 1, 1)], modified=[])

        instances = await any_store.find_instances("yoga")

        assert [i.id for i in instances] == ["yoga-2024-01-01", "yoga-2024-01-03"]

    @pytest.mark.asyncio
    async def test_find_events_in_range_when_templates_stored_then_excluded(
        self, any_store: Any, weekly_series: Event, event_factory: Any
    ) -> None:
        await any_store.save_event(weekly_series)
        await any_store.save_event(event_factory())
        await any_store.save_event(
            event_factory(
                "later",
                start=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
                end=datetime(2024, 3, 1, 10, 0, tzinfo=UTC),
            )
        )

        events = await any_store.find_events_in_range(
            datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 31, tzinfo=UTC)
        )

        assert [e.id for e in events] == ["standalone"]

    @pytest.mark.asyncio
    async def test_find_events_in_range_when_other_offset_then_compared_in_utc(
        self, any_store: Any, event_factory: Any
    ) -> None:
        eastern = pytz.timezone("America/New_York")
        await any_store.save_event(
            event_factory(
                "evening",
                start=eastern.localize(datetime(2024, 1, 5, 20, 0)),
                end=eastern.localize(datetime(2024, 1, 5, 21, 0)),
            )
        )

        # 20:00 EST is 01:00 UTC the next day
        events = await any_store.find_events_in_range(
            datetime(2024, 1, 6, 0, 30, tzinfo=UTC), datetime(2024, 1, 6, 1, 30, tzinfo=UTC)
        )

        assert [e.id for e in events] == ["evening"]

    @pytest.mark.asyncio
    async def test_find_series_templates_when_rule_ended_before_window_then_excluded(
        self, any_store: Any, weekly_series: Event, series_factory: Any
    ) -> None:
        ended = series_factory(
            "ended",
            rule=RecurrenceRule(frequency=Frequency.DAILY, end_date=date(2024, 1, 10)),
        )
        future = series_factory(
            "future",
            start=datetime(2024, 6, 1, 10, 0, tzinfo=UTC),
            end=datetime(2024, 6, 1, 11, 0, tzinfo=UTC),
        )
        for event in (weekly_series, ended, future):
            await any_store.save_event(event)

        templates = await any_store.find_series_templates(
            datetime(2024, 2, 1, tzinfo=UTC), datetime(2024, 2, 29, tzinfo=UTC)
        )

        assert [t.id for t in templates] == ["yoga"]

    @pytest.mark.asyncio
    async def test_find_series_templates_when_rule_ends_on_local_window_day_then_included(
        self, any_store: Any, series_factory: Any
    ) -> None:
        evening = series_factory(
            "evening",
            rule=RecurrenceRule(frequency=Frequency.DAILY, end_date=date(2024, 1, 1)),
            start=datetime(2023, 12, 1, 15, 0, tzinfo=UTC),
            end=datetime(2023, 12, 1, 16, 0, tzinfo=UTC),
            timezone="America/New_York",
        )
        await any_store.save_event(evening)

        # 01:00 UTC on Jan 2 is still the evening of Jan 1 in New York
        templates = await any_store.find_series_templates(
            datetime(2024, 1, 2, 1, 0, tzinfo=UTC), datetime(2024, 1, 2, 23, 0, tzinfo=UTC)
        )

        assert [t.id for t in templates] == ["evening"]

    @pytest.mark.asyncio
    async def test_modified_occurrences_when_saved_and_deleted_then_listed_by_series(
        self, any_store: Any, weekly_series: Event
    ) -> None:
        instance = InstanceMaterializer(any_store).build_instance(weekly_series, date(2024, 1, 3))
        await any_store.save_event(instance)
        entry = ModifiedOccurrence(
            parent_event_id="yoga", occurrence_date=date(2024, 1, 3), event_id=instance.id
        )

        await any_store.save_modified_occurrence(entry)

        assert await any_store.get_modified_occurrences("yoga") == [entry]
        assert await any_store.get_modified_occurrences("other") == []
        assert await any_store.delete_modified_occurrence("yoga", date(2024, 1, 3))
        assert not await any_store.delete_modified_occurrence("yoga", date(2024, 1, 3))

    @pytest.mark.asyncio
    async def test_delete_event_when_instance_modified_then_entry_removed_too(
        self, any_store: Any, weekly_series: Event
    ) -> None:
        instance = InstanceMaterializer(any_store).build_instance(weekly_series, date(2024, 1, 3))
        await any_store.save_event(instance)
        await any_store.save_modified_occurrence(
            ModifiedOccurrence(
                parent_event_id="yoga", occurrence_date=date(2024, 1, 3), event_id=instance.id
            )
        )

        assert await any_store.delete_event(instance.id)

        assert await any_store.get_modified_occurrences("yoga") == []
        assert not await any_store.delete_event(instance.id)

    @pytest.mark.asyncio
    async def test_store_when_used_as_context_manager_then_initialized(
        self, any_store: Any, event_factory: Any
    ) -> None:
        async with any_store as store:
            await store.save_event(event_factory())

            assert await store.get_event("standalone") is not None


class TestEarliestLocalDate:
    def test_earliest_local_date_when_utc_morning_then_previous_day(self) -> None:
        assert earliest_local_date(datetime(2024, 1, 2, 1, 0, tzinfo=UTC)) == date(2024, 1, 1)

    def test_earliest_local_date_when_utc_afternoon_then_same_day(self) -> None:
        assert earliest_local_date(datetime(2024, 1, 2, 13, 0, tzinfo=UTC)) == date(2024, 1, 2)

    def test_earliest_local_date_when_offset_given_then_read_as_instant(self) -> None:
        tokyo_morning = pytz.timezone("Asia/Tokyo").localize(datetime(2024, 1, 2, 8, 0))

        assert earliest_local_date(tokyo_morning) == date(2024, 1, 1)
