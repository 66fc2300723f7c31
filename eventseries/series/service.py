"""Series operations: materializing windows, listing calendars, editing occurrences."""

import logging
from datetime import date, datetime
from typing import Any, Optional

from ..recurrence.generator import OccurrenceGenerator
from ..recurrence.models import RecurrenceRule
from ..recurrence.validation import validate_rule
from ..store.base import SeriesStore
from ..utils.helpers import ensure_timezone_aware, get_timezone_aware_now
from .exceptions import (
    MaterializationError,
    NotRecurringError,
    OccurrenceLimitError,
    OccurrenceNotFoundError,
    SeriesCancelledError,
    SeriesError,
    SeriesNotFoundError,
)
from .materializer import InstanceMaterializer
from .models import Event, MaterializationResult, ModifiedOccurrence, SeriesStatus, instance_id

logger = logging.getLogger(__name__)

# Fields a single-occurrence edit may change
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "location",
        "category",
        "status",
        "is_virtual",
        "meeting_url",
        "price",
        "image_url",
        "featured",
        "start",
        "end",
    }
)


def _sorted_by_start(events: list[Event]) -> list[Event]:
    return sorted(events, key=lambda e: (e.start, e.id))


class SeriesService:
    """Entry point for everything a calendar needs from recurring series.

    The store is injected; pass :class:`~eventseries.store.SQLiteSeriesStore`
    in production and :class:`~eventseries.store.InMemorySeriesStore` in
    tests.
    """

    def __init__(
        self,
        store: SeriesStore,
        settings: Optional[Any] = None,
        generator: Optional[OccurrenceGenerator] = None,
        materializer: Optional[InstanceMaterializer] = None,
    ) -> None:
        """Initialize series service.

        Args:
            store: Storage backend
            settings: Application settings (occurrence cap is read from it)
            generator: Occurrence generator, built from settings if omitted
            materializer: Instance materializer, built on ``store`` if omitted
        """
        self.store = store
        self.settings = settings
        self.generator = generator or OccurrenceGenerator(settings)
        self.materializer = materializer or InstanceMaterializer(store)

    def _aware(self, dt: datetime) -> datetime:
        """Naive window bounds are read in the configured timezone."""
        return ensure_timezone_aware(dt, getattr(self.settings, "timezone", None))

    async def _get_series(self, parent_event_id: str) -> Event:
        parent = await self.store.get_event(parent_event_id)
        if parent is None:
            raise SeriesNotFoundError(f"Parent event not found: {parent_event_id}", parent_event_id)
        if not parent.is_series_template:
            raise NotRecurringError(f"Event is not recurring: {parent_event_id}", parent_event_id)
        return parent

    async def _save_rule(self, parent: Event, rule: RecurrenceRule) -> Event:
        updated = parent.model_copy(
            update={"recurrence_rule": rule, "updated_at": get_timezone_aware_now()}
        )
        await self.store.save_event(updated)
        return updated

    # Authoring

    async def create_event(self, event: Event) -> Event:
        """Store a standalone event, or a series template if it carries a rule."""
        if event.recurrence_rule is not None:
            return await self.create_series(event)

        if not await self.store.insert_if_absent(event):
            raise SeriesError(f"Event already exists: {event.id}", event.id)
        logger.info(f"Created event {event.id}")
        return event

    async def create_series(self, parent: Event) -> Event:
        """Validate and store a series template in the draft state.

        Raises:
            NotRecurringError: If the event has no recurrence rule
            RuleValidationError: If the rule is invalid
            SeriesError: If an event with the same id exists
        """
        if parent.recurrence_rule is None:
            raise NotRecurringError(f"Event has no recurrence rule: {parent.id}", parent.id)
        validate_rule(parent.recurrence_rule)

        template = parent.model_copy(
            update={
                "is_recurring": True,
                "series_status": SeriesStatus.DRAFT,
                "parent_event_id": None,
                "original_start_date": None,
                "is_generated": False,
            }
        )
        if not await self.store.insert_if_absent(template):
            raise SeriesError(f"Event already exists: {parent.id}", parent.id)

        logger.info(f"Created {template.recurrence_rule.frequency.value} series {template.id}")
        if not template.recurrence_rule.has_terminator:
            logger.debug(f"Series {template.id} is open-ended; expansion is bounded by query windows")
        return template

    async def update_rule(self, parent_event_id: str, rule: RecurrenceRule) -> Event:
        """Replace the rule of a series.

        Instances that were already materialized are left as they are.
        """
        parent = await self._get_series(parent_event_id)
        validate_rule(rule)
        return await self._save_rule(parent, rule)

    # Materialization

    async def materialize_window(
        self, parent_event_id: str, window_start: datetime, window_end: datetime
    ) -> MaterializationResult:
        """Persist the missing instances of a series for a window.

        Returns:
            Result with created instances and per-date failures; ``truncated``
            is set when the occurrence cap cut the window short. Cancelled
            series and inverted windows produce an empty result.
        """
        window_start, window_end = self._aware(window_start), self._aware(window_end)
        parent = await self._get_series(parent_event_id)
        if window_end < window_start or parent.series_status == SeriesStatus.CANCELLED:
            return MaterializationResult()

        existing = await self.store.find_instances(parent_event_id)
        existing_dates = [i.original_start_date for i in existing if i.original_start_date]

        # Start early enough to catch occurrences that began before the window but still overlap it
        expansion = self.generator.expand(
            parent.recurrence_rule,
            parent.local_start,
            window_start - parent.duration,
            window_end,
            existing_dates=existing_dates,
        )
        result = await self.materializer.materialize(parent, expansion.occurrences)
        result.truncated = expansion.truncated
        result.resume_date = expansion.resume_date

        if result.created and parent.series_status in (None, SeriesStatus.DRAFT):
            await self._activate(parent_event_id)
        return result

    async def _activate(self, parent_event_id: str) -> None:
        # Re-read so a concurrent rule edit is not overwritten with a stale copy
        current = await self.store.get_event(parent_event_id)
        if current is None or current.series_status == SeriesStatus.ACTIVE:
            return
        if current.series_status == SeriesStatus.CANCELLED:
            return
        await self.store.save_event(current.model_copy(update={"series_status": SeriesStatus.ACTIVE}))
        logger.info(f"Series {parent_event_id} is now active")

    async def generate_recurring_instances(
        self, parent_event_id: str, window_start: datetime, window_end: datetime
    ) -> list[Event]:
        """Materialize a series for a window and return its instances there.

        Returns every instance overlapping the window: ones created now, ones
        materialized earlier and edited ones. A non-recurring event yields an
        empty list.

        Raises:
            SeriesNotFoundError: If the parent event does not exist
            MaterializationError: If some occurrences could not be written;
                the instances that are available are attached
            OccurrenceLimitError: If the window holds more occurrences than
                ``max_occurrences``; the instances up to the cap are attached
        """
        window_start, window_end = self._aware(window_start), self._aware(window_end)
        parent = await self.store.get_event(parent_event_id)
        if parent is None:
            raise SeriesNotFoundError(f"Parent event not found: {parent_event_id}", parent_event_id)
        if not parent.is_series_template or window_end < window_start:
            return []

        result = await self.materialize_window(parent_event_id, window_start, window_end)

        instances = {i.id: i for i in await self.store.find_instances(parent_event_id)}
        for entry in await self.store.get_modified_occurrences(parent_event_id):
            if entry.event_id not in instances:
                edited = await self.store.get_event(entry.event_id)
                if edited is not None:
                    instances[edited.id] = edited

        in_window = _sorted_by_start(
            [i for i in instances.values() if i.overlaps(window_start, window_end)]
        )

        if result.failures:
            raise MaterializationError(
                f"Failed to materialize {len(result.failures)} occurrence(s) of {parent_event_id}",
                parent_event_id,
                instances=in_window,
                failures=result.failures,
            )
        if result.truncated:
            raise OccurrenceLimitError(
                f"Window of {parent_event_id} exceeds {self.generator.max_occurrences} occurrences; "
                f"resume from {result.resume_date}",
                parent_event_id,
                instances=in_window,
                resume_date=result.resume_date,
            )
        return in_window

    async def find_in_date_range(self, window_start: datetime, window_end: datetime) -> list[Event]:
        """Standalone events and series instances overlapping a window.

        Series with possible occurrences in the window are materialized on
        demand. A series that fails to materialize is logged and its
        available instances are still listed.
        """
        window_start, window_end = self._aware(window_start), self._aware(window_end)
        if window_end < window_start:
            return []

        for template in await self.store.find_series_templates(window_start, window_end):
            try:
                result = await self.materialize_window(template.id, window_start, window_end)
            except SeriesError as e:
                logger.warning(f"Skipping series {template.id}: {e.message}")
                continue
            if result.failures:
                logger.warning(
                    f"Series {template.id}: {len(result.failures)} occurrence(s) not materialized"
                )
            if result.truncated:
                logger.warning(
                    f"Series {template.id}: window cut at {result.resume_date} by the occurrence cap"
                )

        events = {e.id: e for e in await self.store.find_events_in_range(window_start, window_end)}
        return _sorted_by_start(list(events.values()))

    async def get_occurrences(
        self, parent_event_id: str, window_start: datetime, window_end: datetime
    ) -> list[tuple[date, Optional[str]]]:
        """Preview occurrence dates of a window without persisting anything.

        Returns:
            ``(date, event_id)`` pairs; ``event_id`` is set for modified
            occurrences and None otherwise
        """
        window_start, window_end = self._aware(window_start), self._aware(window_end)
        parent = await self._get_series(parent_event_id)
        modified = {
            entry.occurrence_date: entry.event_id
            for entry in await self.store.get_modified_occurrences(parent_event_id)
        }
        dates = self.generator.generate(
            parent.recurrence_rule, parent.local_start, window_start, window_end
        )
        return [(day, modified.get(day)) for day in dates]

    # Single occurrences

    async def exclude_date(self, parent_event_id: str, occurrence_date: date) -> Event:
        """Cancel a single occurrence.

        The date is added to the rule's exceptions, and an instance already
        materialized for it (edited or not) is removed.
        """
        parent = await self._get_series(parent_event_id)
        rule = parent.recurrence_rule
        if not rule.is_exception(occurrence_date):
            parent = await self._save_rule(parent, rule.with_exception(occurrence_date))

        doomed = {instance_id(parent_event_id, occurrence_date)}
        for entry in await self.store.get_modified_occurrences(parent_event_id):
            if entry.occurrence_date == occurrence_date:
                doomed.add(entry.event_id)
        await self.store.delete_modified_occurrence(parent_event_id, occurrence_date)

        for event_id in doomed:
            existing = await self.store.get_event(event_id)
            # Never touch an unrelated event that happens to share the id
            if existing is not None and existing.parent_event_id == parent_event_id:
                await self.store.delete_event(event_id)

        logger.info(f"Excluded {occurrence_date} from series {parent_event_id}")
        return parent

    async def include_date(self, parent_event_id: str, occurrence_date: date) -> Event:
        """Restore a previously excluded occurrence."""
        parent = await self._get_series(parent_event_id)
        rule = parent.recurrence_rule
        if rule.is_exception(occurrence_date):
            parent = await self._save_rule(parent, rule.without_exception(occurrence_date))
            logger.info(f"Restored {occurrence_date} in series {parent_event_id}")
        return parent

    async def modify_occurrence(
        self, parent_event_id: str, occurrence_date: date, changes: dict[str, Any]
    ) -> Event:
        """Edit one occurrence and detach it from the template.

        The occurrence is materialized first if needed. The edited instance
        keeps its id and ``original_start_date``, and a ModifiedOccurrence
        entry stops later generation from touching it.

        Raises:
            SeriesCancelledError: If the series has been cancelled
            OccurrenceNotFoundError: If the date is not an occurrence
            SeriesError: If ``changes`` names fields that cannot be edited
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise SeriesError(f"Fields cannot be edited: {sorted(unknown)}", parent_event_id)

        parent = await self._get_series(parent_event_id)
        if parent.series_status == SeriesStatus.CANCELLED:
            raise SeriesCancelledError(f"Series is cancelled: {parent_event_id}", parent_event_id)

        entry = next(
            (
                m
                for m in await self.store.get_modified_occurrences(parent_event_id)
                if m.occurrence_date == occurrence_date
            ),
            None,
        )
        instance = await self.store.get_event(entry.event_id) if entry else None
        if instance is None:
            instance = await self._materialize_one(parent, occurrence_date)

        edited = Event.model_validate(
            {
                **instance.model_dump(),
                **changes,
                "updated_at": get_timezone_aware_now(),
            }
        )
        if edited.end < edited.start:
            raise SeriesError(f"Occurrence would end before it starts: {edited.id}", edited.id)

        await self.store.save_event(edited)
        await self.store.save_modified_occurrence(
            ModifiedOccurrence(
                parent_event_id=parent_event_id,
                occurrence_date=occurrence_date,
                event_id=edited.id,
            )
        )
        logger.info(f"Modified occurrence {occurrence_date} of series {parent_event_id}")
        return edited

    async def _materialize_one(self, parent: Event, occurrence_date: date) -> Event:
        if occurrence_date not in self.generator.generate(
            parent.recurrence_rule, parent.local_start, occurrence_date, occurrence_date
        ):
            raise OccurrenceNotFoundError(
                f"{occurrence_date} is not an occurrence of {parent.id}",
                parent.id,
                occurrence_date,
            )

        instance = self.materializer.build_instance(parent, occurrence_date)
        if not await self.store.insert_if_absent(instance):
            existing = await self.store.get_event(instance.id)
            if existing is None or existing.parent_event_id != parent.id:
                raise SeriesError(f"Instance id is taken by another event: {instance.id}", parent.id)
            instance = existing
        return instance

    async def delete_instance(self, event_id: str) -> bool:
        """Delete one instance so that it is never generated again.

        Its original date becomes an exception of the series and its
        ModifiedOccurrence entry, if any, is removed.

        Returns:
            True if an event was deleted
        """
        event = await self.store.get_event(event_id)
        if event is None:
            return False

        if event.parent_event_id and event.original_start_date:
            parent = await self.store.get_event(event.parent_event_id)
            if parent is not None and parent.is_series_template:
                rule = parent.recurrence_rule
                if not rule.is_exception(event.original_start_date):
                    await self._save_rule(parent, rule.with_exception(event.original_start_date))
            await self.store.delete_modified_occurrence(
                event.parent_event_id, event.original_start_date
            )

        deleted = await self.store.delete_event(event_id)
        logger.info(f"Deleted instance {event_id}")
        return deleted

    # Whole series

    async def cancel_series(self, parent_event_id: str) -> Event:
        """Stop a series from producing further instances.

        Instances that were already materialized, edited ones included, are
        kept.
        """
        parent = await self._get_series(parent_event_id)
        if parent.series_status == SeriesStatus.CANCELLED:
            return parent

        cancelled = parent.model_copy(
            update={"series_status": SeriesStatus.CANCELLED, "updated_at": get_timezone_aware_now()}
        )
        await self.store.save_event(cancelled)
        logger.info(f"Cancelled series {parent_event_id}")
        return cancelled

    async def delete_series(self, parent_event_id: str) -> list[Event]:
        """Delete a series template and its unedited instances.

        Edited instances survive as standalone events.

        Returns:
            The edited instances that were kept
        """
        await self._get_series(parent_event_id)
        modified_ids = {
            entry.event_id for entry in await self.store.get_modified_occurrences(parent_event_id)
        }

        kept = []
        for instance in await self.store.find_instances(parent_event_id):
            if instance.id in modified_ids:
                detached = instance.model_copy(update={"parent_event_id": None})
                await self.store.save_event(detached)
                kept.append(detached)
            else:
                await self.store.delete_event(instance.id)

        for entry in await self.store.get_modified_occurrences(parent_event_id):
            await self.store.delete_modified_occurrence(parent_event_id, entry.occurrence_date)
        await self.store.delete_event(parent_event_id)

        logger.info(f"Deleted series {parent_event_id}, kept {len(kept)} edited instance(s)")
        return kept
