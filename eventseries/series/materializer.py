"""Turning occurrence dates into persisted event instances."""

import logging
from collections.abc import Iterable
from datetime import date
from typing import Optional

from ..store.base import SeriesStore, SeriesStoreError
from ..utils.helpers import combine_in_timezone, get_timezone_aware_now
from .models import (
    Event,
    MaterializationFailure,
    MaterializationResult,
    ModifiedOccurrence,
    instance_id,
)

logger = logging.getLogger(__name__)


class InstanceMaterializer:
    """Persists instances for occurrence dates of a series.

    Every write is keyed by :func:`instance_id`, so materializing the same
    date twice, from one caller or from two racing ones, leaves exactly one
    instance behind. Writes are independent: one failing date is reported
    and the remaining dates are still written.
    """

    def __init__(self, store: SeriesStore):
        self.store = store

    def build_instance(self, parent: Event, occurrence_date: date) -> Event:
        """Build (without persisting) the instance of ``parent`` for a date.

        Args:
            parent: Series template
            occurrence_date: Calendar date of the occurrence

        Returns:
            Instance carrying the template's attributes, shifted to the date
            with the template's time of day and duration
        """
        local_start = parent.local_start
        start = combine_in_timezone(occurrence_date, local_start.timetz(), local_start.tzinfo)
        now = get_timezone_aware_now()
        return parent.model_copy(
            deep=True,
            update={
                "id": instance_id(parent.id, occurrence_date),
                "start": start,
                "end": start + parent.duration,
                "is_recurring": False,
                "recurrence_rule": None,
                "series_status": None,
                "parent_event_id": parent.id,
                "original_start_date": occurrence_date,
                "is_generated": True,
                "created_at": now,
                "updated_at": now,
            },
        )

    async def materialize(
        self,
        parent: Event,
        occurrence_dates: Iterable[date],
        modified: Optional[Iterable[ModifiedOccurrence]] = None,
    ) -> MaterializationResult:
        """Persist instances for occurrence dates that are not yet materialized.

        Args:
            parent: Series template
            occurrence_dates: Dates produced by the occurrence generator
            modified: ModifiedOccurrence entries of the series; loaded from
                the store when omitted

        Returns:
            Created instances, skipped dates and per-date failures
        """
        if modified is None:
            modified = await self.store.get_modified_occurrences(parent.id)
        modified_dates = {entry.occurrence_date for entry in modified}

        result = MaterializationResult()
        for occurrence_date in occurrence_dates:
            if occurrence_date in modified_dates:
                # The edited instance already stands for this occurrence
                result.skipped.append(occurrence_date)
                continue

            instance = self.build_instance(parent, occurrence_date)
            try:
                created = await self.store.insert_if_absent(instance)
            except SeriesStoreError as e:
                logger.warning(f"Failed to materialize {parent.id} on {occurrence_date}: {e.message}")
                result.failures.append(MaterializationFailure(occurrence_date, e.message))
                continue

            if created:
                result.created.append(instance)
            else:
                logger.debug(f"Instance {instance.id} already exists, skipping")
                result.skipped.append(occurrence_date)

        logger.debug(
            "Materialized %s: created=%d skipped=%d failed=%d",
            parent.id,
            len(result.created),
            len(result.skipped),
            len(result.failures),
        )
        return result
