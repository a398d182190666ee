"""Timer service - the active-timer state machine.

A user is either idle or has exactly one running record. The running slot is
claimed with a conditional write of a marker item, so concurrent starts for
the same user cannot both succeed.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional
from uuid import uuid4

from app.config import settings
from app.errors import ActiveRecordExists, NotFound, StoreUnavailable
from app.models.time_record import TimeRecord
from app.utils.clock import calculate_duration, utc_now
from app.utils.keys import (
    ACTIVE_MARKER_SORT_KEY,
    active_marker_item,
    item_to_record,
    record_to_item,
    user_partition_key,
)
from app.utils.validation import parse_stop_payload, parse_timestamp


logger = logging.getLogger(__name__)


async def release_active_marker(store, user_id: str, record_id: str) -> bool:
    """
    Free the user's active slot if it still belongs to ``record_id``.

    Returns:
        True if a marker was removed
    """
    return await store.delete(
        user_partition_key(user_id),
        ACTIVE_MARKER_SORT_KEY,
        condition={"recordId": record_id},
    )


class TimerService:
    """Service for starting, reading and stopping the active timer."""

    def __init__(
        self,
        store,
        clock: Callable[[], datetime] = utc_now,
        lease_seconds: Optional[int] = None,
    ):
        """Initialize service with a record store and a clock."""
        self.store = store
        self.clock = clock
        self.lease_seconds = (
            settings.active_lease_seconds if lease_seconds is None else lease_seconds
        )

    async def _load_marker(self, user_id: str) -> Optional[dict]:
        return await self.store.get(user_partition_key(user_id), ACTIVE_MARKER_SORT_KEY)

    async def _inspect_marker(self, marker: dict, now: datetime) -> tuple[Optional[dict], bool]:
        """
        Resolve a marker to the record it claims.

        Returns:
            (active record item or None, whether the marker is stale)

        A marker whose record was stopped or deleted is stale at once. One
        whose record has not appeared yet may belong to a start still in
        flight, so it only goes stale after the lease expires.
        """
        item = await self.store.get(marker["pk"], marker["recordSk"])
        if item is not None and item.get("isActive"):
            return item, False
        if item is not None:
            return None, True

        claimed_at = parse_timestamp(marker.get("claimedAt"))
        if claimed_at is None:
            return None, True
        return None, (now - claimed_at).total_seconds() >= self.lease_seconds

    async def start_timer(self, user_id: str) -> TimeRecord:
        """
        Start a new timer with no project yet.

        Args:
            user_id: User ID

        Returns:
            The new active time record

        Raises:
            ActiveRecordExists: If a timer is already running
            StoreUnavailable: If the store could not be reached; not retryable
                when a write's outcome is unknown
        """
        now = self.clock()
        record = TimeRecord(
            id=str(uuid4()),
            user_id=user_id,
            start_time=now,
            date=now.date(),
            duration=0,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        marker = active_marker_item(record, claimed_at=now)

        try:
            await self._claim_slot(user_id, marker, now)
        except StoreUnavailable as e:
            if e.outcome_unknown:
                raise e.not_retryable() from e
            raise

        try:
            await self.store.put(record_to_item(record))
        except StoreUnavailable as e:
            # A write with unknown outcome may have landed; keep the claim so
            # the record is not orphaned. The lease frees it otherwise.
            if not e.outcome_unknown:
                await release_active_marker(self.store, user_id, record.id)
                raise
            raise e.not_retryable() from e

        logger.info("Timer started", extra={"user_id": user_id, "record_id": record.id})
        return record

    async def _claim_slot(self, user_id: str, marker: dict, now: datetime) -> None:
        """Write the marker, reclaiming a stale one at most once."""
        for attempt in range(2):
            if await self.store.put_if_absent(marker):
                return

            existing = await self._load_marker(user_id)
            if existing is None:
                # Released between our claim and the read
                continue

            _, stale = await self._inspect_marker(existing, now)
            if not stale or attempt > 0:
                raise ActiveRecordExists(existing.get("recordId"))

            logger.warning(
                "Releasing stale active-timer marker for record %s",
                existing.get("recordId"),
                extra={"user_id": user_id},
            )
            await release_active_marker(self.store, user_id, existing.get("recordId"))

        raise ActiveRecordExists()

    async def get_active_timer(self, user_id: str) -> Optional[TimeRecord]:
        """
        Get the currently running timer, if any.

        Args:
            user_id: User ID

        Returns:
            Active time record, or None
        """
        marker = await self._load_marker(user_id)
        if marker is None:
            return None

        item, _ = await self._inspect_marker(marker, self.clock())
        if item is None:
            return None
        return item_to_record(item)

    async def stop_timer(self, user_id: str, record_id: str, payload: Any) -> TimeRecord:
        """
        Stop the running timer and classify it.

        Args:
            user_id: User ID
            record_id: ID of the running record
            payload: ``{projectName, description?, tags?}``

        Returns:
            The completed time record

        Raises:
            ValidationFailed: If the project name is missing
            NotFound: If ``record_id`` is not the user's running timer
        """
        stop_input = parse_stop_payload(payload)

        marker = await self._load_marker(user_id)
        if marker is None or marker.get("recordId") != record_id:
            raise NotFound("Active timer not found", record_id=record_id)

        now = self.clock()
        item, _ = await self._inspect_marker(marker, now)
        if item is None:
            raise NotFound("Active timer not found", record_id=record_id)

        record = item_to_record(item)
        # End must stay after start even if the clock stepped backwards
        end_time = max(now, record.start_time + timedelta(seconds=1))

        changes = {
            "project_name": stop_input.project_name,
            "end_time": end_time,
            "duration": calculate_duration(record.start_time, end_time),
            "is_active": False,
            "updated_at": now,
        }
        if stop_input.description is not None:
            changes["description"] = stop_input.description
        if stop_input.tags is not None:
            changes["tags"] = stop_input.tags
        stopped = record.model_copy(update=changes)

        await self.store.put(record_to_item(stopped))

        try:
            await release_active_marker(self.store, user_id, record_id)
        except StoreUnavailable:
            # The record is already inactive, which makes the marker stale
            # and reclaimable by the next start.
            logger.warning(
                "Timer stopped but active-timer marker was not released",
                extra={"user_id": user_id, "record_id": record_id},
            )

        logger.info(
            "Timer stopped after %s minutes",
            stopped.duration,
            extra={"user_id": user_id, "record_id": record_id},
        )
        return stopped
