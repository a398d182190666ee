"""Record service - business logic for completed time records."""
import logging
from contextlib import aclosing
from datetime import date, datetime
from typing import Any, AsyncIterator, Callable, Iterable, Optional
from uuid import uuid4

from app.config import settings
from app.errors import NotFound, RelocationIncomplete, StoreUnavailable, ValidationFailed
from app.models.time_record import DeleteResult, TimeRecord
from app.services.timer_service import release_active_marker
from app.utils.clock import calculate_duration, utc_now
from app.utils.keys import (
    date_range_bounds,
    is_record_item,
    item_to_record,
    record_to_item,
    user_partition_key,
)
from app.utils.validation import parse_record_payload


logger = logging.getLogger(__name__)


class RecordService:
    """Service for creating, listing, updating and deleting time records."""

    def __init__(self, store, clock: Callable[[], datetime] = utc_now):
        """Initialize service with a record store and a clock."""
        self.store = store
        self.clock = clock

    def _clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return settings.default_list_limit
        return max(1, min(limit, settings.max_list_limit))

    @staticmethod
    def _latest_copies(records: Iterable[TimeRecord]) -> list[TimeRecord]:
        """
        Keep one copy per record ID, the most recently written.

        Several copies of one ID only exist after an interrupted relocation;
        the newest ``updated_at`` wins, as in ``_current_copy``.
        """
        latest: dict[str, TimeRecord] = {}
        for record in records:
            current = latest.get(record.id)
            if current is None or record.updated_at > current.updated_at:
                latest[record.id] = record
        return list(latest.values())

    async def _stream_records(
        self,
        user_id: str,
        start_date: Optional[date],
        end_date: Optional[date],
        descending: bool,
    ) -> AsyncIterator[TimeRecord]:
        lower, upper = date_range_bounds(start_date, end_date)
        async for item in self.store.query(
            user_partition_key(user_id), lower, upper, descending=descending
        ):
            yield item_to_record(item)

    async def iter_records(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AsyncIterator[TimeRecord]:
        """
        Yield a user's records between two dates (inclusive), one per ID.

        The range is read in full so copies left by an interrupted relocation
        collapse into one. Active records are included; callers filter them
        as needed.
        """
        records = [
            record
            async for record in self._stream_records(user_id, start_date, end_date, descending=False)
        ]
        for record in self._latest_copies(records):
            yield record

    async def create_record(self, user_id: str, payload: Any) -> TimeRecord:
        """
        Create a completed time record.

        Args:
            user_id: User ID
            payload: Record fields; aliases such as ``project`` are accepted

        Returns:
            Created time record

        Raises:
            MalformedInput: If the payload is not an object
            ValidationFailed: If any field is invalid
            StoreUnavailable: If the write failed; not retryable when its
                outcome is unknown
        """
        record_input = parse_record_payload(payload)

        now = self.clock()
        record = TimeRecord(
            id=str(uuid4()),
            user_id=user_id,
            project_name=record_input.project_name,
            description=record_input.description,
            tags=record_input.tags,
            start_time=record_input.start_time,
            end_time=record_input.end_time,
            date=record_input.date,
            duration=calculate_duration(record_input.start_time, record_input.end_time),
            is_active=False,
            created_at=now,
            updated_at=now,
        )

        try:
            await self.store.put(record_to_item(record))
        except StoreUnavailable as e:
            # Each attempt gets a fresh ID, so repeating a create that may
            # have landed would duplicate the record.
            if e.outcome_unknown:
                raise e.not_retryable() from e
            raise
        logger.info("Time record created", extra={"user_id": user_id, "record_id": record.id})
        return record

    async def list_records(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        project_name: Optional[str] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> list[TimeRecord]:
        """
        List completed time records with optional filtering.

        Args:
            user_id: User ID
            start_date: Optional first day (inclusive)
            end_date: Optional last day (inclusive)
            project_name: Optional exact project filter
            limit: Maximum records returned
            newest_first: Order by start time descending (default) or ascending

        Returns:
            List of time records, never including the running timer

        Raises:
            ValidationFailed: If start_date is after end_date
        """
        if start_date and end_date and start_date > end_date:
            raise ValidationFailed(["Start date must not be after end date"])
        limit = self._clamp_limit(limit)

        # Keys only order records by day, so read whole days until the page
        # is full, then order by start time within them.
        scanned: list[TimeRecord] = []
        page_ids: set[str] = set()
        boundary_day: Optional[date] = None
        async with aclosing(
            self._stream_records(user_id, start_date, end_date, descending=newest_first)
        ) as stream:
            async for record in stream:
                if boundary_day is not None and record.date != boundary_day:
                    break
                if record.is_active:
                    continue
                scanned.append(record)
                if project_name and record.project_name != project_name:
                    continue
                page_ids.add(record.id)
                if len(page_ids) >= limit:
                    boundary_day = record.date

        # Collapse relocation copies before filtering, so a stale copy cannot
        # match on a project its newer copy no longer has.
        records = [
            record
            for record in self._latest_copies(scanned)
            if not project_name or record.project_name == project_name
        ]
        records.sort(key=lambda r: (r.date, r.start_time), reverse=newest_first)
        return records[:limit]

    async def _find_copies(self, user_id: str, record_id: str) -> list[dict]:
        """
        Scan the user's records for every item carrying ``record_id``.

        The id is not a key prefix, so this reads the whole record range.
        More than one copy only exists after an interrupted relocation.
        """
        lower, upper = date_range_bounds()
        copies = []
        async for item in self.store.query(user_partition_key(user_id), lower, upper):
            if is_record_item(item) and item.get("recordId") == record_id:
                copies.append(item)
        return copies

    @staticmethod
    def _current_copy(copies: list[dict]) -> dict:
        """The most recently written copy is authoritative."""
        return max(copies, key=lambda item: item.get("updatedAt") or "")

    async def get_record(self, user_id: str, record_id: str) -> TimeRecord:
        """
        Get a time record by ID.

        Raises:
            NotFound: If the user has no record with this ID
        """
        copies = await self._find_copies(user_id, record_id)
        if not copies:
            raise NotFound(record_id=record_id)
        return item_to_record(self._current_copy(copies))

    async def update_record(self, user_id: str, record_id: str, payload: Any) -> TimeRecord:
        """
        Replace a completed record's fields.

        When the date changes the record moves to a new key. The new item is
        written before the old one is removed, so a failure in between leaves
        two copies rather than none; retrying the update cleans up.

        Args:
            user_id: User ID
            record_id: Time record ID
            payload: Full record payload

        Returns:
            Updated time record

        Raises:
            ValidationFailed: If any field is invalid
            NotFound: If the record does not exist or is the running timer
            RelocationIncomplete: If the old copy could not be removed
        """
        record_input = parse_record_payload(payload)

        copies = await self._find_copies(user_id, record_id)
        if not copies:
            raise NotFound(record_id=record_id)

        current = item_to_record(self._current_copy(copies))
        if current.is_active:
            raise NotFound("Running timers can only be changed by stopping them", record_id=record_id)

        updated = current.model_copy(
            update={
                "project_name": record_input.project_name,
                "description": record_input.description,
                "tags": record_input.tags,
                "start_time": record_input.start_time,
                "end_time": record_input.end_time,
                "date": record_input.date,
                "duration": calculate_duration(record_input.start_time, record_input.end_time),
                "updated_at": self.clock(),
            }
        )
        new_item = record_to_item(updated)
        stale_keys = [item["sk"] for item in copies if item["sk"] != new_item["sk"]]

        await self.store.put(new_item)

        partition_key = user_partition_key(user_id)
        for sort_key in stale_keys:
            try:
                await self.store.delete(partition_key, sort_key)
            except StoreUnavailable as e:
                logger.warning(
                    "Relocation left a copy at %s",
                    sort_key,
                    extra={"user_id": user_id, "record_id": record_id},
                )
                raise RelocationIncomplete(record_id, old_key=sort_key, new_key=new_item["sk"]) from e

        if stale_keys:
            logger.info(
                "Time record relocated to %s",
                updated.date.isoformat(),
                extra={"user_id": user_id, "record_id": record_id},
            )
        return updated

    async def delete_record(self, user_id: str, record_id: str) -> DeleteResult:
        """
        Delete a time record, including a running timer.

        Raises:
            NotFound: If the record does not exist
        """
        copies = await self._find_copies(user_id, record_id)
        if not copies:
            raise NotFound(record_id=record_id)

        partition_key = user_partition_key(user_id)
        for item in copies:
            await self.store.delete(partition_key, item["sk"])

        if any(item.get("isActive") for item in copies):
            await release_active_marker(self.store, user_id, record_id)
            logger.info("Running timer discarded", extra={"user_id": user_id, "record_id": record_id})
        else:
            logger.info("Time record deleted", extra={"user_id": user_id, "record_id": record_id})

        return DeleteResult(record_id=record_id)

    async def purge_user(self, user_id: str) -> int:
        """
        Delete every item in a user's partition, timer marker included.

        Returns:
            Number of items deleted
        """
        partition_key = user_partition_key(user_id)
        sort_keys = [item["sk"] async for item in self.store.query(partition_key)]

        deleted = 0
        for sort_key in sort_keys:
            if await self.store.delete(partition_key, sort_key):
                deleted += 1

        logger.info("Purged %s items", deleted, extra={"user_id": user_id})
        return deleted
