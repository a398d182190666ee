"""Key-value mapping for time records.

Items live in one partition per user. Records are addressed by
``(USER#<userId>, RECORD#<date>#<recordId>)`` so a sort-key range over
``RECORD#<start>`` .. ``RECORD#<end>~`` yields one user's records for a date
span in date order. The active-timer marker sits at a fixed sort key outside
that range.
"""
from datetime import date, datetime
from typing import Optional

from app.models.time_record import TimeRecord


USER_PREFIX = "USER#"
RECORD_PREFIX = "RECORD#"
ACTIVE_MARKER_SORT_KEY = "TIMER#ACTIVE"

# Sorts after digits, letters, "-" and "#", closing a date prefix.
RANGE_END = "~"


def user_partition_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


def record_sort_key(record_date: date, record_id: str) -> str:
    """
    Build the sort key for a record.

    Examples:
        >>> record_sort_key(date(2024, 1, 10), "abc")
        'RECORD#2024-01-10#abc'
    """
    return f"{RECORD_PREFIX}{record_date.isoformat()}#{record_id}"


def date_range_bounds(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[str, str]:
    """
    Inclusive sort-key bounds covering every record between two dates.

    Either bound may be omitted; with neither the bounds cover all records.

    Examples:
        >>> date_range_bounds(date(2024, 1, 10), date(2024, 1, 11))
        ('RECORD#2024-01-10', 'RECORD#2024-01-11~')
        >>> date_range_bounds()
        ('RECORD#', 'RECORD#~')
    """
    lower = f"{RECORD_PREFIX}{start_date.isoformat()}" if start_date else RECORD_PREFIX
    if end_date:
        upper = f"{RECORD_PREFIX}{end_date.isoformat()}{RANGE_END}"
    else:
        upper = f"{RECORD_PREFIX}{RANGE_END}"
    return lower, upper


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def record_to_item(record: TimeRecord) -> dict:
    """Convert a TimeRecord into a store item with its composite key."""
    return {
        "pk": user_partition_key(record.user_id),
        "sk": record_sort_key(record.date, record.id),
        "recordId": record.id,
        "userId": record.user_id,
        "projectName": record.project_name,
        "description": record.description,
        "tags": list(record.tags),
        "startTime": _format_timestamp(record.start_time),
        "endTime": _format_timestamp(record.end_time),
        "date": record.date.isoformat(),
        "duration": record.duration,
        "isActive": record.is_active,
        "createdAt": _format_timestamp(record.created_at),
        "updatedAt": _format_timestamp(record.updated_at),
    }


def item_to_record(item: dict) -> TimeRecord:
    """
    Convert a store item back into a TimeRecord.

    Items written before ``projectName``/``description`` existed used
    ``project``/``comment``; both spellings are read.
    """
    return TimeRecord(
        id=item["recordId"],
        user_id=item["userId"],
        project_name=item.get("projectName", item.get("project")) or "",
        description=item.get("description", item.get("comment")) or "",
        tags=item.get("tags") or [],
        start_time=item["startTime"],
        end_time=item.get("endTime"),
        date=item["date"],
        duration=item.get("duration") or 0,
        is_active=bool(item.get("isActive", False)),
        created_at=item["createdAt"],
        updated_at=item["updatedAt"],
    )


def is_record_item(item: dict) -> bool:
    return item.get("sk", "").startswith(RECORD_PREFIX)


def active_marker_item(record: TimeRecord, claimed_at: datetime) -> dict:
    """Marker claiming the user's single active-timer slot for ``record``."""
    return {
        "pk": user_partition_key(record.user_id),
        "sk": ACTIVE_MARKER_SORT_KEY,
        "recordId": record.id,
        "recordSk": record_sort_key(record.date, record.id),
        "claimedAt": claimed_at.isoformat(),
    }
