"""Payload normalization and validation for time records.

Validation never raises for bad business input: it returns the full list of
violations. The ``parse_*`` helpers raise ValidationFailed carrying that list.
"""
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

from app.errors import MalformedInput, ValidationFailed
from app.models.time_record import StopTimerInput, TimeRecordInput


DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Accepted legacy and snake_case spellings mapped onto canonical field names.
FIELD_ALIASES = {
    "project": "projectName",
    "project_name": "projectName",
    "comment": "description",
    "start_time": "startTime",
    "end_time": "endTime",
}


def normalize_payload(payload: Any) -> dict:
    """
    Map every accepted alias onto its canonical field name.

    A canonical key already present wins over its alias.

    Raises:
        MalformedInput: If the payload is not a JSON object
    """
    if payload is None:
        raise MalformedInput("Request body is required")
    if not isinstance(payload, dict):
        raise MalformedInput("Request body must be a JSON object")

    normalized = dict(payload)
    for alias, canonical in FIELD_ALIASES.items():
        if alias in normalized:
            value = normalized.pop(alias)
            if normalized.get(canonical) is None:
                normalized[canonical] = value
    return normalized


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken as UTC. Returns None when the value is not a
    parseable timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string, or return None."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def normalize_tags(tags: Optional[list[str]]) -> list[str]:
    """Trim, drop empties and de-duplicate; tags are a set, stored sorted."""
    if not tags:
        return []
    return sorted({tag.strip() for tag in tags if tag.strip()})


def _check_project_name(data: dict, errors: list[str]) -> None:
    project_name = data.get("projectName")
    if not isinstance(project_name, str) or not project_name.strip():
        errors.append("Project is required and must be a non-empty string")


def _check_timestamp(data: dict, field: str, label: str, errors: list[str]) -> Optional[datetime]:
    value = data.get(field)
    if not isinstance(value, (str, datetime)) or value == "":
        errors.append(f"{label} is required and must be a valid ISO 8601 string")
        return None

    parsed = parse_timestamp(value)
    if parsed is None:
        errors.append(f"{label} must be a valid ISO 8601 timestamp")
    return parsed


def _check_optional_fields(data: dict, errors: list[str]) -> None:
    description = data.get("description")
    if description is not None and not isinstance(description, str):
        errors.append("Description must be a string")

    tags = data.get("tags")
    if tags is not None:
        if not isinstance(tags, list):
            errors.append("Tags must be an array")
        elif not all(isinstance(tag, str) for tag in tags):
            errors.append("All tags must be strings")


def validate_record_payload(data: dict) -> list[str]:
    """
    Validate a normalized create/update payload.

    Args:
        data: Payload already passed through normalize_payload

    Returns:
        Ordered list of violations; empty when valid
    """
    errors: list[str] = []

    _check_project_name(data, errors)

    start = _check_timestamp(data, "startTime", "Start time", errors)
    end = _check_timestamp(data, "endTime", "End time", errors)

    raw_date = data.get("date")
    if not raw_date or not isinstance(raw_date, (str, date)):
        errors.append("Date is required and must be in YYYY-MM-DD format")
    elif isinstance(raw_date, str) and not DATE_PATTERN.match(raw_date):
        errors.append("Date must be in YYYY-MM-DD format")
    elif parse_date(raw_date) is None:
        errors.append("Date must be a valid calendar date")

    if start is not None and end is not None and end <= start:
        errors.append("End time must be after start time")

    _check_optional_fields(data, errors)
    return errors


def validate_stop_payload(data: dict) -> list[str]:
    """Validate a normalized stop payload; only the project is mandatory."""
    errors: list[str] = []
    _check_project_name(data, errors)
    _check_optional_fields(data, errors)
    return errors


def parse_record_payload(payload: Any) -> TimeRecordInput:
    """
    Normalize and validate a create/update payload.

    Raises:
        MalformedInput: If the payload is not an object
        ValidationFailed: With every violation found
    """
    data = normalize_payload(payload)
    errors = validate_record_payload(data)
    if errors:
        raise ValidationFailed(errors)

    return TimeRecordInput(
        project_name=data["projectName"].strip(),
        description=data.get("description") or "",
        tags=normalize_tags(data.get("tags")),
        start_time=parse_timestamp(data["startTime"]),
        end_time=parse_timestamp(data["endTime"]),
        date=parse_date(data["date"]),
    )


def parse_stop_payload(payload: Any) -> StopTimerInput:
    """
    Normalize and validate a stop payload.

    Raises:
        MalformedInput: If the payload is not an object
        ValidationFailed: With every violation found
    """
    data = normalize_payload(payload)
    errors = validate_stop_payload(data)
    if errors:
        raise ValidationFailed(errors)

    tags = data.get("tags")
    return StopTimerInput(
        project_name=data["projectName"].strip(),
        description=data.get("description"),
        tags=normalize_tags(tags) if tags is not None else None,
    )
