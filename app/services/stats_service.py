"""Statistics service - aggregation over completed time records.

The fold functions are pure and recomputed on every request; nothing here is
persisted.
"""
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from app.errors import ValidationFailed
from app.models.time_record import (
    DailyTotal,
    ProjectList,
    ProjectSuggestions,
    ProjectSummary,
    ProjectTotal,
    Statistics,
    TagList,
    TagTotal,
    TimeRecord,
)
from app.services.record_service import RecordService
from app.utils.clock import round_half_up


def _percentage(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(100 * part / total, 2)


def _by_duration(totals: dict[str, int]) -> list[tuple[str, int]]:
    """Largest first; ties by name so output is stable."""
    return sorted(totals.items(), key=lambda pair: (-pair[1], pair[0]))


def compute_statistics(records: Iterable[TimeRecord]) -> Statistics:
    """
    Fold completed records into totals, groupings and averages.

    A record counts its full duration toward each of its tags, so tag totals
    can add up to more than the overall total.

    Args:
        records: Completed records, already limited to the wanted date range

    Returns:
        Aggregate statistics
    """
    project_durations: dict[str, int] = defaultdict(int)
    tag_durations: dict[str, int] = defaultdict(int)
    daily_durations: dict[date, int] = defaultdict(int)
    total_duration = 0
    total_records = 0

    for record in records:
        duration = record.duration or 0
        total_duration += duration
        total_records += 1

        project_durations[record.project_name] += duration
        for tag in set(record.tags):
            tag_durations[tag] += duration
        daily_durations[record.date] += duration

    total_days = len(daily_durations)

    return Statistics(
        total_duration=total_duration,
        total_records=total_records,
        total_days=total_days,
        average_daily_time=round_half_up(total_duration / total_days) if total_days else 0,
        average_session_duration=(
            round_half_up(total_duration / total_records) if total_records else 0
        ),
        project_totals=[
            ProjectTotal(
                project_name=name,
                duration=duration,
                percentage=_percentage(duration, total_duration),
            )
            for name, duration in _by_duration(project_durations)
        ],
        tag_totals=[
            TagTotal(tag=tag, duration=duration, percentage=_percentage(duration, total_duration))
            for tag, duration in _by_duration(tag_durations)
        ],
        daily_totals=[
            DailyTotal(date=day, duration=duration, percentage=_percentage(duration, total_duration))
            for day, duration in sorted(daily_durations.items())
        ],
    )


def summarize_projects(records: Iterable[TimeRecord]) -> list[ProjectSummary]:
    """Per-project usage, most recently used first."""
    summaries: dict[str, ProjectSummary] = {}
    for record in records:
        if not record.project_name:
            continue
        summary = summaries.get(record.project_name)
        if summary is None:
            summaries[record.project_name] = ProjectSummary(
                project_name=record.project_name,
                total_duration=record.duration,
                total_records=1,
                last_used=record.updated_at,
            )
            continue
        summary.total_duration += record.duration
        summary.total_records += 1
        if record.updated_at > summary.last_used:
            summary.last_used = record.updated_at

    return sorted(summaries.values(), key=lambda s: s.last_used, reverse=True)


def collect_tags(records: Iterable[TimeRecord], query: Optional[str] = None, limit: int = 0) -> list[str]:
    """Distinct tags, sorted, optionally filtered by substring; limit 0 means all."""
    tags = sorted({tag for record in records for tag in record.tags})
    if query:
        needle = query.lower()
        tags = [tag for tag in tags if needle in tag.lower()]
    if limit > 0:
        tags = tags[:limit]
    return tags


class StatsService:
    """Service for statistics and project/tag catalogs."""

    def __init__(self, store):
        """Initialize service with a record store."""
        self.records = RecordService(store)

    async def _completed_records(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[TimeRecord]:
        return [
            record
            async for record in self.records.iter_records(user_id, start_date, end_date)
            if not record.is_active
        ]

    async def get_statistics(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Statistics:
        """
        Aggregate statistics for a user's completed records in a date range.

        Args:
            user_id: User ID
            start_date: Optional first day (inclusive)
            end_date: Optional last day (inclusive)

        Returns:
            Statistics over the matching records

        Raises:
            ValidationFailed: If start_date is after end_date
        """
        if start_date and end_date and start_date > end_date:
            raise ValidationFailed(["Start date must not be after end date"])
        return compute_statistics(await self._completed_records(user_id, start_date, end_date))

    async def list_projects(self, user_id: str) -> ProjectList:
        """List every project the user has logged time against."""
        projects = summarize_projects(await self._completed_records(user_id))
        return ProjectList(projects=projects, count=len(projects))

    async def suggest_projects(
        self,
        user_id: str,
        query: Optional[str] = None,
        limit: int = 10,
    ) -> ProjectSuggestions:
        """Project names matching ``query``, most recently used first."""
        names = [s.project_name for s in summarize_projects(await self._completed_records(user_id))]
        if query:
            needle = query.lower()
            names = [name for name in names if needle in name.lower()]
        if limit > 0:
            names = names[:limit]
        return ProjectSuggestions(suggestions=names)

    async def list_tags(self, user_id: str, query: Optional[str] = None, limit: int = 50) -> TagList:
        """Distinct tags the user has applied."""
        return TagList(tags=collect_tags(await self._completed_records(user_id), query, limit))
