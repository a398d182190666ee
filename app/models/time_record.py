"""Time record model definitions."""
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeRecordInput(CamelModel):
    """Canonical, validated payload for createRecord and updateRecord."""

    project_name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    start_time: dt.datetime
    end_time: dt.datetime
    date: dt.date


class StopTimerInput(CamelModel):
    """Classification supplied when stopping the active timer."""

    project_name: str
    description: Optional[str] = None
    tags: Optional[list[str]] = None


class TimeRecord(CamelModel):
    """Full time record as stored and returned."""

    id: str
    user_id: str
    project_name: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    start_time: dt.datetime
    end_time: Optional[dt.datetime] = None
    date: dt.date
    duration: int = 0
    is_active: bool = False
    created_at: dt.datetime
    updated_at: dt.datetime


class TimeRecordList(CamelModel):
    """Response for listRecords."""

    time_records: list[TimeRecord]
    count: int


class ActiveTimer(CamelModel):
    """Response for getActiveTimer; ``active_record`` is None when idle."""

    active_record: Optional[TimeRecord] = None


class DeleteResult(CamelModel):
    """Confirmation returned by deleteRecord."""

    message: str = "Time record deleted successfully"
    record_id: str


class ProjectTotal(CamelModel):
    project_name: str
    duration: int
    percentage: float


class TagTotal(CamelModel):
    tag: str
    duration: int
    percentage: float


class DailyTotal(CamelModel):
    date: dt.date
    duration: int
    percentage: float


class Statistics(CamelModel):
    """Aggregate statistics over a set of completed records."""

    total_duration: int = 0
    total_records: int = 0
    total_days: int = 0
    average_daily_time: int = 0
    average_session_duration: int = 0
    project_totals: list[ProjectTotal] = Field(default_factory=list)
    tag_totals: list[TagTotal] = Field(default_factory=list)
    daily_totals: list[DailyTotal] = Field(default_factory=list)


class ProjectSummary(CamelModel):
    """Usage summary of one project name across a user's records."""

    project_name: str
    total_duration: int
    total_records: int
    last_used: dt.datetime


class ProjectList(CamelModel):
    projects: list[ProjectSummary]
    count: int


class ProjectSuggestions(CamelModel):
    suggestions: list[str]


class TagList(CamelModel):
    tags: list[str]
