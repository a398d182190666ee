"""Tests for Pydantic models and the error envelope."""
import pytest
from datetime import date, datetime, timezone
from pydantic import ValidationError


T0 = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)


class TestTimeRecordModel:
    """Tests for TimeRecord model."""

    def test_defaults(self):
        from app.models.time_record import TimeRecord

        record = TimeRecord(
            id="rec-1",
            user_id="user123",
            start_time=T0,
            date=date(2024, 1, 10),
            created_at=T0,
            updated_at=T0,
        )

        assert record.project_name == ""
        assert record.description == ""
        assert record.tags == []
        assert record.end_time is None
        assert record.duration == 0
        assert record.is_active is False

    def test_accepts_camel_case(self):
        from app.models.time_record import TimeRecord

        record = TimeRecord.model_validate(
            {
                "id": "rec-1",
                "userId": "user123",
                "projectName": "Alpha",
                "startTime": "2024-01-10T09:00:00Z",
                "endTime": "2024-01-10T10:00:00Z",
                "date": "2024-01-10",
                "duration": 60,
                "isActive": False,
                "createdAt": "2024-01-10T10:00:00Z",
                "updatedAt": "2024-01-10T10:00:00Z",
            }
        )

        assert record.project_name == "Alpha"
        assert record.end_time == datetime(2024, 1, 10, 10, 0, tzinfo=timezone.utc)

    def test_serializes_camel_case(self):
        from app.models.time_record import TimeRecord

        record = TimeRecord(
            id="rec-1",
            user_id="user123",
            project_name="Alpha",
            start_time=T0,
            date=date(2024, 1, 10),
            created_at=T0,
            updated_at=T0,
        )

        data = record.model_dump(by_alias=True)

        assert data["projectName"] == "Alpha"
        assert data["isActive"] is False
        assert "project_name" not in data

    def test_missing_required_field(self):
        from app.models.time_record import TimeRecord

        with pytest.raises(ValidationError):
            TimeRecord(id="rec-1", user_id="user123", date=date(2024, 1, 10))

    def test_delete_result_message(self):
        from app.models.time_record import DeleteResult

        result = DeleteResult(record_id="rec-1")

        assert result.model_dump(by_alias=True) == {
            "message": "Time record deleted successfully",
            "recordId": "rec-1",
        }

    def test_active_timer_idle(self):
        from app.models.time_record import ActiveTimer

        assert ActiveTimer().model_dump(by_alias=True) == {"activeRecord": None}


class TestErrorEnvelope:
    """Tests for error kinds and their response bodies."""

    def test_validation_failed(self):
        from app.errors import ValidationFailed

        error = ValidationFailed(["Project is required and must be a non-empty string"])

        assert error.http_status == 400
        assert error.to_response() == {
            "error": {
                "kind": "ValidationFailed",
                "message": "Validation errors: Project is required and must be a non-empty string",
                "retryable": False,
                "errors": ["Project is required and must be a non-empty string"],
            }
        }

    def test_not_found_includes_record_id(self):
        from app.errors import NotFound

        body = NotFound(record_id="rec-1").to_response()["error"]

        assert body["kind"] == "NotFound"
        assert body["recordId"] == "rec-1"

    def test_active_record_exists(self):
        from app.errors import ActiveRecordExists

        error = ActiveRecordExists(active_record_id="rec-1")

        assert error.http_status == 409
        assert error.to_response()["error"]["activeRecordId"] == "rec-1"

    def test_store_unavailable_is_retryable(self):
        from app.errors import StoreUnavailable

        body = StoreUnavailable(operation="get", outcome_unknown=True).to_response()["error"]

        assert body["retryable"] is True
        assert body["outcomeUnknown"] is True
        assert body["operation"] == "get"

    def test_relocation_incomplete_is_store_unavailable(self):
        from app.errors import RelocationIncomplete, StoreUnavailable

        error = RelocationIncomplete("rec-1", old_key="RECORD#2024-01-10#rec-1", new_key="RECORD#2024-01-11#rec-1")

        assert isinstance(error, StoreUnavailable)
        assert error.http_status == 503
        assert error.to_response()["error"]["oldKey"] == "RECORD#2024-01-10#rec-1"

    def test_not_retryable_keeps_failure_details(self):
        from app.errors import StoreUnavailable

        error = StoreUnavailable("Store put timed out", operation="put", outcome_unknown=True)

        flagged = error.not_retryable()

        assert flagged.retryable is False
        assert flagged.to_response() == {
            "error": {
                "kind": "StoreUnavailable",
                "message": "Store put timed out",
                "retryable": False,
                "outcomeUnknown": True,
                "operation": "put",
            }
        }
