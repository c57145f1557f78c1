"""Pydantic models for request validation."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, model_validator

try:
    from ..analysis.models import ReportType
except ImportError:
    from analysis.models import ReportType


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drop the timezone, converting aware values to UTC first."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ReportRequest(BaseModel):
    """Body of a report generation request."""

    campaign_id: str = Field(min_length=1)
    report_type: ReportType = ReportType.WEEKLY
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    votes_needed: Optional[float] = Field(default=None, ge=0)
    turnout: Optional[float] = Field(default=None, ge=0, le=1)

    @model_validator(mode="after")
    def check_period(self):
        if self.report_type == ReportType.CUSTOM and (
            self.start is None or self.end is None
        ):
            raise ValueError("CUSTOM reports need both start and end")
        if (self.start is None) != (self.end is None):
            raise ValueError("start and end must be given together")

        # Naive values are taken as UTC
        self.start = _naive_utc(self.start)
        self.end = _naive_utc(self.end)
        if self.start and self.end and self.end < self.start:
            raise ValueError("end must not be before start")
        return self
