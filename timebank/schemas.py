from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from timebank.models import JustificationStatus, TimeEventType

WeekdayName = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class TimeEventRead(BaseModel):
    id: int
    user_id: int
    event_type: TimeEventType
    timestamp: datetime
    latitude: float | None = None
    longitude: float | None = None
    approval_status: str | None = None

    model_config = ConfigDict(from_attributes=True)


class JustificationSummary(BaseModel):
    type: str
    description: str | None = None


class DayRecordRead(BaseModel):
    date: date
    worked_minutes: int = Field(alias="workedMinutes")
    expected_minutes: int = Field(alias="expectedMinutes")
    balance_minutes: int = Field(alias="balanceMinutes")
    events: list[TimeEventRead] = Field(default_factory=list)
    is_holiday: bool = Field(default=False, alias="isHoliday")
    justification: JustificationSummary | None = None
    shift_source: Literal["ASSIGNMENT", "LEGACY", "POLICY", "UNSCHEDULED"] | None = Field(
        default=None,
        alias="shiftSource",
    )
    flags: list[str] = Field(default_factory=list)
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class EmployeeReportRead(BaseModel):
    id: int
    full_name: str
    role: str
    report: list[DayRecordRead]
    total_balance_minutes: int = Field(alias="totalBalanceMinutes")
    status: Literal["ok", "error"] = "ok"
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ReportMetadata(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


class ReportResponse(BaseModel):
    data: list[EmployeeReportRead]
    metadata: ReportMetadata


class ShiftRuleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    break_duration_minutes: int = Field(default=60, ge=0)
    work_days: list[WeekdayName] = Field(
        default_factory=lambda: ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
    )
    daily_hours: float | None = Field(default=None, gt=0, le=24)


class ShiftRuleRead(BaseModel):
    id: int
    company_id: int | None
    name: str
    start_time: str
    end_time: str
    break_duration_minutes: int
    work_days: list[str]
    daily_hours: float | None = None

    model_config = ConfigDict(from_attributes=True)


class HolidayCreate(BaseModel):
    date: date
    name: str = Field(min_length=1, max_length=255)


class HolidayRead(BaseModel):
    id: int
    holiday_date: date = Field(alias="date")
    name: str
    company_id: int | None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class JustificationCreateRequest(BaseModel):
    user_id: int = Field(validation_alias="userId", ge=1)
    type: str = Field(min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=1000)
    start_date: date = Field(validation_alias="startDate")
    end_date: date | None = Field(default=None, validation_alias="endDate")

    @model_validator(mode="after")
    def _validate_range(self) -> "JustificationCreateRequest":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must be greater than or equal to startDate")
        return self


class JustificationReviewRequest(BaseModel):
    status: Literal["approved", "rejected"]


class JustificationRead(BaseModel):
    id: int
    user_id: int
    company_id: int
    type: str
    description: str | None
    start_date: date
    end_date: date | None
    status: JustificationStatus
    approved_by: int | None = None
    approved_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class WeeklyHoursDay(BaseModel):
    date: date
    name: str
    hours: float
    avg_hours: float = Field(alias="avgHours")
    user_count: int = Field(alias="userCount")

    model_config = ConfigDict(populate_by_name=True)
