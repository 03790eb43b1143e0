from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from timetrack.models import EntryStatus, UserRole, UserStatus

CLOCK_TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserRead(BaseModel):
    id: int
    tenant_id: str | None
    email: str
    name: str
    role: UserRole
    status: UserStatus
    backdate_limit_days: int

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class TimeEntryCreateRequest(BaseModel):
    tenant_id: str | None = None
    user_id: int | None = Field(default=None, ge=1)
    project_id: int = Field(ge=1)
    workspace_id: int | None = Field(default=None, ge=1)
    notes: str | None = Field(default=None, max_length=1000)
    start_time: datetime | None = None
    end_time: datetime | None = None
    local_date: date | None = None
    start_clock: str | None = Field(default=None, pattern=CLOCK_TIME_PATTERN)
    end_clock: str | None = Field(default=None, pattern=CLOCK_TIME_PATTERN)

    @model_validator(mode="after")
    def validate_interval_form(self) -> "TimeEntryCreateRequest":
        has_instants = self.start_time is not None or self.end_time is not None
        has_clocks = self.local_date is not None or self.start_clock is not None or self.end_clock is not None
        if has_instants and has_clocks:
            raise ValueError("Send either start_time/end_time or local_date/start_clock/end_clock, not both")
        if has_instants:
            if self.start_time is None or self.end_time is None:
                raise ValueError("start_time and end_time are required together")
            return self
        if self.local_date is None or self.start_clock is None or self.end_clock is None:
            raise ValueError("start_time/end_time or local_date/start_clock/end_clock are required")
        return self

    @property
    def uses_local_clock(self) -> bool:
        return self.local_date is not None


class TimeEntryRead(BaseModel):
    id: int
    tenant_id: str
    user_id: int
    created_by_id: int
    project_id: int
    workspace_id: int | None
    start_time: datetime
    end_time: datetime
    total_hours: float
    evening_hours: float
    night_hours: float
    status: EntryStatus
    notes: str | None
    rejection_reason: str | None
    locked_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class TimeEntrySplitRead(BaseModel):
    id: int
    time_entry_id: int
    user_id: int
    project_id: int
    workspace_id: int | None = None
    local_date: date
    start_time: datetime
    end_time: datetime
    total_hours: float
    evening_hours: float
    night_hours: float
    status: EntryStatus
    notes: str | None
    rejection_reason: str | None
    approved_by_id: int | None
    approved_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class TimeEntryCreateResponse(BaseModel):
    entry: TimeEntryRead
    splits: list[TimeEntrySplitRead]


class SplitStatusUpdateRequest(BaseModel):
    status: EntryStatus
    reason: str | None = Field(default=None, max_length=500)


class ShiftPolicyUpdateRequest(BaseModel):
    tenant_id: str | None = None
    evening_start: str = Field(pattern=CLOCK_TIME_PATTERN)
    evening_end: str = Field(pattern=CLOCK_TIME_PATTERN)
    night_start: str = Field(pattern=CLOCK_TIME_PATTERN)
    night_end: str = Field(pattern=CLOCK_TIME_PATTERN)


class ShiftPolicyRead(BaseModel):
    id: int
    tenant_id: str
    evening_start: str
    evening_end: str
    night_start: str
    night_end: str
    effective_from: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ReportTotalsRead(BaseModel):
    total_hours: float
    evening_hours: float
    night_hours: float


class ReportRowRead(TimeEntrySplitRead):
    user_name: str | None = None
    project_name: str | None = None
    project_color: str | None = None


class ReportResponse(BaseModel):
    tenant_id: str
    start_date: date
    end_date: date
    user_id: int | None
    totals: ReportTotalsRead
    rows: list[ReportRowRead]
