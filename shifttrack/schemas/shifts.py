from datetime import date, datetime
from typing import Optional, List
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.time_rules import ensure_utc


class ClockInRequest(BaseModel):
    note: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ClockOutRequest(BaseModel):
    note: Optional[str] = None


class OrganizationLocationUpdate(BaseModel):
    latitude: float
    longitude: float
    perimeter_radius_km: float = Field(alias="perimeterRadius")

    model_config = ConfigDict(populate_by_name=True)


class ShiftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    clock_in: datetime
    clock_out: Optional[datetime] = None
    clock_in_note: Optional[str] = None
    clock_out_note: Optional[str] = None
    clock_in_latitude: Optional[float] = None
    clock_in_longitude: Optional[float] = None

    @field_validator("clock_in", "clock_out")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive values; they are stored as UTC
        return ensure_utc(v) if v is not None else None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    role: str
    organization_id: uuid.UUID


class OrganizationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    latitude: float
    longitude: float
    perimeter_radius_km: float


class DailyStatOut(BaseModel):
    date: date
    avg_hours: float
    clock_in_count: int


class StaffHoursOut(BaseModel):
    email: str
    total_hours: float


class DashboardStatsOut(BaseModel):
    daily_stats: List[DailyStatOut]
    staff_weekly_hours: List[StaffHoursOut]
