"""
Manager routes: organization members, shift history, live staff, dashboard
statistics and geofence settings. All scoped to the manager's organization.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_caller
from ..schemas.shifts import (
    DashboardStatsOut,
    OrganizationLocationUpdate,
    OrganizationOut,
    ShiftOut,
    UserOut,
)
from ..services import analytics, organizations
from ..services import shifts as shift_service
from ..services.permissions import Caller
from ..services.time_rules import get_clock


router = APIRouter(prefix="/manager", tags=["manager"])


@router.get("/users", response_model=List[UserOut])
def organization_users(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return organizations.list_organization_users(db, caller)


@router.get("/users/{user_id}/shifts", response_model=List[ShiftOut])
def user_shifts(user_id: str, db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return shift_service.list_user_shifts(db, caller, user_id)


@router.get("/active-staff", response_model=List[UserOut])
def active_staff(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return analytics.active_staff(db, caller)


@router.get("/dashboard-stats", response_model=DashboardStatsOut)
def dashboard_stats(
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
    clock=Depends(get_clock),
):
    return analytics.get_dashboard_stats(db, caller, now=clock())


@router.put("/organization/location", response_model=OrganizationOut)
def update_organization_location(
    payload: OrganizationLocationUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
    clock=Depends(get_clock),
):
    return organizations.update_organization_geofence(
        db,
        caller,
        latitude=payload.latitude,
        longitude=payload.longitude,
        radius_km=payload.perimeter_radius_km,
        now=clock(),
    )
