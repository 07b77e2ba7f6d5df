"""
Shift routes for workers: clock in, clock out, current shift and history.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_caller
from ..schemas.shifts import ClockInRequest, ClockOutRequest, ShiftOut
from ..services import shifts as shift_service
from ..services.permissions import Caller
from ..services.time_rules import get_clock


router = APIRouter(prefix="/shifts", tags=["shifts"])


@router.post("/clock-in", response_model=ShiftOut, status_code=201)
def clock_in(
    payload: ClockInRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
    clock=Depends(get_clock),
):
    return shift_service.clock_in(
        db,
        caller,
        note=payload.note,
        latitude=payload.latitude,
        longitude=payload.longitude,
        now=clock(),
    )


@router.post("/{shift_id}/clock-out", response_model=ShiftOut)
def clock_out(
    shift_id: str,
    payload: Optional[ClockOutRequest] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
    clock=Depends(get_clock),
):
    note = payload.note if payload else None
    return shift_service.clock_out(db, caller, shift_id, note=note, now=clock())


@router.get("/current", response_model=Optional[ShiftOut])
def current_shift(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return shift_service.get_current_shift(db, caller)


@router.get("/mine", response_model=List[ShiftOut])
def my_shifts(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return shift_service.list_my_shifts(db, caller)
