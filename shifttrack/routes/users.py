from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_caller
from ..schemas.shifts import OrganizationOut, UserOut
from ..services import organizations
from ..services import shifts as shift_service
from ..services.permissions import Caller


router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserOut)
def me(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return shift_service.get_me(db, caller)


@router.get("/organization", response_model=OrganizationOut)
def my_organization(db: Session = Depends(get_db), caller: Caller = Depends(get_current_caller)):
    return organizations.get_organization(db, caller)
