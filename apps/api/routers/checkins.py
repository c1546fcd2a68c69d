"""
Safety Check-in API Router

The user's side of the lifecycle: read a check-in, snooze it, answer it.
The scheduled jobs own everything else (creation, reminders, escalation).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import date, datetime, time

from core.database import get_db
from core.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from models import SafetyCheckin
from services.checkin_actions import respond_to_checkin, snooze_checkin

router = APIRouter(prefix="/v1/checkins", tags=["Safety Check-ins"])


class CheckinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timing_id: int
    user_id: int
    org_id: int
    checkin_date: date
    scheduled_time: time
    status: str
    snooze_count: int
    last_snooze_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None


@router.get("/{checkin_id}", response_model=CheckinResponse)
async def get_checkin(checkin_id: int, db: Session = Depends(get_db)):
    checkin = db.get(SafetyCheckin, checkin_id)
    if checkin is None:
        raise NotFoundError("Check-in", str(checkin_id))
    return checkin


@router.post("/{checkin_id}/snooze", response_model=CheckinResponse)
async def snooze(checkin_id: int, db: Session = Depends(get_db)):
    """
    Defer the check-in. The snooze monitor sends the next reminder once
    the snooze interval has elapsed.
    """
    try:
        return snooze_checkin(db, checkin_id)
    except LookupError:
        raise NotFoundError("Check-in", str(checkin_id))
    except InvalidTransitionError as e:
        raise ConflictError(str(e))


@router.post("/{checkin_id}/respond", response_model=CheckinResponse)
async def respond(checkin_id: int, db: Session = Depends(get_db)):
    """Mark the check-in as answered."""
    try:
        return respond_to_checkin(db, checkin_id)
    except LookupError:
        raise NotFoundError("Check-in", str(checkin_id))
    except InvalidTransitionError as e:
        raise ConflictError(str(e))
