"""Fixed catalog of bookable time-of-day slots."""
import logging
from datetime import datetime, time, timedelta
from typing import List, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.time_slot import TimeSlot

logger = logging.getLogger(__name__)

def _parse_clock(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()

def build_slot_bounds(day_start: str, day_end: str, minutes: int) -> List[Tuple[time, time]]:
    """Consecutive (start, end) pairs covering the working day; a partial trailing slot is dropped."""
    if minutes <= 0:
        raise ValueError("Slot length must be positive")

    anchor = datetime.combine(datetime.min.date(), _parse_clock(day_start))
    end = datetime.combine(datetime.min.date(), _parse_clock(day_end))
    step = timedelta(minutes=minutes)

    bounds = []
    while anchor + step <= end:
        bounds.append((anchor.time(), (anchor + step).time()))
        anchor += step
    return bounds

def seed_time_slots(db: Session) -> int:
    """Seed the catalog once. Returns the number of slots inserted."""
    if db.query(TimeSlot.id).first() is not None:
        return 0

    bounds = build_slot_bounds(
        settings.SLOT_DAY_START, settings.SLOT_DAY_END, settings.SLOT_MINUTES
    )
    db.add_all(TimeSlot(start_time=start, end_time=end) for start, end in bounds)
    db.commit()

    logger.info(f"Seeded {len(bounds)} time slots")
    return len(bounds)

def list_time_slots(db: Session) -> List[TimeSlot]:
    return db.query(TimeSlot).order_by(TimeSlot.start_time).all()
