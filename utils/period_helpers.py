"""
Helper functions for voting periods
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import BallotPeriod


def utcnow():
    return datetime.now(timezone.utc)


def get_current_period(db_session: Session, now: Optional[datetime] = None) -> Optional[BallotPeriod]:
    """
    Return the period whose poll is open right now, or None.
    If windows overlap, the latest period wins.
    """
    now = now or utcnow()
    return db_session.execute(
        select(BallotPeriod)
        .where(BallotPeriod.poll_open_dt <= now, BallotPeriod.poll_close_dt >= now)
        .order_by(BallotPeriod.period.desc())
        .limit(1)
    ).scalars().first()


def list_periods(db_session: Session, season: str):
    """All periods for a season in calendar order"""
    return db_session.execute(
        select(BallotPeriod)
        .where(BallotPeriod.season == season)
        .order_by(BallotPeriod.period.asc())
    ).scalars().all()
