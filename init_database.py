#!/usr/bin/env python3
"""
Initialize the poll database
Creates all tables, seeds the team catalog and the season's voting periods,
and optionally an admin user
"""
import os
import sys
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv, find_dotenv
load_dotenv(find_dotenv())

from sqlalchemy import select
from werkzeug.security import generate_password_hash

from db import SessionLocal, engine, Base
from models import User, Team, BallotPeriod

DEFAULT_TEAMS = [
    "Alabama", "BYU", "Cincinnati", "Georgia", "Georgia Tech", "Indiana", "Iowa", "Louisville",
    "Miami", "Michigan", "Notre Dame", "Ohio State", "Oklahoma", "Ole Miss", "Oregon", "Pittsburgh",
    "South Florida", "Southern California", "Tennessee", "Texas", "Texas A&M", "Texas Tech", "Utah",
    "Vanderbilt", "Virginia", "Washington", "Penn State", "LSU", "Clemson", "Florida State",
]


def seed_teams(db_session, names):
    """Add any team names not already in the catalog. Returns how many were added."""
    existing = {t.name for t in db_session.execute(select(Team)).scalars()}
    added = 0
    for name in names:
        if name not in existing:
            db_session.add(Team(name=name))
            existing.add(name)
            added += 1
    db_session.flush()
    return added


def seed_periods(db_session, season: str, first_week_start: datetime, weeks: int = 15):
    """
    Create weekly voting periods for a season (skips weeks that already exist)

    Each week is seven days from first_week_start; the poll opens on day six
    and closes at the last second of the week.
    """
    existing = {
        p.period for p in db_session.execute(
            select(BallotPeriod).where(BallotPeriod.season == season)
        ).scalars()
    }
    added = 0
    for week in range(1, weeks + 1):
        if week in existing:
            continue
        beg = first_week_start + timedelta(weeks=week - 1)
        end = beg + timedelta(days=7) - timedelta(seconds=1)
        db_session.add(BallotPeriod(
            season=season,
            period=week,
            period_name=f"Week {week}",
            period_beg_dt=beg,
            period_end_dt=end,
            poll_open_dt=beg + timedelta(days=5),
            poll_close_dt=end,
        ))
        added += 1
    db_session.flush()
    return added


def init_database(reset: bool = False):
    """Initialize database schema and seed reference data"""
    print("🔧 Poll Database Initialization")
    print("=" * 50)

    if reset:
        print("\n1. Dropping existing tables...")
        Base.metadata.drop_all(bind=engine)
        print("   ✓ Old tables dropped")

    print("\n2. Creating tables...")
    Base.metadata.create_all(bind=engine)
    print("   ✓ Tables: " + ", ".join(sorted(Base.metadata.tables)))

    db_session = SessionLocal()
    try:
        print("\n3. Seeding teams...")
        added = seed_teams(db_session, DEFAULT_TEAMS)
        print(f"   ✓ {added} teams added")

        season = os.getenv("SEASON", str(datetime.now(timezone.utc).year))
        print(f"\n4. Seeding {season} voting periods...")
        start = datetime(int(season), 8, 26, tzinfo=timezone.utc)
        added = seed_periods(db_session, season, start)
        print(f"   ✓ {added} periods added")

        admin_username = os.getenv("ADMIN_USERNAME")
        admin_password = os.getenv("ADMIN_PASSWORD")
        if admin_username and admin_password:
            print("\n5. Creating admin user...")
            exists = db_session.execute(
                select(User).where(User.username == admin_username)
            ).scalars().first()
            if exists:
                print(f"   ✓ Admin user already exists: {admin_username}")
            else:
                db_session.add(User(
                    username=admin_username,
                    email=os.getenv("ADMIN_EMAIL", f"{admin_username}@example.com"),
                    pw_hash=generate_password_hash(admin_password),
                    is_admin=True,
                    created_at=datetime.now(timezone.utc)
                ))
                print(f"   ✓ Admin user created: {admin_username}")

        db_session.commit()
    finally:
        db_session.close()

    print("\n" + "=" * 50)
    print("✅ Database initialization complete!")


if __name__ == "__main__":
    init_database(reset="--reset" in sys.argv[1:])
