from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Must be set before db.py is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest
from werkzeug.security import generate_password_hash

from db import Base, SessionLocal, engine
from models import BallotPeriod, Team, User
from services.ranking_engine import RankItem

PASSWORD = "hunter22"


def make_catalog(n: int = 30) -> list[RankItem]:
    """Team01..TeamNN; alphabetical order matches numeric order"""
    return [RankItem(id=i, name=f"Team{i:02d}") for i in range(1, n + 1)]


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    SessionLocal.remove()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def catalog() -> list[RankItem]:
    return make_catalog()


@pytest.fixture()
def db_session():
    session = SessionLocal()
    yield session
    session.rollback()


@pytest.fixture()
def teams(db_session) -> list[Team]:
    rows = [Team(id=i, name=f"Team{i:02d}") for i in range(1, 31)]
    db_session.add_all(rows)
    db_session.commit()
    return rows


def _add_user(db_session, username: str) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        pw_hash=generate_password_hash(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def password() -> str:
    return PASSWORD


@pytest.fixture()
def user(db_session) -> User:
    return _add_user(db_session, "voter1")


@pytest.fixture()
def other_user(db_session) -> User:
    return _add_user(db_session, "voter2")


@pytest.fixture()
def open_period(db_session) -> BallotPeriod:
    now = datetime.now(timezone.utc)
    period = BallotPeriod(
        season=str(now.year),
        period=5,
        period_name="Week 5",
        period_beg_dt=now - timedelta(days=6),
        period_end_dt=now + timedelta(days=1),
        poll_open_dt=now - timedelta(days=1),
        poll_close_dt=now + timedelta(days=1),
    )
    db_session.add(period)
    db_session.commit()
    return period


@pytest.fixture()
def client():
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def auth_client(client, user, teams):
    resp = client.post("/auth/login", json={"username": user.username, "password": PASSWORD})
    assert resp.status_code == 200
    return client
