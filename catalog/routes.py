# catalog/routes.py
from flask import request, jsonify
from sqlalchemy import select, asc

from db import SessionLocal
from models import Team
from utils.period_helpers import get_current_period, list_periods, utcnow
from utils.responses import no_store

from . import bp

@bp.get("/teams")
def teams():
    """Every rankable team, alphabetical"""
    with SessionLocal() as s:
        rows = s.execute(select(Team).order_by(asc(Team.name))).scalars().all()
        return jsonify(teams=[t.to_dict() for t in rows])


@bp.get("/ballot-periods")
def ballot_periods():
    season = request.args.get("season") or str(utcnow().year)
    with SessionLocal() as s:
        periods = list_periods(s, season)
        return no_store(jsonify(periods=[p.to_dict() for p in periods]))


@bp.get("/ballot-periods/current")
def current_ballot_period():
    with SessionLocal() as s:
        period = get_current_period(s)
        return no_store(jsonify(period=period.to_dict() if period else None))
