# ballot/routes.py
from __future__ import annotations

import logging

from flask import request, jsonify
from flask_login import login_required, current_user

from db import SessionLocal
from models import BALLOT_IN_PROGRESS, BALLOT_FINAL
from services.ballot_service import BallotService, BallotValidationError, BallotPersistenceError
from utils.period_helpers import get_current_period
from utils.responses import no_store

from . import bp

logger = logging.getLogger(__name__)


def _rankings_from_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data.get("rankings")


def _save(submit: bool):
    entries = _rankings_from_body()
    with SessionLocal() as s:
        service = BallotService(s)
        try:
            if submit:
                ballot_id = service.submit_final(current_user.id, entries)
            else:
                ballot_id = service.save_ranking(current_user.id, BALLOT_IN_PROGRESS, entries)
        except BallotValidationError as e:
            logger.info(f"Rejected ballot from user {current_user.id}: {e}")
            return jsonify(error=str(e)), 400
        except BallotPersistenceError:
            return jsonify(error="Internal server error"), 500

    message = "Ballot submitted successfully" if submit else "Ballot saved successfully"
    return jsonify(message=message, ballotId=ballot_id)


# -------------------------
# Draft ballot
# -------------------------
@bp.get("/ballot")
@login_required
def get_ballot():
    """The user's in-progress ranking, used to hydrate the ballot builder"""
    with SessionLocal() as s:
        rankings = BallotService(s).load_ranking(current_user.id, BALLOT_IN_PROGRESS)
    return no_store(jsonify(rankings=rankings))


@bp.put("/ballot")
@login_required
def save_ballot():
    """Save the draft (no voting period needed)"""
    return _save(submit=False)


# -------------------------
# Final ballot
# -------------------------
@bp.post("/ballot")
@login_required
def submit_ballot():
    """Submit the final ballot for the currently open voting period"""
    return _save(submit=True)


@bp.get("/ballot/final")
@login_required
def get_final_ballot():
    with SessionLocal() as s:
        period = get_current_period(s)
        if not period:
            return no_store(jsonify(rankings=[], period=None))
        rankings = BallotService(s).load_ranking(current_user.id, BALLOT_FINAL, period.id)
        return no_store(jsonify(rankings=rankings, period=period.to_dict()))
