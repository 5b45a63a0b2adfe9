# account/routes.py
import logging
import re

from flask import request, jsonify
from flask_login import login_required, current_user
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from db import SessionLocal
from models import User, UserAccount, Team
from utils.responses import no_store
from . import bp

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# (flag, url field, verified flag); turning a flag off clears its url and verification
MEDIA_FIELDS = [
    ("podcast", "podcast_url", "podcast_verified"),
    ("sports_media", "sports_media_url", "sports_media_verified"),
    ("sports_broadcast", "sports_broadcast_url", "sports_broadcast_verified"),
]

USER_FIELDS = ("email", "password")
PROFILE_FIELDS = ("favorite_team_id", "podcast_followers") + tuple(
    name for flag, url, _ in MEDIA_FIELDS for name in (flag, url)
)


class AccountUpdateError(Exception):
    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.status_code = status_code


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _apply_user_changes(s, user, data):
    """Email and password. Returns True if the email changed."""
    email_changed = False

    email = data.get("email")
    if email is not None:
        email = str(email).strip()
        if email and email != user.email:
            if not EMAIL_RE.match(email):
                raise AccountUpdateError("Please enter a valid email address.")
            taken = s.execute(select(User.id).where(User.email == email, User.id != user.id)).first()
            if taken:
                raise AccountUpdateError("Email already in use.", 409)
            user.email = email
            email_changed = True

    password = data.get("password")
    if password:
        if not check_password_hash(user.pw_hash, data.get("current_password") or ""):
            raise AccountUpdateError("Current password is incorrect.")
        if len(password) < 6:
            raise AccountUpdateError("Password must be at least 6 characters.")
        if password != data.get("password_confirm", password):
            raise AccountUpdateError("Passwords do not match.")
        user.pw_hash = generate_password_hash(password)

    return email_changed


def _apply_profile_changes(s, user, data):
    if not any(field in data for field in PROFILE_FIELDS):
        return

    account = user.account
    if account is None:
        account = UserAccount(user_id=user.id)
        user.account = account

    if "favorite_team_id" in data:
        team_id = data["favorite_team_id"]
        if team_id is None:
            account.favorite_team = None
        elif not _is_int(team_id):
            raise AccountUpdateError("favorite_team_id must be an integer.")
        else:
            team = s.get(Team, team_id)
            if team is None:
                raise AccountUpdateError(f"Unknown team id: {team_id}")
            account.favorite_team = team

    if "podcast_followers" in data:
        followers = data["podcast_followers"]
        if followers is not None and (not _is_int(followers) or followers < 0):
            raise AccountUpdateError("podcast_followers must be a non-negative integer.")
        account.podcast_followers = followers

    for flag, url_field, verified_field in MEDIA_FIELDS:
        if flag in data:
            if not isinstance(data[flag], bool):
                raise AccountUpdateError(f"{flag} must be true or false.")
            setattr(account, flag, data[flag])
            if not data[flag]:
                setattr(account, url_field, None)
                setattr(account, verified_field, False)
                continue

        if url_field in data:
            url = data[url_field]
            if url is not None and not isinstance(url, str):
                raise AccountUpdateError(f"{url_field} must be a string.")
            setattr(account, url_field, (url or "").strip() or None)


@bp.get("/account")
@login_required
def get_account():
    """Signed-in user plus their profile, or account: null if they never saved one"""
    with SessionLocal() as s:
        user = s.get(User, current_user.id)
        account = user.account.to_dict() if user.account else None
        return no_store(jsonify(user=user.to_dict(), account=account))


@bp.put("/account")
@login_required
def update_account():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Invalid request body"), 400

    if not any(data.get(field) for field in USER_FIELDS) and not any(field in data for field in PROFILE_FIELDS):
        return jsonify(error="At least one field must be provided for update"), 400

    with SessionLocal() as s:
        user = s.get(User, current_user.id)
        try:
            email_changed = _apply_user_changes(s, user, data)
            _apply_profile_changes(s, user, data)
            s.commit()
        except AccountUpdateError as e:
            s.rollback()
            return jsonify(error=str(e)), e.status_code
        except IntegrityError:
            s.rollback()
            logger.info(f"Account update for user {user.id} hit a uniqueness conflict")
            return jsonify(error="Email already in use."), 409
        except SQLAlchemyError as e:
            s.rollback()
            logger.error(f"Account update failed for user {user.id}: {e}")
            return jsonify(error="Internal server error"), 500

        logger.info(f"Updated account for user {user.id}")
        return jsonify(
            message="Account updated successfully",
            user=user.to_dict(),
            account=user.account.to_dict() if user.account else None,
            emailUpdated=email_changed,
        )
