import logging

from flask import request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import select
from datetime import datetime, timezone

from db import SessionLocal
from models import User
from . import bp

logger = logging.getLogger(__name__)


def _payload():
    """JSON body or form fields, whichever the client sent"""
    return request.get_json(silent=True) or request.form


@bp.post("/login")
def login():
    data = _payload()
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    with SessionLocal() as s:
        user = s.execute(
            select(User).where((User.username == username) | (User.email == username))
        ).scalars().first()
        if user and check_password_hash(user.pw_hash, password):
            login_user(user)
            user.last_login_at = datetime.now(timezone.utc)
            s.commit()
            return jsonify(user=user.to_dict())
    logger.info(f"Failed login for {username!r}")
    return jsonify(error="Invalid credentials"), 401


@bp.post("/register")
def register():
    data = _payload()
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    password_confirm = data.get("password_confirm", password)

    # Validation
    if not username or len(username) < 3:
        return jsonify(error="Username must be at least 3 characters."), 400

    if not email or "@" not in email:
        return jsonify(error="Please enter a valid email address."), 400

    if not password or len(password) < 6:
        return jsonify(error="Password must be at least 6 characters."), 400

    if password != password_confirm:
        return jsonify(error="Passwords do not match."), 400

    with SessionLocal() as s:
        if s.execute(select(User).where((User.username == username) | (User.email == email))).first():
            return jsonify(error="Username or email already exists."), 409
        user = User(username=username, email=email, pw_hash=generate_password_hash(password))
        s.add(user); s.commit()
        logger.info(f"Registered user {user.id} ({username})")
        return jsonify(user=user.to_dict()), 201


@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify(message="Signed out")


@bp.get("/me")
@login_required
def me():
    return jsonify(user=current_user.to_dict())
