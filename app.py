# app.py
"""
Independent college football poll
Main Flask application: ballots, teams, voting periods, and sign-in
"""
import os
import logging
from flask import Flask, jsonify
from flask_login import LoginManager
from dotenv import load_dotenv
load_dotenv()

from db import SessionLocal
from models import User

# Import blueprints
from auth import bp as auth_bp
from account import bp as account_bp
from ballot import bp as ballot_bp
from catalog import bp as catalog_bp

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-override")

# ============================================================
# FLASK-LOGIN SETUP
# ============================================================

login_manager = LoginManager()
login_manager.init_app(app)

@login_manager.user_loader
def load_user(user_id: str):
    """Load user from database for Flask-Login"""
    with SessionLocal() as s:
        return s.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(error="Unauthorized"), 401


# ============================================================
# REGISTER BLUEPRINTS
# ============================================================

app.register_blueprint(auth_bp, url_prefix="/auth")
app.register_blueprint(account_bp)
app.register_blueprint(ballot_bp)
app.register_blueprint(catalog_bp)


@app.teardown_appcontext
def remove_session(exc=None):
    SessionLocal.remove()


# ============================================================
# ERRORS & DIAGNOSTICS
# ============================================================

@app.errorhandler(404)
def not_found(e):
    return jsonify(error="Not found"), 404


@app.errorhandler(500)
def server_error(e):
    logger.error(f"Unhandled error: {e}")
    return jsonify(error="Internal server error"), 500


@app.get("/healthz")
def healthz():
    """Health check endpoint"""
    return "ok", 200


# ============================================================
# RUN APP
# ============================================================

if __name__ == "__main__":
    app.run(debug=True, port=5057)
