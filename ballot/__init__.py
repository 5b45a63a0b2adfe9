from flask import Blueprint

bp = Blueprint("ballot", __name__)

from . import routes  # noqa: E402,F401
