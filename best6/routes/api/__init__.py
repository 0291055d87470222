from flask import Blueprint

bp = Blueprint("api", __name__)

from best6.routes.api import routes  # noqa: F401, E402
