from functools import wraps

from flask import jsonify, request

from best6.errors import AuthenticationError, ValidationError
from best6.remote.database import DatabaseBackend
from best6.routes.api import bp

backend = DatabaseBackend()


def json_payload(expected_type):
    """Pass the request's JSON body to the view, rejecting the wrong shape"""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            payload = request.get_json(silent=True)
            if not isinstance(payload, expected_type):
                raise ValidationError(
                    f"Expected a JSON {'list' if expected_type is list else 'object'}"
                )
            return f(payload, *args, **kwargs)

        return decorated_function

    return decorator


def write_token_required(f):
    """Reject writes that do not carry the player's bearer token"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        token = header[len("Bearer ") :] if header.startswith("Bearer ") else ""
        if not backend.verify_token(kwargs["user_id"], token):
            raise AuthenticationError("A valid write token is required")
        return f(*args, **kwargs)

    return decorated_function


def _int_field(row, name, minimum=None, maximum=None, required=True):
    value = row.get(name)
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{name}' must be an integer")
    if (minimum is not None and value < minimum) or (
        maximum is not None and value > maximum
    ):
        raise ValidationError(f"'{name}' is out of range")
    return value


def _row(item):
    if not isinstance(item, dict):
        raise ValidationError("Each row must be a JSON object")
    return item


@bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@bp.route("/users/<user_id>/profile", methods=["GET"])
def get_profile(user_id):
    profile = backend.get_profile(user_id)
    if profile is None:
        return jsonify({"error": "Profile not found"}), 404
    return jsonify(profile)


@bp.route("/users/<user_id>/profile", methods=["PUT"])
@write_token_required
@json_payload(dict)
def put_profile(payload, user_id):
    name = payload.get("name") or ""
    if not isinstance(name, str):
        raise ValidationError("'name' must be a string")
    backend.upsert_profile(user_id, name.strip())
    return "", 204


@bp.route("/users/<user_id>/token", methods=["POST"])
def claim_token(user_id):
    return jsonify({"token": backend.claim_token(user_id)}), 201


@bp.route("/users/<user_id>/predictions", methods=["GET"])
def get_predictions(user_id):
    return jsonify(backend.fetch_predictions(user_id))


@bp.route("/users/<user_id>/predictions", methods=["PUT"])
@write_token_required
@json_payload(list)
def put_predictions(payload, user_id):
    rows = []
    for item in map(_row, payload):
        rows.append(
            {
                "match_id": _int_field(item, "match_id"),
                "home": _int_field(item, "home", minimum=0),
                "away": _int_field(item, "away", minimum=0),
            }
        )
    backend.replace_predictions(user_id, rows)
    return "", 204


@bp.route("/users/<user_id>/rounds", methods=["GET"])
def get_rounds(user_id):
    return jsonify(backend.fetch_rounds(user_id))


@bp.route("/users/<user_id>/rounds", methods=["PUT"])
@write_token_required
@json_payload(list)
def put_rounds(payload, user_id):
    rows = []
    for item in map(_row, payload):
        round_id = item.get("id")
        created_at = item.get("created_at")
        if not isinstance(round_id, str) or not round_id:
            raise ValidationError("'id' must be a non-empty string")
        if not isinstance(created_at, str) or not created_at:
            raise ValidationError("'created_at' must be an ISO timestamp")
        rows.append(
            {
                "id": round_id,
                "matchday": _int_field(item, "matchday", minimum=0),
                "total_points": _int_field(item, "total_points", minimum=0, maximum=30),
                "first_goal_minute": _int_field(
                    item, "first_goal_minute", minimum=1, maximum=120, required=False
                ),
                "created_at": created_at,
            }
        )
    backend.replace_rounds(user_id, rows)
    return "", 204


@bp.route("/users/<user_id>/leagues", methods=["GET"])
def get_leagues(user_id):
    return jsonify(backend.fetch_memberships(user_id))


@bp.route("/users/<user_id>/leagues", methods=["PUT"])
@write_token_required
@json_payload(list)
def put_leagues(payload, user_id):
    leagues = []
    for item in map(_row, payload):
        code = item.get("code")
        if not isinstance(code, str) or not code.strip():
            raise ValidationError("'code' must be a non-empty string")
        leagues.append({"name": item.get("name") or "League", "code": code.strip()})
    backend.replace_memberships(user_id, leagues)
    return "", 204


@bp.route("/users/<user_id>/leaderboard", methods=["GET"])
def get_leaderboard_row(user_id):
    row = backend.fetch_leaderboard(user_id)
    if row is None:
        return jsonify({"error": "Leaderboard entry not found"}), 404
    return jsonify(row)


@bp.route("/users/<user_id>/leaderboard", methods=["PUT"])
@write_token_required
@json_payload(dict)
def put_leaderboard_row(payload, user_id):
    backend.upsert_leaderboard(
        user_id,
        _int_field(payload, "total_points", minimum=0),
        _int_field(payload, "weekly_points", minimum=0),
    )
    return "", 204


@bp.route("/leaderboard")
def leaderboard():
    """Global standings"""
    limit = request.args.get("limit", 50, type=int)
    return jsonify(backend.list_leaderboard(min(max(limit, 1), 200)))


@bp.route("/auth/register", methods=["POST"])
@json_payload(dict)
def register(payload):
    user_id = backend.register(
        payload.get("email"), payload.get("password"), payload.get("name") or ""
    )
    return jsonify({"user_id": user_id, "token": backend.issue_token(user_id)}), 201


@bp.route("/auth/login", methods=["POST"])
@json_payload(dict)
def login(payload):
    user_id = backend.authenticate(payload.get("email"), payload.get("password"))
    return jsonify({"user_id": user_id, "token": backend.issue_token(user_id)})
