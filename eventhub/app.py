import logging
import re
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Dict, Iterable, Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import config
from .access import require_auth, require_email_confirmed, require_roles, require_self_or_admin
from .auth import AuthService
from .db import build_dynamodb_resource, get_tables
from .errors import AppError, ValidationError
from .events import DATE_AFTER, DATE_BEFORE, EventCatalog
from .mailer import Mailer, build_mailer_from_env
from .models import ROLES, EventStatus, User
from .registrations import RegistrationLedger
from .storage import ImageFile, ImageStorage, build_storage_from_env
from .users import UserDirectory
from .utils import parse_instant

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class Services:
    users: UserDirectory
    events: EventCatalog
    registrations: RegistrationLedger
    auth: AuthService


def build_services(tables: Dict[str, object], storage: Optional[ImageStorage], mailer: Mailer) -> Services:
    users = UserDirectory(tables["users"], storage, mailer)
    events = EventCatalog(tables["events"], storage, mailer, users)
    registrations = RegistrationLedger(tables["registrations"], events, users, mailer)
    return Services(users, events, registrations, AuthService(users))


def build_services_from_env() -> Services:
    tables = get_tables(build_dynamodb_resource())
    return build_services(tables, build_storage_from_env(), build_mailer_from_env())


# -------------------------
# Helpers: request parsing
# -------------------------
def _services() -> Services:
    return current_app.extensions["eventhub"]


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _clean(value):
    return value.strip() if isinstance(value, str) else value


def _require_str(data: dict, fields: Iterable[str]) -> None:
    # JSON bodies can carry numbers, lists or objects where text is expected
    for field in fields:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")


def _require_fields(data: dict, fields: Iterable[str]) -> None:
    _require_str(data, fields)
    for field in fields:
        if not _clean(data.get(field)):
            raise ValidationError(f"Missing field: {field}")


def _int_arg(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < 1:
        raise ValidationError(f"{name} must be at least 1")
    return value


def _image(field: str) -> Optional[ImageFile]:
    upload = request.files.get(field)
    if not upload or not upload.filename:
        return None
    return ImageFile(upload.filename, upload.read(), upload.mimetype)


def _check_email(email: str) -> None:
    if not EMAIL_RE.match(email or ""):
        raise ValidationError("Invalid email")


def _check_password(password: str) -> None:
    if (len(password) < 8 or len(password.encode("utf-8")) > 72
            or not re.search(r"[a-z]", password)
            or not re.search(r"[A-Z]", password)
            or not re.search(r"\d", password)
            or not re.search(r"[^A-Za-z0-9]", password)):
        raise ValidationError(
            "Password must be 8-72 characters with upper and lower case letters, a number and a symbol"
        )


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")


def _check_date(value: str) -> str:
    parse_instant(value)
    return value


api = Blueprint("api", __name__)


@api.before_app_request
def log_request() -> None:
    logger.info("Incoming %s %s", request.method, request.path)


@api.after_app_request
def log_response(response):
    logger.info("Response %s %s -> %s", request.method, request.path, response.status)
    return response


# -------------------------
# Health
# -------------------------
@api.route("/healthz", methods=["GET"])
def healthz():
    return jsonify({
        "status": "ok",
        "service": "eventhub",
        "time": datetime.now(UTC).isoformat(),
    }), 200


# -------------------------
# Auth
# POST /auth/login {email, password} -> {access_token}
# GET  /auth/confirm-email?token=...
# -------------------------
@api.route("/auth/login", methods=["POST"])
def login():
    data = _json_body()
    _require_fields(data, ("email", "password"))
    return jsonify(_services().auth.login(_clean(data["email"]), data["password"])), 200


@api.route("/auth/confirm-email", methods=["GET"])
def confirm_email():
    return jsonify(_services().auth.confirm_email(request.args.get("token", ""))), 200


# -------------------------
# Users
# -------------------------
@api.route("/users", methods=["POST"])
def create_user():
    data = {k: _clean(v) for k, v in request.form.items()}
    _require_fields(data, ("name", "email", "password", "role"))
    _check_email(data["email"])
    _check_password(data["password"])
    _check_role(data["role"])

    user = _services().users.create(_image("file"), data)
    return jsonify({"user": User.public(user)}), 201


@api.route("/users/me", methods=["PATCH"])
@require_auth
@require_email_confirmed
def update_me():
    data = _json_body()
    _require_str(data, ("name", "email", "password", "phone"))
    # Role is not self-service
    patch = {k: _clean(data.get(k)) for k in ("name", "email", "password", "phone")}
    if patch["email"] is not None:
        _check_email(patch["email"])
    if patch["password"] is not None:
        _check_password(patch["password"])

    user = _services().users.update(patch, g.principal.user_id)
    return jsonify({"user": user}), 200


@api.route("/users", methods=["GET"])
@require_auth
@require_email_confirmed
@require_roles("admin")
def list_users():
    role = request.args.get("role") or None
    if role:
        _check_role(role)
    result = _services().users.find_all(
        name=request.args.get("name") or None,
        email=request.args.get("email") or None,
        role=role,
        page=_int_arg("page"),
        limit=_int_arg("limit"),
    )
    return jsonify(result), 200


@api.route("/users/<user_id>", methods=["GET"])
@require_auth
@require_email_confirmed
@require_self_or_admin("user_id")
def get_user(user_id):
    return jsonify({"user": _services().users.find_by_id(user_id)}), 200


@api.route("/users/<user_id>", methods=["DELETE"])
@require_auth
@require_email_confirmed
@require_self_or_admin("user_id")
def delete_user(user_id):
    return jsonify({"user": _services().users.soft_delete(user_id, g.principal)}), 200


# -------------------------
# Events
# -------------------------
@api.route("/events", methods=["POST"])
@require_auth
@require_roles("admin", "organizer")
def create_event():
    data = {k: _clean(v) for k, v in request.form.items()}
    _require_fields(data, ("name", "description", "date"))
    _check_date(data["date"])

    event = _services().events.create(data, _image("image"), g.principal.user_id)
    return jsonify(event), 201


@api.route("/events", methods=["GET"])
def list_events():
    date = request.args.get("date") or None
    if date:
        _check_date(date)
    direction = request.args.get("date_direction") or None
    if direction and direction not in (DATE_BEFORE, DATE_AFTER):
        raise ValidationError("date_direction must be 'before' or 'after'")
    status = (request.args.get("status") or "").strip().lower() or None
    if status and status not in {s.value for s in EventStatus}:
        raise ValidationError(f"Invalid status: {status}")

    result = _services().events.find_all(
        name=_clean(request.args.get("name")) or None,
        date=date,
        date_direction=direction,
        status=status,
        page=_int_arg("page"),
        limit=_int_arg("limit"),
    )
    return jsonify(result), 200


@api.route("/events/<event_id>", methods=["GET"])
def get_event(event_id):
    return jsonify(_services().events.find_one(event_id)), 200


@api.route("/events/<event_id>", methods=["PATCH"])
@require_auth
@require_roles("admin", "organizer")
def update_event(event_id):
    data = _json_body()
    _require_str(data, ("name", "description", "date", "organizer_id"))
    data = {k: _clean(v) for k, v in data.items()}
    if data.get("date"):
        _check_date(data["date"])

    event = _services().events.update(event_id, data, g.principal.user_id, g.principal.is_admin)
    return jsonify(event), 200


@api.route("/events/<event_id>", methods=["DELETE"])
@require_auth
@require_roles("admin", "organizer")
def delete_event(event_id):
    event = _services().events.soft_delete(event_id, g.principal.user_id, g.principal.role)
    return jsonify(event), 200


# -------------------------
# Registrations
# -------------------------
@api.route("/registrations", methods=["POST"])
@require_auth
def create_registration():
    data = _json_body()
    _require_fields(data, ("event_id",))
    registration = _services().registrations.create_registration(
        g.principal.user_id, {"event_id": _clean(data["event_id"])}
    )
    return jsonify(registration), 201


@api.route("/registrations", methods=["GET"])
@require_auth
def list_registrations():
    result = _services().registrations.list_registrations(
        g.principal.user_id, page=_int_arg("page"), limit=_int_arg("limit")
    )
    return jsonify(result), 200


@api.route("/registrations/<registration_id>", methods=["DELETE"])
@require_auth
def cancel_registration(registration_id):
    registration = _services().registrations.cancel_registration(registration_id, g.principal.user_id)
    return jsonify(registration), 200


# -------------------------
# Errors
# -------------------------
def handle_app_error(e: AppError):
    return jsonify({"error": e.message}), e.status_code


def handle_unexpected_error(e: Exception):
    if isinstance(e, HTTPException):
        return jsonify({"error": e.description}), e.code
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


def create_app(services: Optional[Services] = None) -> Flask:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="[%(levelname)s] %(asctime)s - %(name)s - %(message)s",
    )

    app = Flask(__name__)
    CORS(app)
    app.extensions["eventhub"] = services or build_services_from_env()
    app.register_blueprint(api)
    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    return app
