from datetime import datetime
from typing import Tuple

from flask import abort, jsonify, request

from models.schemas.common import to_naive_utc

MAX_LIMIT = 100


def success_response(data=None, message: str = "OK", status: int = 200, meta: dict | None = None):
    payload = {"success": True, "message": message, "data": data}
    if meta is not None:
        payload["meta"] = meta
    return jsonify(payload), status


def parse_pagination(default_limit: int = 20) -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", str(default_limit)))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def parse_float(name: str, minimum: float | None = None, maximum: float | None = None) -> float | None:
    val = request.args.get(name)
    if val is None or val == "":
        return None
    try:
        number = float(val)
    except ValueError:
        abort(400, description=f"{name} must be a number")
    if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
        abort(400, description=f"{name} is out of range")
    return number


def parse_bool(name: str) -> bool | None:
    val = request.args.get(name)
    if val is None or val == "":
        return None
    if val.lower() in ("1", "true", "yes"):
        return True
    if val.lower() in ("0", "false", "no"):
        return False
    abort(400, description=f"{name} must be a boolean")


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def page_meta(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total}


def parse_datetime(name: str) -> datetime | None:
    val = request.args.get(name)
    if not val:
        return None
    try:
        value = datetime.fromisoformat(val.replace("Z", "+00:00"))
    except ValueError:
        abort(400, description=f"Invalid date format for {name}. Use ISO 8601")
    return to_naive_utc(value)
