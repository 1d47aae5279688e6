from datetime import date, datetime, timezone

from marshmallow import ValidationError


def normalize_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def validate_not_future(d) -> None:
    if isinstance(d, datetime):
        d = d.date()
    if d and d > date.today():
        raise ValidationError("Date cannot be in the future.")


def to_naive_utc(value):
    """Aware datetimes are converted to naive UTC to match the stored columns."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def flatten_errors(messages, prefix: str = "") -> list:
    """
    Turn marshmallow's nested error dict into [{"field": ..., "message": ...}].
    Nested keys are joined with dots (location.latitude).
    """
    out = []
    if isinstance(messages, dict):
        for key, value in messages.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            out.extend(flatten_errors(value, field))
    elif isinstance(messages, (list, tuple)):
        for value in messages:
            if isinstance(value, (dict, list, tuple)):
                out.extend(flatten_errors(value, prefix))
            else:
                out.append({"field": prefix or "_schema", "message": str(value)})
    else:
        out.append({"field": prefix or "_schema", "message": str(messages)})
    return out


def store_nested(data: dict, key: str, schema_cls, many: bool = False) -> None:
    """
    Nested documents land in JSON columns; keep them in their wire form
    (camelCase keys, ISO dates) so they round-trip unchanged.
    """
    if data.get(key) is not None:
        data[key] = schema_cls(many=many).dump(data[key])
