from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from app.errors import ValidationError


def parse_amount(value, field):
    """Parse a numeric input into a Decimal, raising ValidationError when it is not a number."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return amount


def parse_positive_amount(value, field):
    amount = parse_amount(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return amount


def parse_optional_threshold(value, field):
    """Reward criteria are either absent or strictly positive."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_positive_amount(value, field)


def parse_optional_datetime(value, field):
    if value is None or value == "":
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
    # Stored as naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_pagination(args, default_per_page=15, max_per_page=100):
    """Read 1-based ``page`` and ``per_page`` query parameters."""
    try:
        page = int(args.get("page", 1))
        per_page = int(args.get("per_page", default_per_page))
    except (TypeError, ValueError):
        raise ValidationError("page and per_page must be integers")
    if page < 1 or per_page < 1:
        raise ValidationError("page and per_page must be positive")
    return page, min(per_page, max_per_page)


def clean_optional_text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None
