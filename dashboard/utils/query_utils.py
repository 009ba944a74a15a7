from django.conf import settings


def to_int_or_none(value):
    """'12' / 12 -> 12, anything else (None, '', 'abc', 1.5) -> None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def trim_or_none(value):
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_pagination(params, default_limit: int = 20):
    """
    Returns (page, limit, offset). page >= 1, limit clamped to
    1..API_PAGE_SIZE_MAX. Garbage falls back to the defaults.
    """
    page = to_int_or_none(params.get("page")) or 1
    page = max(1, page)

    limit = to_int_or_none(params.get("limit")) or default_limit
    limit = min(settings.API_PAGE_SIZE_MAX, max(1, limit))

    return page, limit, (page - 1) * limit


def pick_sort(params, allowed, fallback: str) -> str:
    """
    Build an order_by() argument from ?sort=&dir= using an allow-list.
    Unknown columns fall back; direction defaults to descending.
    """
    sort = params.get("sort") or fallback
    if sort not in allowed:
        sort = fallback

    direction = (params.get("dir") or "desc").lower()
    return sort if direction == "asc" else f"-{sort}"
