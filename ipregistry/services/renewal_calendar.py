"""
Renewal and expiry schedule for registered IP.

Both dates are whole years after the registration date and depend only on
the category. Records that are still "Recently Filed" have no schedule.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional


RECENTLY_FILED = "Recently Filed"

# category -> (years to next renewal, years to expiry)
SCHEDULES = {
    "Patent": (1, 20),
    "Utility Model": (7, 7),
    "Industrial Design": (5, 15),
    "Trademark": (10, 10),
    "Copyright": (None, None),
}

KIND_ORDER = {"expiry": 0, "due": 1}


def add_years(start: date, years: int) -> date:
    """
    >>> add_years(date(2020, 2, 29), 1)
    datetime.date(2021, 3, 1)
    >>> add_years(date(2020, 2, 29), 4)
    datetime.date(2024, 2, 29)
    """
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # 29 February in a non-leap year
        return date(start.year + years, 3, 1)


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _offset(category: Optional[str], index: int) -> Optional[int]:
    schedule = SCHEDULES.get(str(category or "").strip())
    return schedule[index] if schedule else None


def next_due_date(category: Optional[str], registered: Any) -> Optional[date]:
    registered = _as_date(registered)
    years = _offset(category, 0)
    if registered is None or years is None:
        return None
    return add_years(registered, years)


def expiry_date(category: Optional[str], registered: Any) -> Optional[date]:
    registered = _as_date(registered)
    years = _offset(category, 1)
    if registered is None or years is None:
        return None
    return add_years(registered, years)


def has_schedule(row: Mapping[str, Any]) -> bool:
    return str(row.get("status") or "").strip() != RECENTLY_FILED and _as_date(row.get("date_registered")) is not None


def build_events(
    rows: Iterable[Mapping[str, Any]],
    upcoming_only: bool = False,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Due and expiry events for record rows, sorted by date, kind, title"""
    today = today or date.today()
    events: List[Dict[str, Any]] = []

    for row in rows:
        if not has_schedule(row):
            continue
        for kind, when in (
            ("due", next_due_date(row.get("category"), row.get("date_registered"))),
            ("expiry", expiry_date(row.get("category"), row.get("date_registered"))),
        ):
            if when is None or (upcoming_only and when < today):
                continue
            events.append({
                "kind": kind,
                "date": when,
                "record_id": row.get("record_id"),
                "title": row.get("ip_title"),
                "category": row.get("category"),
                "status": row.get("status"),
                "campus": row.get("campus"),
            })

    events.sort(key=lambda ev: (ev["date"], KIND_ORDER[ev["kind"]], str(ev["title"] or "")))
    return events
