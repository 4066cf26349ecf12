from __future__ import annotations

from datetime import date, datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _day(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()
