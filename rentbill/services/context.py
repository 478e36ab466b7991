"""Explicit per-request context passed into every service."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Callable

from babel.dates import get_timezone

from rentbill.config import settings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def business_timezone() -> tzinfo:
    """Timezone that decides which calendar day it is for billing."""
    return get_timezone(settings.timezone)


@dataclass(frozen=True)
class RequestContext:
    """Who is acting and what time it is.

    Services never read the acting user or the clock from global state;
    callers build a context (the API from the request, jobs with actor_id=None).
    """

    actor_id: int | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        """Calendar date in the business timezone; naive clocks are taken as local already."""
        moment = self.clock()
        if moment.tzinfo is None:
            return moment.date()
        return moment.astimezone(business_timezone()).date()

    @classmethod
    def system(cls) -> "RequestContext":
        """Context for scheduled jobs with no acting user."""
        return cls(actor_id=None)

    @classmethod
    def at(cls, moment: datetime, actor_id: int | None = None) -> "RequestContext":
        """Context with a frozen clock."""
        return cls(actor_id=actor_id, clock=lambda: moment)


__all__ = ["RequestContext", "business_timezone"]
