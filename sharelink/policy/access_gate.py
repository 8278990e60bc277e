"""
Access gate for shareable links.

Decides, per view request, whether a link may be shown, and keeps the access
counter honest.

Rules, in order:
- no link                                  -> NOT_FOUND
- expiration set and now > expiration      -> EXPIRED (even with the right password)
- private and supplied password != stored  -> DENIED
- otherwise                                -> ALLOWED, counter += 1

Passwords are compared as plain strings. An absent password (None or "")
only matches an absent stored password.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

import structlog

from ..db.repositories import LinkRepository
from ..primitives import as_utc, normalize_password, utc_now

logger = structlog.get_logger()


class AccessDecision(str, Enum):
    """Outcome of an access evaluation."""

    ALLOWED = "allowed"
    DENIED = "denied"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


class GatedLink(Protocol):
    """The fields of a link record the gate reads."""

    visibility: str
    password: Optional[str]
    expiration: Optional[datetime]


@dataclass
class AccessResult:
    """Decision for one view request plus what it resolved."""

    decision: AccessDecision
    link: Optional[object] = None
    access_count: Optional[int] = None

    @property
    def allowed(self) -> bool:
        return self.decision is AccessDecision.ALLOWED


def is_expired(link: GatedLink, now: datetime) -> bool:
    """True when the link has an expiration strictly before ``now``."""
    expiration = as_utc(link.expiration)
    return expiration is not None and as_utc(now) > expiration


def password_matches(link: GatedLink, supplied_password: Optional[str]) -> bool:
    """Exact match between the supplied and the stored password."""
    return normalize_password(supplied_password) == normalize_password(link.password)


def evaluate_access(
    link: Optional[GatedLink],
    supplied_password: Optional[str],
    now: Optional[datetime] = None,
) -> AccessDecision:
    """
    Evaluate a view attempt against a link.

    This is a pure function: no DB access, no counter mutation.

    Args:
        link: The resolved link record, or None when it does not exist
        supplied_password: Password presented with the request, if any
        now: Evaluation time (defaults to the current UTC time)
    """
    if link is None:
        return AccessDecision.NOT_FOUND

    if now is None:
        now = utc_now()

    if is_expired(link, now):
        return AccessDecision.EXPIRED

    if link.visibility == "private" and not password_matches(link, supplied_password):
        return AccessDecision.DENIED

    return AccessDecision.ALLOWED


class AccessPolicyEngine:
    """Applies ``evaluate_access`` to stored links and records allowed views.

    Usage:
        engine = AccessPolicyEngine(SqlLinkRepository(db))
        result = engine.authorize_view(link_id, password)
    """

    def __init__(self, repository: LinkRepository):
        self.repository = repository

    def authorize_view(
        self,
        link_id: str,
        supplied_password: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AccessResult:
        """Resolve, evaluate and, when allowed, count one view of a link."""
        link = self.repository.get(link_id)
        decision = evaluate_access(link, supplied_password, now)

        if decision is not AccessDecision.ALLOWED:
            logger.info("Link view refused", link_id=link_id, decision=decision.value)
            return AccessResult(decision=decision, link=link)

        access_count = self.repository.increment_access_count(link_id)
        if access_count is None:
            # Deleted between the lookup and the increment.
            logger.info("Link vanished during view", link_id=link_id)
            return AccessResult(decision=AccessDecision.NOT_FOUND)

        # The increment commit expired the record; reload it on this thread.
        link = self.repository.get(link_id)
        if link is None:
            logger.info("Link vanished during view", link_id=link_id)
            return AccessResult(decision=AccessDecision.NOT_FOUND)

        logger.info("Link view allowed", link_id=link_id, access_count=access_count)
        return AccessResult(decision=decision, link=link, access_count=access_count)
