"""Resolve display names and avatars for chat participants."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from .directory import ProfileDirectory
from .models import Display, Principal, Role

logger = logging.getLogger(__name__)

GENERIC_LABELS: Dict[Role, str] = {
    Role.CUSTOMER: "Customer",
    Role.AGENT: "Delivery Agent",
}
FALLBACK_LABEL = "User"


class IdentityResolver:
    """Decorates principals with the profile data shown next to messages.

    Profile lookups never fail the caller: a missing profile, or a lookup that
    raises, yields the generic label for the principal's role.
    """

    def __init__(self, profiles: ProfileDirectory) -> None:
        self._profiles = profiles
        self._lookups: Dict[Role, Callable[[int], Optional[Display]]] = {
            Role.CUSTOMER: profiles.get_customer_profile,
            Role.AGENT: profiles.get_agent_profile,
        }

    def resolve_display(self, principal: Principal) -> Display:
        fallback = Display(GENERIC_LABELS.get(principal.role, FALLBACK_LABEL))
        lookup = self._lookups.get(principal.role)
        if lookup is None:
            return fallback
        try:
            profile = lookup(principal.user_id)
        except Exception as exc:
            logger.warning(
                "Profile lookup failed for %s %s: %s",
                principal.role.value,
                principal.user_id,
                exc,
            )
            return fallback
        return profile or fallback

    def display_name(self, principal: Principal) -> str:
        return self.resolve_display(principal).name


__all__ = ["FALLBACK_LABEL", "GENERIC_LABELS", "IdentityResolver"]
