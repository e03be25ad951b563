from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.conf import settings


@dataclass(frozen=True)
class TenantContext:
    """Identity of the caller, resolved upstream and trusted as-is.

    Every service call receives one; ``rice_mill_id`` is applied as a
    filter to every query and write.
    """

    rice_mill_id: object
    user_id: object = None
    role: str | None = None
    timeout: float | None = None
    log: logging.LoggerAdapter = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        adapter = logging.LoggerAdapter(
            logging.getLogger("gatepass"),
            {"rice_mill": str(self.rice_mill_id), "user": str(self.user_id or "-")},
        )
        object.__setattr__(self, "log", adapter)

    @property
    def deadline(self) -> float | None:
        if self.timeout is not None:
            return self.timeout
        return getattr(settings, "GATEPASS_QUERY_TIMEOUT", None)

    @classmethod
    def for_user(cls, user, timeout=None) -> "TenantContext":
        profile = user.gatepass_profile
        return cls(
            rice_mill_id=profile.rice_mill_id,
            user_id=user.pk,
            role=profile.role,
            timeout=timeout,
        )
