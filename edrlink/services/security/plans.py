from __future__ import annotations

from dataclasses import dataclass
from typing import Any


DEFAULT_PLAN_ID = "free"


@dataclass(frozen=True)
class PlanLimits:
    # max_endpoints=None means unbounded, never zero.
    max_endpoints: int | None
    antivirus: bool
    firewall: bool
    isolation: bool
    backup: bool

    def features(self) -> dict[str, bool]:
        return {
            "antivirus": self.antivirus,
            "firewall": self.firewall,
            "isolation": self.isolation,
            "backup": self.backup,
        }

    def can_add(self, current: int) -> bool:
        return self.max_endpoints is None or current < self.max_endpoints


SECURITY_PLAN_LIMITS: dict[str, PlanLimits] = {
    "free": PlanLimits(max_endpoints=1, antivirus=True, firewall=True, isolation=False, backup=False),
    "basic": PlanLimits(max_endpoints=3, antivirus=True, firewall=True, isolation=True, backup=False),
    "pro": PlanLimits(max_endpoints=10, antivirus=True, firewall=True, isolation=True, backup=True),
    "enterprise": PlanLimits(max_endpoints=50, antivirus=True, firewall=True, isolation=True, backup=True),
    "custom": PlanLimits(max_endpoints=None, antivirus=True, firewall=True, isolation=True, backup=True),
}


def resolve_plan(plan_id: str | None) -> PlanLimits:
    # Unknown or missing tiers fall back to the free plan.
    return SECURITY_PLAN_LIMITS.get((plan_id or "").lower(), SECURITY_PLAN_LIMITS[DEFAULT_PLAN_ID])


def limits_snapshot(plan_id: str | None, current: int) -> dict[str, Any]:
    plan = resolve_plan(plan_id)
    return {
        "max": plan.max_endpoints,
        "current": current,
        "canAddMore": plan.can_add(current),
        "features": plan.features(),
    }
