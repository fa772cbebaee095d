from edrlink.services.security.actions import SUPPORTED_ACTIONS, dispatch_action
from edrlink.services.security.endpoints import (
    create_bitdefender_endpoint,
    create_endpoint,
    delete_endpoint,
    list_bitdefender_endpoints,
    list_endpoints,
)
from edrlink.services.security.isolation import (
    get_isolation_status,
    list_security_actions,
    set_isolation,
)
from edrlink.services.security.plans import SECURITY_PLAN_LIMITS, PlanLimits, limits_snapshot, resolve_plan
from edrlink.services.security.stats import get_acronis_stats, get_bitdefender_stats
from edrlink.services.security.tenants import (
    ActivationOutcome,
    check_tenant_status,
    create_tenant,
    register_tenant,
    try_activate,
)

__all__ = [
    "ActivationOutcome",
    "PlanLimits",
    "SECURITY_PLAN_LIMITS",
    "SUPPORTED_ACTIONS",
    "check_tenant_status",
    "create_bitdefender_endpoint",
    "create_endpoint",
    "create_tenant",
    "delete_endpoint",
    "dispatch_action",
    "get_acronis_stats",
    "get_bitdefender_stats",
    "get_isolation_status",
    "limits_snapshot",
    "list_bitdefender_endpoints",
    "list_endpoints",
    "list_security_actions",
    "register_tenant",
    "resolve_plan",
    "set_isolation",
    "try_activate",
]
