from __future__ import annotations

from typing import Any


class EdrLinkError(Exception):
    """Base error for edrlink."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ProviderConfigError(EdrLinkError):
    """Missing or invalid vendor configuration."""

    code = "PROVIDER_CONFIG_ERROR"


class VendorRequestError(EdrLinkError):
    """Vendor responded with a non-2xx HTTP status."""

    code = "VENDOR_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        # Keep the vendor status separate from the HTTP status we answer with.
        self.vendor_status = status_code
        self.body = body


class VendorRpcError(EdrLinkError):
    """JSON-RPC error envelope returned by the vendor."""

    code = "VENDOR_RPC_ERROR"

    def __init__(self, message: str, *, rpc_code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.rpc_code = rpc_code
        self.data = data


class DomainConflictError(EdrLinkError):
    """Request conflicts with current tenant, plan or device state."""

    status_code = 400
    code = "CONFLICT"


class PlanLimitReachedError(DomainConflictError):
    """Endpoint count already at the plan maximum."""

    code = "PLAN_LIMIT_REACHED"


class IsolationStateConflictError(DomainConflictError):
    """Isolate/restore requested for a device already in that state."""

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(message)
        self.code = code


class TenantNameConflictError(DomainConflictError):
    """No unique tenant name could be resolved."""

    status_code = 409
    code = "NAME_CONFLICT"


class TenantAlreadyRegisteredError(DomainConflictError):
    """User already owns a vendor tenant."""

    code = "ALREADY_REGISTERED"


class TenantNotProvisionedError(DomainConflictError):
    """User has no vendor tenant yet."""

    code = "TENANT_NOT_FOUND"


class InvalidActionError(DomainConflictError):
    """Isolation action outside isolate/restore."""

    code = "INVALID_ACTION"


class UnsupportedActionError(DomainConflictError):
    """Dispatcher action outside scan/isolate/restore."""

    code = "UNSUPPORTED_ACTION"


class InvalidActivationStepError(DomainConflictError):
    """Unknown activation wizard step."""

    code = "INVALID_STEP"


class NotFoundError(EdrLinkError):
    """Vendor-side resource missing; surfaced as 500 alongside transport errors."""

    code = "NOT_FOUND"


class BackupNotFoundError(NotFoundError):
    """No backup exists for the device being restored."""

    code = "BACKUP_NOT_FOUND"


class TenantNotFoundError(NotFoundError):
    """Vendor tenant lookup returned nothing."""

    code = "TENANT_NOT_FOUND"
