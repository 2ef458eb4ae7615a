from app.core.errors import ConflictError, NotFoundError, ValidationError


class TenantNotFoundError(NotFoundError):
    code = "E_TENANT_NOT_FOUND"
    default_message = "Tenant not found"


class TenantSettingsInvalidError(ValidationError):
    code = "E_TENANT_SETTINGS_INVALID"
    default_message = "Invalid tenant settings"


class TenantSubdomainTakenError(ConflictError):
    code = "E_TENANT_SUBDOMAIN_TAKEN"
    default_message = "Subdomain is already in use"


class StaffInvalidError(ValidationError):
    code = "E_STAFF_INVALID"
    default_message = "Invalid staff member"


class StaffAlreadyExistsError(ConflictError):
    code = "E_STAFF_EXISTS"
    default_message = "This email is already a staff member"
