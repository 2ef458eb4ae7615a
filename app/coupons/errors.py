from app.core.errors import ConflictError, NotFoundError, ValidationError


class OfferNotFoundError(NotFoundError):
    code = "E_OFFER_NOT_FOUND"
    default_message = "Coupon not found"


class OfferUnavailableError(ValidationError):
    code = "E_OFFER_UNAVAILABLE"
    default_message = "This coupon is no longer available"


class OfferInvalidError(ValidationError):
    code = "E_OFFER_INVALID"
    default_message = "Invalid coupon"


class RecipientInvalidError(ValidationError):
    code = "E_RECIPIENT_INVALID"
    default_message = "Invalid email address"


class GrantNotFoundError(NotFoundError):
    code = "E_GRANT_NOT_FOUND"
    default_message = "Coupon code not found"


class GrantExpiredError(ValidationError):
    code = "E_GRANT_EXPIRED"
    default_message = "This coupon has expired"


class GrantRevokedError(ValidationError):
    code = "E_GRANT_REVOKED"
    default_message = "This coupon has been revoked"


class GrantExhaustedError(ValidationError):
    code = "E_GRANT_EXHAUSTED"
    default_message = "Coupon has reached maximum redemptions"


class GrantUpdateInvalidError(ValidationError):
    code = "E_GRANT_UPDATE_INVALID"
    default_message = "Invalid coupon update"


class GrantCodeExhaustedError(ConflictError):
    code = "E_GRANT_CODE_EXHAUSTED"
    default_message = "Could not generate a unique coupon code, please retry"
