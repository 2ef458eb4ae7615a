from app.core.errors import ValidationError


class AnalyticsEventInvalidError(ValidationError):
    code = "E_ANALYTICS_EVENT_INVALID"
    default_message = "Invalid analytics event"


class AnalyticsRangeInvalidError(ValidationError):
    code = "E_ANALYTICS_RANGE_INVALID"
    default_message = "Invalid analytics range"
