from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    name: str
    max_requests: int
    window_ms: int


EMAIL_SUBMIT = RateLimitPolicy(name="email_submit", max_requests=5, window_ms=60_000)
SURVEY_SUBMIT = RateLimitPolicy(name="survey_submit", max_requests=3, window_ms=60_000)
EMAIL_OPT_IN = RateLimitPolicy(name="email_opt_in", max_requests=5, window_ms=60_000)
# Only counts issuances that produced a new code.
COUPON_ISSUE = RateLimitPolicy(name="coupon_issue", max_requests=3, window_ms=10_000)
COUPON_CHECK = RateLimitPolicy(name="coupon_check", max_requests=20, window_ms=60_000)
GENERAL = RateLimitPolicy(name="general", max_requests=20, window_ms=60_000)
