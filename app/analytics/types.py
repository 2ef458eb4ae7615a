from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class EventType(str, Enum):
    PAGE_VISIT = "page_visit"
    CODE_COPY = "code_copy"
    COUPON_DOWNLOAD = "coupon_download"
    WALLET_ADD = "wallet_add"
    SURVEY_COMPLETION = "survey_completion"


# Survey completions are recorded by the survey flow itself, never reported by clients.
CLIENT_EVENT_TYPES = frozenset(
    {
        EventType.PAGE_VISIT.value,
        EventType.CODE_COPY.value,
        EventType.COUPON_DOWNLOAD.value,
        EventType.WALLET_ADD.value,
    }
)
ACTION_EVENT_TYPES = frozenset(
    {
        EventType.CODE_COPY.value,
        EventType.COUPON_DOWNLOAD.value,
        EventType.WALLET_ADD.value,
    }
)


@dataclass(frozen=True, slots=True)
class TrackedEvent:
    id: UUID
    event_type: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class AnalyticsSummary:
    page_visits: int
    survey_completions: int
    code_copies: int
    coupon_downloads: int
    wallet_adds: int
    unique_action_takers: int


@dataclass(slots=True)
class TimeSeriesPoint:
    day: date
    page_visits: int = 0
    survey_completions: int = 0
    code_copies: int = 0
    coupon_downloads: int = 0
    wallet_adds: int = 0


@dataclass(frozen=True, slots=True)
class SentimentDistribution:
    happy: int
    neutral: int
    concerned: int

    @property
    def total(self) -> int:
        return self.happy + self.neutral + self.concerned


@dataclass(frozen=True, slots=True)
class TopOffer:
    title: str
    grants: int


@dataclass(frozen=True, slots=True)
class EngagementFunnel:
    page_visits: int
    survey_completions: int
    code_copies: int
    downloads_and_wallet_adds: int


@dataclass(frozen=True, slots=True)
class DashboardMetrics:
    total_responses: int
    unique_sessions: int
    happiness_score: float
    page_visits: int
    conversion_rate: float
    engagement: int
    top_offer: TopOffer | None
    sentiment: SentimentDistribution
    funnel: EngagementFunnel
