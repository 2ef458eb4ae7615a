from app.db.models.analytics_events import AnalyticsEvent
from app.db.models.grants import Grant
from app.db.models.offers import Offer
from app.db.models.opt_ins import OptIn
from app.db.models.questions import Question
from app.db.models.staff import StaffMember
from app.db.models.survey_responses import SurveyResponse
from app.db.models.tenants import Tenant

__all__ = [
    "AnalyticsEvent",
    "Grant",
    "Offer",
    "OptIn",
    "Question",
    "StaffMember",
    "SurveyResponse",
    "Tenant",
]
