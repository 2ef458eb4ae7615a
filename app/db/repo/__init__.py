from app.db.repo.analytics_events_repo import AnalyticsEventsRepo
from app.db.repo.grants_repo import GrantsRepo
from app.db.repo.offers_repo import OffersRepo
from app.db.repo.opt_ins_repo import OptInsRepo
from app.db.repo.questions_repo import QuestionsRepo
from app.db.repo.staff_repo import StaffRepo
from app.db.repo.survey_responses_repo import SurveyResponsesRepo
from app.db.repo.tenants_repo import TenantsRepo

__all__ = [
    "AnalyticsEventsRepo",
    "GrantsRepo",
    "OffersRepo",
    "OptInsRepo",
    "QuestionsRepo",
    "StaffRepo",
    "SurveyResponsesRepo",
    "TenantsRepo",
]
