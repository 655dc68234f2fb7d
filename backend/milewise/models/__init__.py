from milewise.models.award_deal import AwardDeal
from milewise.models.saved_plan import SavedPlan
from milewise.models.session import OnboardingSession

__all__ = [
    "AwardDeal",
    "OnboardingSession",
    "SavedPlan",
]
