# Database models package
from careerpilot.models.user import User
from careerpilot.models.interview import Interview
from careerpilot.models.feedback import Feedback
from careerpilot.models.challenge import TechnicalChallenge, ChallengeSubmission
from careerpilot.models.filter_options import FilterOptions
from careerpilot.models.user_feedback import UserFeedback

__all__ = [
    "User",
    "Interview",
    "Feedback",
    "TechnicalChallenge",
    "ChallengeSubmission",
    "FilterOptions",
    "UserFeedback",
]
