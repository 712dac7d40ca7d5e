from .school import School
from .survey import SurveyResponse
from .user import User

__all__ = ["School", "SurveyResponse", "User"]
