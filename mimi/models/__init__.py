"""SQLAlchemy ORM models package."""

from mimi.database import Base
from mimi.models.user import User
from mimi.models.eula import EulaConsent, EulaVersion
from mimi.models.chat_log import ChatLog
from mimi.models.meal_log import MealLog
from mimi.models.error_log import ErrorLog

__all__ = ["Base", "User", "EulaVersion", "EulaConsent", "ChatLog", "MealLog", "ErrorLog"]
