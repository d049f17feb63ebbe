"""
Database models - import all models here so Alembic can discover them.
"""
from dolo.models.submissions import ContactSubmission, QuizResult, PrivateBuildApplication
from dolo.models.customer import Customer, Project
from dolo.models.email_log import EmailLog
from dolo.models.admin_user import AdminUser

__all__ = [
    "ContactSubmission",
    "QuizResult",
    "PrivateBuildApplication",
    "Customer",
    "Project",
    "EmailLog",
    "AdminUser",
]
