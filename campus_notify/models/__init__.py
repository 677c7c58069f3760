"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from campus_notify.models.user import User  # noqa: F401
from campus_notify.models.post import Post  # noqa: F401
from campus_notify.models.subscription import Subscription  # noqa: F401
from campus_notify.models.notification import Notification  # noqa: F401
