"""
Read-only access to the user and post rows owned by other services.
"""
from __future__ import annotations

from campus_notify.crud.base import CRUDBase
from campus_notify.models.post import Post
from campus_notify.models.user import User


class CRUDUser(CRUDBase[User]):
    pass


class CRUDPost(CRUDBase[Post]):
    pass


crud_user = CRUDUser(User)
crud_post = CRUDPost(Post)
