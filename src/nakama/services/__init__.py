# src/nakama/services/__init__.py
"""Business logic services for the Nakama application."""

from .auth import AuthMixin, VerifyMagicLink
from .base import ServiceBase
from .chats import ChatsMixin
from .comments import CommentsMixin
from .notifications import NotificationsMixin
from .posts import CreatePost, PostsMixin, UpdatePost
from .publications import CreateChapter, CreatePublication, PublicationsMixin, UpdatePublication
from .timeline import TimelineMixin


class Service(
    AuthMixin,
    PostsMixin,
    CommentsMixin,
    ChatsMixin,
    NotificationsMixin,
    TimelineMixin,
    PublicationsMixin,
):
    """Every operation of the social network, one method each.

    The authenticated principal is passed explicitly as ``user_id`` (or
    ``viewer_id`` for reads where logging in is optional).
    """


__all__ = [
    "CreateChapter",
    "CreatePost",
    "CreatePublication",
    "Service",
    "ServiceBase",
    "UpdatePost",
    "UpdatePublication",
    "VerifyMagicLink",
]
