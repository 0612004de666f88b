# src/nakama/models/__init__.py
"""SQLAlchemy models for the Nakama service."""

from .auth import EmailVerificationCode
from .chat import Chat, Message, Participant, ParticipantStatus
from .comment import Comment, CommentReaction
from .notification import Notification, NotificationActor, NotificationKind
from .post import Post, PostReaction, PostSubscription, PostTag
from .publication import Chapter, Publication, PublicationKind
from .timeline import TimelineItem
from .user import Follow, User

__all__ = [
    "EmailVerificationCode",
    "Chat", "Message", "Participant", "ParticipantStatus",
    "Comment", "CommentReaction",
    "Notification", "NotificationActor", "NotificationKind",
    "Post", "PostReaction", "PostSubscription", "PostTag",
    "Chapter", "Publication", "PublicationKind",
    "TimelineItem",
    "Follow", "User",
]
