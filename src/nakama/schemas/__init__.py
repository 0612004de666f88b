"""Pydantic schemas returned by the service and the HTTP API."""

from .chat import Chat, Message, Participant
from .comment import Comment
from .common import Page, PageInfo, SimplePage, SimplePageInfo
from .notification import Notification
from .post import Attachment, Post, Reaction, ToggleSubscriptionOutput
from .publication import Chapter, Publication
from .timeline import TimelineItem
from .user import AuthOutput, TokenOutput, ToggleFollowOutput, User, UserProfile, UserRelationship

__all__ = [
    "Attachment",
    "AuthOutput",
    "Chapter",
    "Chat",
    "Comment",
    "Message",
    "Notification",
    "Page",
    "PageInfo",
    "Participant",
    "Post",
    "Publication",
    "Reaction",
    "SimplePage",
    "SimplePageInfo",
    "TimelineItem",
    "ToggleFollowOutput",
    "ToggleSubscriptionOutput",
    "TokenOutput",
    "User",
    "UserProfile",
    "UserRelationship",
]
