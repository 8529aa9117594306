"""
Database models package
"""

from .event import Event
from .media import Media
from .message import Message
from .gift import Gift

__all__ = ["Event", "Media", "Message", "Gift"]
