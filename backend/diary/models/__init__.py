# backend/diary/models/__init__.py
from .participant import Participant
from .letter import Letter
from .location import DailyLocation
from .memory import Memory, Like, Comment
from .countdown import CountdownEvent
from .voice_message import VoiceMessage

__all__ = [
    "Participant",
    "Letter",
    "DailyLocation",
    "Memory",
    "Like",
    "Comment",
    "CountdownEvent",
    "VoiceMessage",
]
