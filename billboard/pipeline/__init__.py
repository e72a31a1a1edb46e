"""
Billboard Session Pipeline

Per-session orchestration for:
  capture → analysis → template selection → face swap + caption → billboard
  → image-to-video submission → polling → video
"""

from .orchestrator import BillboardSession
from .routes import api_router, session_router
from .models import SessionState, SessionData
from .state import transition

__all__ = [
    "BillboardSession",
    "api_router",
    "session_router",
    "SessionState",
    "SessionData",
    "transition",
]
