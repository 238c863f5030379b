"""
API module for the campaign wizard
"""

from .routes import router
from .session_manager import SessionManager, get_session_manager

__all__ = ["router", "SessionManager", "get_session_manager"]
