"""
Repository layer for VibeBuilder.

All SQL lives here and ONLY here. No database access outside this module.
"""

from backend.repos.conversation_repo import ConversationRepo
from backend.repos.site_repo import SiteRepo
from backend.repos.user_repo import UserRepo

__all__ = [
    "UserRepo",
    "SiteRepo",
    "ConversationRepo",
]
