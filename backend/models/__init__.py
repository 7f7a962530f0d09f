"""
Pydantic models for VibeBuilder.

All data shapes defined here. No imports from db, repos, or routes.
"""

from backend.models.conversation import Conversation, Message, MessageResponse
from backend.models.session import (
    CommitTitleRequest,
    EditModeRequest,
    OpenSessionRequest,
    SelectionResponse,
    SendInstructionRequest,
    SessionResponse,
    TurnResponse,
)
from backend.models.site import (
    ConnectDomainRequest,
    ConnectDomainResponse,
    PublishStatusRequest,
    SaveResult,
    Site,
    SiteResponse,
    SiteVersion,
    VersionResponse,
    VersionSummary,
)
from backend.models.user import LogoutResponse, User, UserPublic

__all__ = [
    # User models
    "User",
    "UserPublic",
    "LogoutResponse",
    # Site models
    "Site",
    "SiteVersion",
    "SaveResult",
    "SiteResponse",
    "VersionSummary",
    "VersionResponse",
    "PublishStatusRequest",
    "ConnectDomainRequest",
    "ConnectDomainResponse",
    # Conversation models
    "Conversation",
    "Message",
    "MessageResponse",
    # Editing session models
    "OpenSessionRequest",
    "SendInstructionRequest",
    "CommitTitleRequest",
    "EditModeRequest",
    "SessionResponse",
    "TurnResponse",
    "SelectionResponse",
]
