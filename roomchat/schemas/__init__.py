"""
roomchat.schemas
~~~~~~~~~~~~~~~~
Pydantic schemas and models for the HTTP API and the Socket.IO events.
"""
from roomchat.schemas.api_response import ApiResponse
from roomchat.schemas.events import (
    ChatMessage,
    JoinRoomPayload,
    MessagePayload,
    Occupant,
    UserNotice,
)

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
