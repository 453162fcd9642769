"""Response bodies for the HTTP API."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ParticipantOut(BaseModel):
    id: str = Field(..., description="Connection id of the participant")
    name: str
    joinedAt: int


class MessageOut(BaseModel):
    id: str
    senderId: str
    senderName: str
    content: str
    timestamp: int = Field(..., description="Epoch milliseconds")


class CreateMeetingResponse(BaseModel):
    success: bool = True
    meetingCode: str


class MeetingInfoResponse(BaseModel):
    success: bool = True
    exists: bool
    meetingCode: Optional[str] = None
    participants: Optional[List[ParticipantOut]] = None
    createdAt: Optional[int] = None
    lastActivity: Optional[int] = None


class MessagesResponse(BaseModel):
    success: bool = True
    messages: List[MessageOut]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    status: str
    connections: int
