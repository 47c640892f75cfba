"""Pydantic models describing request and response payloads."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Wire payload handed to the generation backend."""

    user_id: str = Field(..., description="Identifier of the authenticated user")
    user_image_url: str = Field(..., description="Public URL of the uploaded selfie")


class GenerationAcknowledgement(BaseModel):
    """Optional fields the backend returns when it accepts a request."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: Optional[str] = None
    generation_id: Optional[str] = Field(default=None, alias="id")
    msg: Optional[str] = None


class SignInRequest(BaseModel):
    """Email/password credentials forwarded to the auth provider."""

    email: str
    password: str


class SessionResponse(BaseModel):
    """Currently authenticated identity, if any."""

    authenticated: bool
    user_id: Optional[str] = None
    email: Optional[str] = None


class SelectedFileResponse(BaseModel):
    """Describes the file pending upload."""

    name: str
    extension: str
    content_type: str
    size: int


class StatusResponse(BaseModel):
    """Snapshot of the pipeline status rendered by the UI."""

    status: str
    text: str
    reason: Optional[str] = None
    busy: bool = False


class UploadOutcomeResponse(BaseModel):
    """Terminal result of an upload attempt."""

    status: str
    message: str
    storage_path: Optional[str] = None
    public_url: Optional[str] = None
    object_stored: bool = False
    generation_id: Optional[str] = None
