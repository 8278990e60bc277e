"""
Request and response models for the ShareLink API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class LinkDraft(BaseModel):
    """Everything an upload supplies to create a link.

    Required-field checks happen in the lifecycle manager so that missing
    input surfaces as VALIDATION_ERROR rather than a schema error.
    """

    owner_id: Optional[str] = None
    owner_email: Optional[str] = None
    title: Optional[str] = None
    visibility: Optional[str] = None
    password: Optional[str] = None
    expiration: Optional[str] = None

    filename: Optional[str] = None
    content_type: Optional[str] = None
    content: bytes = b""


class LinkPatch(BaseModel):
    """Metadata patch for an existing link.

    Only these fields are patchable; anything else in the body is dropped.
    Only fields present in the request are applied.
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[constr(max_length=512)] = None
    visibility: Optional[str] = None
    password: Optional[str] = None
    expiration: Optional[str] = Field(
        None, description="ISO-8601 timestamp; null or unparseable clears it"
    )


class UserCreate(BaseModel):
    """Body of POST /users."""

    email: constr(min_length=3, max_length=320)
    name: Optional[constr(max_length=256)] = None
    photo: Optional[constr(max_length=2000)] = None


class LinkCreatedResponse(BaseModel):
    message: str = "Link created successfully"
    id: str
    fileUrl: str


class AnalyticsResponse(BaseModel):
    accessCount: int
