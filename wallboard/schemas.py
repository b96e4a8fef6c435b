"""
Pydantic schemas for wall validation and rendering.

This module contains:
- The creation model validating a submitted wall
- Record and draft models handed to the templates
- Creation outcome types returned by the wall store
- Response models for the health endpoints
"""

from datetime import datetime
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

# Largest value a 32-bit INTEGER column accepts
MAX_LIKES = 2**31 - 1


# =============================================================================
# Pydantic Request Models
# =============================================================================

class WallCreate(BaseModel):
    """
    Pydantic model for validating a wall before it is stored.

    Validates:
    - created_by/title: non-blank, at most 255 characters
    - description: optional free text
    - likes: blank means 0, otherwise an integer from 0 to MAX_LIKES
    - created_at: stamped by the server, required
    """
    created_by: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Name of the wall's creator"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Human-readable label of the wall"
    )
    description: Optional[str] = Field(
        None,
        description="Long-form description"
    )
    likes: int = Field(
        default=0,
        ge=0,
        le=MAX_LIKES,
        description="Like counter"
    )
    created_at: datetime = Field(
        ...,
        description="Creation time, set server-side"
    )

    model_config = {"extra": "ignore"}

    @field_validator("created_by", "title")
    @classmethod
    def validate_not_blank(cls, v: str, info) -> str:
        """Reject values made only of whitespace."""
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v

    @field_validator("likes", mode="before")
    @classmethod
    def default_blank_likes(cls, v):
        """An empty likes field from the form means zero."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v


# =============================================================================
# Pydantic Render Models
# =============================================================================

class WallRecord(BaseModel):
    """
    A persisted wall, detached from the database session.

    `errors` is not stored; the router uses it to show messages next to
    the wall (e.g. a failed delete).
    """
    id: int
    created_by: str
    title: str
    description: Optional[str] = None
    likes: int = 0
    created_at: datetime
    errors: Dict[str, str] = Field(default_factory=dict, exclude=True)

    model_config = {"from_attributes": True}


class WallDraft(BaseModel):
    """An unsaved wall used to fill in the creation form."""
    id: Optional[int] = None
    created_by: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    likes: Optional[Union[int, str]] = None
    errors: Dict[str, str] = Field(default_factory=dict)

    model_config = {"extra": "ignore"}


# =============================================================================
# Creation Outcomes
# =============================================================================

class WallCreated(BaseModel):
    """The wall was stored."""
    wall: WallRecord


class WallRejected(BaseModel):
    """The wall was not stored; `draft` keeps what the user entered."""
    draft: WallDraft
    errors: Dict[str, str] = Field(default_factory=dict)


CreateResult = Union[WallCreated, WallRejected]


# =============================================================================
# Pydantic Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
