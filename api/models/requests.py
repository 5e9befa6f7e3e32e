# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict
from .entities import Location, MAX_PHOTOS, MAX_DESCRIPTION_LENGTH
from .enums import ReportCategory, ReportStatus


class CamelModel(BaseModel):
    """Request body accepting both camelCase (wire) and snake_case names."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra='ignore'
    )


class CreateReportRequest(CamelModel):
    """Request model for submitting a report."""

    title: str = Field(..., min_length=1, max_length=200, description="Report title")
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH, description="Report description")
    category: ReportCategory = Field(..., description="Report category")
    location: Location = Field(..., description="Report location")
    photos: List[str] = Field(default_factory=list, max_length=MAX_PHOTOS, description="Stored image references")
    is_anonymous: bool = Field(default=False, alias="isAnonymous", description="Hide reporter identity")

    @field_validator('title', 'description')
    @classmethod
    def validate_text(cls, v):
        """Reject blank text."""
        if not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()

    @field_validator('photos')
    @classmethod
    def validate_photos(cls, v):
        """Validate photo references."""
        for index, photo in enumerate(v):
            if not photo or not photo.strip():
                raise ValueError(f'Photo at index {index} must be a non-empty reference')
        return v


class UpdateReportStatusRequest(CamelModel):
    """Request model for a status transition."""

    new_status: ReportStatus = Field(..., alias="newStatus", description="Target status")
    rejection_reason: Optional[str] = Field(None, alias="rejectionReason", max_length=500)
    internal_assignee_id: Optional[str] = Field(
        None, alias="internalAssigneeId", description="Routed staff member, used on approval"
    )
    version: Optional[int] = Field(None, ge=1, description="Expected report version")


class AssignExternalRequest(CamelModel):
    """Request model for delegating a report to an external maintainer."""

    external_assignee_id: str = Field(..., alias="externalAssigneeId", min_length=1)
    version: Optional[int] = Field(None, ge=1, description="Expected report version")

    @field_validator('external_assignee_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        """Accept numeric identifiers."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class ReportFilters(CamelModel):
    """Query filters for report listings."""

    status: Optional[ReportStatus] = None
    category: Optional[ReportCategory] = None
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)
