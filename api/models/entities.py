# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the civic report lifecycle engine.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity
from .enums import (
    ReportStatus,
    ReportCategory,
    SystemRole,
    TERMINAL_STATUSES,
    MODERATOR_ROLES,
)

MAX_PHOTOS = 3
MAX_DESCRIPTION_LENGTH = 200

ASSIGNED_STATUSES = frozenset({
    ReportStatus.ASSIGNED.value,
    ReportStatus.IN_PROGRESS.value,
    ReportStatus.SUSPENDED.value,
    ReportStatus.RESOLVED.value,
})


class Location(BaseModel):
    """Geographic position of a report with a cached address."""

    latitude: float = Field(..., ge=-90, le=90, description="Latitude (WGS84)")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude (WGS84)")
    address: Optional[str] = Field(None, max_length=500, description="Cached human-readable address")


class StatusChange(BaseModel):
    """Entry of a report's status history."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    from_status: Optional[ReportStatus] = Field(None, alias="from")
    to_status: ReportStatus = Field(..., alias="to")
    event: str
    changed_by: str
    at: datetime = Field(default_factory=datetime.utcnow)
    note: Optional[str] = None


class Report(BaseEntity):
    """
    Civic issue report.

    Fields that only make sense for some statuses (rejection reason, assignees)
    are checked against the status on construction, so an instance is always
    a legal combination.
    """

    title: str = Field(..., min_length=1, max_length=200, description="Report title")
    description: str = Field(
        ..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH, description="Report description"
    )
    category: ReportCategory = Field(..., description="Report category")
    location: Location = Field(..., description="Report location")
    photos: List[str] = Field(default_factory=list, max_length=MAX_PHOTOS, description="Stored image references")
    is_anonymous: bool = Field(default=False, description="Hide reporter from staff views")
    reporter_id: str = Field(..., description="Reporting user ID")
    status: ReportStatus = Field(default=ReportStatus.PENDING_APPROVAL, description="Workflow status")
    rejection_reason: Optional[str] = Field(None, description="Reason for rejection")
    internal_assignee_id: Optional[str] = Field(None, description="Responsible staff member")
    external_assignee_id: Optional[str] = Field(None, description="Delegated external maintainer")
    status_history: List[StatusChange] = Field(default_factory=list, description="Transition log")

    @field_validator('title', 'description')
    @classmethod
    def validate_text(cls, v):
        """Reject blank text."""
        if not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()

    @model_validator(mode='after')
    def validate_status_fields(self):
        """Validate status-dependent fields."""
        if self.status == ReportStatus.REJECTED.value:
            if not self.rejection_reason:
                raise ValueError('rejection_reason is required when status is Rejected')
        elif self.rejection_reason is not None:
            raise ValueError('rejection_reason is only allowed when status is Rejected')

        if self.status in ASSIGNED_STATUSES:
            if not self.internal_assignee_id:
                raise ValueError(f'internal_assignee_id is required when status is {self.status}')
        elif self.internal_assignee_id is not None:
            raise ValueError(f'internal_assignee_id is not allowed when status is {self.status}')

        if self.external_assignee_id is not None and not self.internal_assignee_id:
            raise ValueError('external_assignee_id requires an internal assignee')

        return self

    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return ReportStatus(self.status) in TERMINAL_STATUSES

    def is_assignee(self, user_id: str) -> bool:
        """Check if user is the internal or external assignee."""
        return user_id is not None and user_id in (self.internal_assignee_id, self.external_assignee_id)


class Department(BaseModel):
    """Organizational department, 1:1 with a report category."""

    id: Optional[str] = Field(None, description="Department ID")
    name: str = Field(..., min_length=1, description="Department name")
    category: Optional[ReportCategory] = Field(None, description="Category handled by the department")

    model_config = ConfigDict(use_enum_values=True)


class Role(BaseModel):
    """Role definition."""

    id: str
    name: str


class DepartmentRoleMapping(BaseModel):
    """Join between departments and the roles existing in them."""

    id: str
    department_id: str
    role_id: str


class Company(BaseModel):
    """External maintenance company."""

    id: str
    name: str
    category: Optional[ReportCategory] = Field(None, description="Category serviced by the company")

    model_config = ConfigDict(use_enum_values=True)


class DirectoryUser(BaseModel):
    """User record as seen by the lifecycle engine (staff, maintainer or citizen)."""

    id: str
    username: Optional[str] = None
    role: str
    company_id: Optional[str] = Field(None, description="Company of an external maintainer")

    def is_external_maintainer(self) -> bool:
        return self.role == SystemRole.EXTERNAL_MAINTAINER.value


class ActorContext(BaseModel):
    """Authenticated actor for request processing."""

    user_id: str = Field(..., description="Authenticated user ID")
    role: str = Field(..., description="Role name of the actor")
    username: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="User email")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    def is_moderator(self) -> bool:
        """Administrators and PR officers see and triage every report."""
        return self.has_role(*MODERATOR_ROLES)

    def is_citizen(self) -> bool:
        return self.role == SystemRole.CITIZEN.value
