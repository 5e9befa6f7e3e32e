# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the report lifecycle engine.
"""

# Base models
from .base import BaseEntity, generate_object_id

# Enumerations
from .enums import (
    ReportStatus,
    ReportCategory,
    ReportEvent,
    SystemRole,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
    MODERATOR_ROLES,
)

# Core entities
from .entities import (
    Location,
    StatusChange,
    Report,
    Department,
    Role,
    DepartmentRoleMapping,
    Company,
    DirectoryUser,
    ActorContext
)

# Request models
from .requests import (
    CreateReportRequest,
    UpdateReportStatusRequest,
    AssignExternalRequest,
    ReportFilters
)

# Response models
from .responses import HalLink

__all__ = [
    "BaseEntity",
    "generate_object_id",
    "ReportStatus",
    "ReportCategory",
    "ReportEvent",
    "SystemRole",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "MODERATOR_ROLES",
    "Location",
    "StatusChange",
    "Report",
    "Department",
    "Role",
    "DepartmentRoleMapping",
    "Company",
    "DirectoryUser",
    "ActorContext",
    "CreateReportRequest",
    "UpdateReportStatusRequest",
    "AssignExternalRequest",
    "ReportFilters",
    "HalLink",
]
