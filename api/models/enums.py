# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the civic report lifecycle engine.
"""

from enum import Enum


class ReportStatus(str, Enum):
    """Report workflow status enumeration."""
    PENDING_APPROVAL = "Pending Approval"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    SUSPENDED = "Suspended"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"


class ReportCategory(str, Enum):
    """Report categories seeded by the municipality."""
    WATER_SUPPLY = "Water Supply - Drinking Water"
    ARCHITECTURAL_BARRIERS = "Architectural Barriers"
    SEWER_SYSTEM = "Sewer System"
    PUBLIC_LIGHTING = "Public Lighting"
    WASTE = "Waste"
    ROAD_SIGNS = "Road Signs and Traffic Lights"
    ROADS = "Roads and Urban Furnishings"
    GREEN_AREAS = "Public Green Areas and Playgrounds"
    OTHER = "Other"


class ReportEvent(str, Enum):
    """Events accepted by the report state machine."""
    APPROVE = "approve"
    REJECT = "reject"
    START = "start"
    SUSPEND = "suspend"
    RESUME = "resume"
    RESOLVE = "resolve"
    ASSIGN_EXTERNAL = "assign-external"


class SystemRole(str, Enum):
    """Roles with hardcoded behaviour. Technical staff roles are loaded from configuration."""
    CITIZEN = "Citizen"
    ADMINISTRATOR = "Administrator"
    PUBLIC_RELATIONS_OFFICER = "Municipal Public Relations Officer"
    EXTERNAL_MAINTAINER = "External Maintainer"
    DEPARTMENT_DIRECTOR = "Department Director"


TERMINAL_STATUSES = frozenset({ReportStatus.RESOLVED, ReportStatus.REJECTED})

ACTIVE_STATUSES = frozenset({
    ReportStatus.ASSIGNED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.SUSPENDED,
})

MODERATOR_ROLES = frozenset({
    SystemRole.ADMINISTRATOR.value,
    SystemRole.PUBLIC_RELATIONS_OFFICER.value,
})
