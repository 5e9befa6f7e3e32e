# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Assignment dispatch logic.

Chooses who works on a report: the internal staff member set on approval and
the external maintainer a staff member may delegate to. User and company
records come from a directory object exposing ``get_user`` and
``get_company``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from domain.routing import CategoryRouter, normalize_role_name
from models.entities import ActorContext, Company, DirectoryUser, Report
from middleware.error_handler import ValidationException

logger = logging.getLogger(__name__)


@dataclass
class InternalAssignment:
    """Outcome of internal routing for an approval."""
    assignee_id: str
    department_name: str


@dataclass
class ExternalAssignment:
    """Validated external maintainer and their company."""
    maintainer: DirectoryUser
    company: Company


def _field_error(field: str, message: str) -> ValidationException:
    return ValidationException(message, [{"field": field, "message": message}])


def route_internal_assignment(
    report: Report,
    actor: ActorContext,
    router: CategoryRouter,
    directory,
    internal_assignee_id: Optional[str] = None
) -> InternalAssignment:
    """
    Pick the internal assignee for a report being approved.

    A named staff member must exist and their role must serve the report's
    category. Without one, the approver takes the report.

    Raises:
        NotFoundException: No department handles the report category
        ValidationException: The named staff member is unknown or serves another category
    """
    department = router.department_for_category(report.category)

    if not internal_assignee_id:
        return InternalAssignment(assignee_id=actor.user_id, department_name=department.name)

    staff = directory.get_user(internal_assignee_id)
    if staff is None:
        raise _field_error("internalAssigneeId", f"User {internal_assignee_id} does not exist")

    if not router.serves_category(staff.role, report.category):
        expected = ", ".join(router.roles_for_category(report.category)) or "none"
        raise _field_error(
            "internalAssigneeId",
            f"Role '{staff.role}' does not handle category '{report.category}' (expected: {expected})"
        )

    department_roles = router.roles_for_department(department.id)
    if department_roles and normalize_role_name(staff.role) not in department_roles:
        raise _field_error(
            "internalAssigneeId",
            f"Role '{staff.role}' is not part of {department.name}"
        )

    logger.debug(
        "Report routed to staff member",
        extra={
            "report_id": report.id,
            "department": department.name,
            "assignee_id": staff.id
        }
    )
    return InternalAssignment(assignee_id=staff.id, department_name=department.name)


def validate_external_assignee(report: Report, external_assignee_id: str, directory) -> ExternalAssignment:
    """
    Check that a user can take a report as external maintainer.

    Raises:
        ValidationException: Unknown user, wrong role, no company, or a
            company working on a different category
    """
    maintainer = directory.get_user(external_assignee_id)
    if maintainer is None:
        raise _field_error("externalAssigneeId", f"User {external_assignee_id} does not exist")

    if not maintainer.is_external_maintainer():
        raise _field_error("externalAssigneeId", f"User {external_assignee_id} is not an external maintainer")

    company = directory.get_company(maintainer.company_id) if maintainer.company_id else None
    if company is None:
        raise _field_error("externalAssigneeId", f"User {external_assignee_id} does not belong to a company")

    if company.category != report.category:
        raise _field_error(
            "externalAssigneeId",
            f"Company '{company.name}' does not handle category '{report.category}'"
        )

    return ExternalAssignment(maintainer=maintainer, company=company)
