# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Report aggregate service.

Owns report persistence and orchestrates the geofence, routing, workflow and
dispatch logic for every report operation. Reports are stored in the
``reports`` collection with camelCase field names.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from opentelemetry import trace

from domain import dispatch, workflow
from domain.routing import CategoryRouter
from middleware.error_handler import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from models.entities import ActorContext, Location, Report, StatusChange
from models.enums import ReportCategory, ReportEvent, ReportStatus
from models.requests import CreateReportRequest, ReportFilters
from services.boundary import BoundaryService
from services.mongodb import MongoDBService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

REPORTS_COLLECTION = "reports"


def _history_to_document(entry: StatusChange) -> Dict[str, Any]:
    return {
        "from": entry.from_status,
        "to": entry.to_status,
        "event": entry.event,
        "changedBy": entry.changed_by,
        "at": entry.at,
        "note": entry.note,
    }


def _history_from_document(document: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "from_status": document.get("from"),
        "to_status": document["to"],
        "event": document["event"],
        "changed_by": document["changedBy"],
        "at": document["at"],
        "note": document.get("note"),
    }


class ReportRepository:
    """Maps Report entities to and from MongoDB documents."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb = mongodb_service

    @staticmethod
    def to_document(report: Report) -> Dict[str, Any]:
        return {
            "_id": report.id,
            "title": report.title,
            "description": report.description,
            "category": report.category,
            "location": report.location.model_dump(),
            "photos": list(report.photos),
            "isAnonymous": report.is_anonymous,
            "reporterId": report.reporter_id,
            "status": report.status,
            "rejectionReason": report.rejection_reason,
            "internalAssigneeId": report.internal_assignee_id,
            "externalAssigneeId": report.external_assignee_id,
            "statusHistory": [_history_to_document(entry) for entry in report.status_history],
            "createdAt": report.created_at,
            "updatedAt": report.updated_at,
            "version": report.version,
            "schemaVersion": report.schema_version,
        }

    @staticmethod
    def from_document(document: Dict[str, Any]) -> Report:
        return Report(
            id=document["id"],
            title=document["title"],
            description=document["description"],
            category=document["category"],
            location=Location(**document["location"]),
            photos=document.get("photos") or [],
            is_anonymous=document.get("isAnonymous", False),
            reporter_id=str(document["reporterId"]),
            status=document["status"],
            rejection_reason=document.get("rejectionReason"),
            internal_assignee_id=document.get("internalAssigneeId"),
            external_assignee_id=document.get("externalAssigneeId"),
            status_history=[_history_from_document(entry) for entry in document.get("statusHistory") or []],
            created_at=document["createdAt"],
            updated_at=document["updatedAt"],
            version=document.get("version", 1),
            schema_version=document.get("schemaVersion", 1),
        )

    def insert(self, report: Report) -> Report:
        self.mongodb.create(REPORTS_COLLECTION, self.to_document(report))
        return report

    def get(self, report_id: str) -> Optional[Report]:
        document = self.mongodb.find_one(REPORTS_COLLECTION, report_id)
        return self.from_document(document) if document else None

    def list(self, query: Dict[str, Any], page: int, size: int) -> Tuple[List[Report], int]:
        result = self.mongodb.paginate(REPORTS_COLLECTION, page=page, page_size=size, filters=query)
        return [self.from_document(document) for document in result.items], result.total

    def save(self, previous: Report, updated: Report) -> Report:
        """
        Persist a transition computed from ``previous``.

        Raises:
            ConflictException: The stored version moved on since ``previous`` was read
            NotFoundException: The report no longer exists
        """
        new_entries = updated.status_history[len(previous.status_history):]
        document = self.mongodb.update_versioned(
            REPORTS_COLLECTION,
            previous.id,
            previous.version,
            {
                "status": updated.status,
                "rejectionReason": updated.rejection_reason,
                "internalAssigneeId": updated.internal_assignee_id,
                "externalAssigneeId": updated.external_assignee_id,
                "updatedAt": updated.updated_at,
            },
            push={"statusHistory": {"$each": [_history_to_document(entry) for entry in new_entries]}}
        )

        if document is None:
            if self.get(previous.id) is None:
                raise NotFoundException(f"Report {previous.id} not found")
            raise ConflictException(f"Report {previous.id} was modified by another request")

        return self.from_document(document)


def report_to_resource(report: Report, actor: ActorContext) -> Dict[str, Any]:
    """Public camelCase representation of a report for the given actor."""
    hide_reporter = report.is_anonymous and report.reporter_id != actor.user_id
    return {
        "id": report.id,
        "title": report.title,
        "description": report.description,
        "category": report.category,
        "location": report.location.model_dump(),
        "photos": list(report.photos),
        "isAnonymous": report.is_anonymous,
        "reporterId": None if hide_reporter else report.reporter_id,
        "status": report.status,
        "rejectionReason": report.rejection_reason,
        "internalAssigneeId": report.internal_assignee_id,
        "externalAssigneeId": report.external_assignee_id,
        "statusHistory": [
            {**_history_to_document(entry), "at": entry.at.isoformat()}
            for entry in report.status_history
        ],
        "createdAt": report.created_at.isoformat(),
        "updatedAt": report.updated_at.isoformat(),
        "version": report.version,
    }


class ReportService:
    """Report lifecycle operations."""

    def __init__(
        self,
        repository: ReportRepository,
        directory,
        router: CategoryRouter,
        boundary: BoundaryService
    ):
        self.repository = repository
        self.directory = directory
        self.router = router
        self.boundary = boundary

    # Creation

    def create_report(self, request: CreateReportRequest, actor: ActorContext) -> Report:
        """
        Submit a new report.

        Raises:
            AuthorizationException: Actor is not a citizen
            ValidationException: Location is outside the municipal boundary
        """
        with tracer.start_as_current_span("reports.create") as span:
            span.set_attributes({"user.id": actor.user_id, "report.category": request.category})

            if not actor.is_citizen():
                raise AuthorizationException("Only citizens can submit reports")

            location = request.location
            if not self.boundary.contains(location.latitude, location.longitude):
                raise ValidationException(
                    "Location is outside the municipal boundary",
                    [{"field": "location", "message": "Coordinates must be inside the municipality"}]
                )

            report = Report(
                title=request.title,
                description=request.description,
                category=request.category,
                location=location,
                photos=request.photos,
                is_anonymous=request.is_anonymous,
                reporter_id=actor.user_id,
                status=ReportStatus.PENDING_APPROVAL,
            )
            self.repository.insert(report)
            span.set_attribute("report.id", report.id)

            logger.info(
                "Report created",
                extra={"report_id": report.id, "category": report.category, "reporter_id": actor.user_id}
            )
            return report

    # Queries

    def _load(self, report_id: str) -> Report:
        report = self.repository.get(report_id)
        if report is None:
            raise NotFoundException(f"Report {report_id} not found")
        return report

    def get_report(self, report_id: str, actor: ActorContext) -> Report:
        """
        Fetch one report.

        Pending reports are visible only to moderators and their reporter.
        """
        with tracer.start_as_current_span("reports.get") as span:
            span.set_attribute("report.id", report_id)
            report = self._load(report_id)

            if (report.status == ReportStatus.PENDING_APPROVAL.value
                    and not actor.is_moderator()
                    and report.reporter_id != actor.user_id):
                raise AuthorizationException("Reports awaiting approval are visible to moderators only")

            return report

    @staticmethod
    def _filter_query(filters: ReportFilters) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if filters.status:
            query["status"] = filters.status
        if filters.category:
            query["category"] = filters.category
        return query

    def list_reports(self, actor: ActorContext, filters: ReportFilters) -> Tuple[List[Report], int]:
        """
        List reports visible to the actor.

        Raises:
            AuthorizationException: A non-moderator filtered on Pending Approval
        """
        with tracer.start_as_current_span("reports.list"):
            query = self._filter_query(filters)

            if not actor.is_moderator():
                if filters.status == ReportStatus.PENDING_APPROVAL.value:
                    raise AuthorizationException("Reports awaiting approval are visible to moderators only")
                if "status" not in query:
                    query["status"] = {"$ne": ReportStatus.PENDING_APPROVAL.value}

            return self.repository.list(query, filters.page, filters.size)

    def list_my_reports(self, actor: ActorContext, filters: ReportFilters) -> Tuple[List[Report], int]:
        with tracer.start_as_current_span("reports.list_mine"):
            query = self._filter_query(filters)
            query["reporterId"] = actor.user_id
            return self.repository.list(query, filters.page, filters.size)

    def list_assigned_to_me(self, actor: ActorContext, filters: ReportFilters) -> Tuple[List[Report], int]:
        """Reports where the actor is internal or external assignee, scoped to the role's category."""
        with tracer.start_as_current_span("reports.list_assigned"):
            query = self._filter_query(filters)
            query["$or"] = [
                {"internalAssigneeId": actor.user_id},
                {"externalAssigneeId": actor.user_id},
            ]

            if "category" not in query:
                role_category = self.router.category_for_role(actor.role)
                if role_category:
                    query["category"] = role_category

            return self.repository.list(query, filters.page, filters.size)

    def list_assigned_to_external(
        self,
        maintainer_id: str,
        actor: ActorContext,
        filters: ReportFilters
    ) -> Tuple[List[Report], int]:
        """
        Reports delegated to one external maintainer.

        Visible to the maintainer themselves, moderators and municipal staff
        roles known to the router.
        """
        with tracer.start_as_current_span("reports.list_external") as span:
            span.set_attribute("maintainer.id", maintainer_id)

            allowed = (
                actor.user_id == maintainer_id
                or actor.is_moderator()
                or self.router.is_staff_role(actor.role)
            )
            if not allowed:
                raise AuthorizationException("Not allowed to view reports of this external maintainer")

            query = self._filter_query(filters)
            query["externalAssigneeId"] = maintainer_id
            return self.repository.list(query, filters.page, filters.size)

    def list_categories(self) -> List[str]:
        return [category.value for category in ReportCategory]

    def available_events(self, report: Report, actor: ActorContext) -> List[str]:
        return [event.value for event in workflow.available_events(report, actor)]

    # Mutations

    @staticmethod
    def _check_version(report: Report, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != report.version:
            raise ConflictException(
                f"Report {report.id} is at version {report.version}, not {expected_version}"
            )

    def update_status(
        self,
        report_id: str,
        new_status: str,
        actor: ActorContext,
        rejection_reason: Optional[str] = None,
        internal_assignee_id: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Report:
        """
        Move a report to a new status.

        Raises:
            NotFoundException: Unknown report
            ConflictException: Stale version
            ValidationException: Missing reason or invalid routed assignee
            InvalidTransitionException: No edge to the requested status
            AuthorizationException: Actor may not perform the transition
        """
        with tracer.start_as_current_span("reports.update_status") as span:
            span.set_attributes({
                "report.id": report_id,
                "report.new_status": new_status,
                "user.id": actor.user_id
            })

            report = self._load(report_id)
            self._check_version(report, expected_version)

            event = workflow.event_for_status(report.status, new_status)
            span.set_attribute("report.event", event.value)

            if event == ReportEvent.REJECT:
                workflow.validate_rejection_reason(rejection_reason)
            workflow.check_event(report, event, actor)

            assignee_id = None
            if event == ReportEvent.APPROVE:
                assignment = dispatch.route_internal_assignment(
                    report, actor, self.router, self.directory, internal_assignee_id
                )
                assignee_id = assignment.assignee_id

            updated = workflow.apply_transition(
                report,
                event,
                actor,
                rejection_reason=rejection_reason,
                internal_assignee_id=assignee_id
            )
            saved = self.repository.save(report, updated)

            logger.info(
                "Report status changed",
                extra={
                    "report_id": report_id,
                    "from_status": report.status,
                    "to_status": saved.status,
                    "event": event.value,
                    "actor_id": actor.user_id
                }
            )
            return saved

    def assign_external(
        self,
        report_id: str,
        external_assignee_id: str,
        actor: ActorContext,
        expected_version: Optional[int] = None
    ) -> Report:
        """
        Delegate a report to an external maintainer.

        Raises:
            NotFoundException: Unknown report
            ConflictException: Stale version
            ValidationException: Unknown maintainer or company category mismatch
            InvalidTransitionException: Report is pending or terminal
            AuthorizationException: Actor is not the internal assignee
        """
        with tracer.start_as_current_span("reports.assign_external") as span:
            span.set_attributes({
                "report.id": report_id,
                "maintainer.id": str(external_assignee_id),
                "user.id": actor.user_id
            })

            report = self._load(report_id)
            self._check_version(report, expected_version)

            if not external_assignee_id:
                raise ValidationException(
                    "An external maintainer is required",
                    [{"field": "externalAssigneeId", "message": "Field is required"}]
                )
            workflow.check_external_assignment(report, actor)

            assignment = dispatch.validate_external_assignee(report, external_assignee_id, self.directory)
            updated = workflow.apply_external_assignment(report, assignment.maintainer.id, actor)
            saved = self.repository.save(report, updated)

            logger.info(
                "Report delegated to external maintainer",
                extra={
                    "report_id": report_id,
                    "maintainer_id": assignment.maintainer.id,
                    "company": assignment.company.name,
                    "actor_id": actor.user_id
                }
            )
            return saved
