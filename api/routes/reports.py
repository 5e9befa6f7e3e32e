# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Report endpoints: submission, listings and the status workflow.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel, Field
from models.entities import ActorContext, Report
from models.requests import (
    AssignExternalRequest,
    CreateReportRequest,
    ReportFilters,
    UpdateReportStatusRequest,
)
from middleware.auth import require_auth
from middleware.validation import parse_json_body, parse_query_params
from services.reports import report_to_resource

tracer = trace.get_tracer(__name__)


class ReportPath(BaseModel):
    report_id: str = Field(..., description="Report identifier")


class MaintainerPath(BaseModel):
    maintainer_id: str = Field(..., description="External maintainer user identifier")


reports_tag = Tag(name="Reports", description="Civic issue reports and their workflow")
reports_bp = APIBlueprint(
    'reports',
    __name__,
    url_prefix='/api/reports',
    abp_tags=[reports_tag]
)


def _present(report: Report, actor: ActorContext) -> dict:
    """HAL representation of a report with the actions available to the actor."""
    service = current_app.report_service
    return current_app.hal_formatter.format_report(
        report_to_resource(report, actor),
        service.available_events(report, actor)
    )


def _present_page(reports, total: int, filters: ReportFilters, actor: ActorContext) -> dict:
    return current_app.hal_formatter.format_report_collection(
        [_present(report, actor) for report in reports],
        total,
        filters.page,
        filters.size,
        collection_path=request.path,
        filters={"status": filters.status, "category": filters.category}
    )


@reports_bp.post('')
@require_auth
def create_report(actor: ActorContext):
    """
    Submit a new report.

    Only citizens can submit reports. The location must fall inside the
    municipal boundary; the report starts in Pending Approval.
    """
    with tracer.start_as_current_span(
        "reports.http.create",
        attributes={"user.id": actor.user_id, "user.role": actor.role}
    ) as span:
        create_request = parse_json_body(CreateReportRequest)
        report = current_app.report_service.create_report(create_request, actor)

        span.set_attribute("report.id", report.id)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_present(report, actor)), 201


@reports_bp.get('')
@require_auth
def list_reports(actor: ActorContext):
    """
    List reports.

    Reports awaiting approval are only listed for administrators and public
    relations officers.
    """
    with tracer.start_as_current_span("reports.http.list", attributes={"user.id": actor.user_id}):
        filters = parse_query_params(ReportFilters)
        reports, total = current_app.report_service.list_reports(actor, filters)
        return jsonify(_present_page(reports, total, filters, actor)), 200


@reports_bp.get('/me')
@require_auth
def list_my_reports(actor: ActorContext):
    """List reports submitted by the authenticated user."""
    with tracer.start_as_current_span("reports.http.list_mine", attributes={"user.id": actor.user_id}):
        filters = parse_query_params(ReportFilters)
        reports, total = current_app.report_service.list_my_reports(actor, filters)
        return jsonify(_present_page(reports, total, filters, actor)), 200


@reports_bp.get('/assigned/me')
@require_auth
def list_assigned_to_me(actor: ActorContext):
    """List reports the authenticated user works on, internally or externally."""
    with tracer.start_as_current_span("reports.http.list_assigned", attributes={"user.id": actor.user_id}):
        filters = parse_query_params(ReportFilters)
        reports, total = current_app.report_service.list_assigned_to_me(actor, filters)
        return jsonify(_present_page(reports, total, filters, actor)), 200


@reports_bp.get('/assigned/external/<string:maintainer_id>')
@require_auth
def list_assigned_to_external(actor: ActorContext, path: MaintainerPath):
    """List reports delegated to an external maintainer."""
    with tracer.start_as_current_span(
        "reports.http.list_external",
        attributes={"user.id": actor.user_id, "maintainer.id": path.maintainer_id}
    ):
        filters = parse_query_params(ReportFilters)
        reports, total = current_app.report_service.list_assigned_to_external(
            path.maintainer_id, actor, filters
        )
        return jsonify(_present_page(reports, total, filters, actor)), 200


@reports_bp.get('/categories')
def list_categories():
    """List the report categories."""
    categories = current_app.report_service.list_categories()
    return jsonify(current_app.hal_formatter.format_categories(categories)), 200


@reports_bp.get('/<string:report_id>')
@require_auth
def get_report(actor: ActorContext, path: ReportPath):
    """Get a single report."""
    with tracer.start_as_current_span(
        "reports.http.get",
        attributes={"user.id": actor.user_id, "report.id": path.report_id}
    ):
        report = current_app.report_service.get_report(path.report_id, actor)
        return jsonify(_present(report, actor)), 200


@reports_bp.put('/<string:report_id>/status')
@require_auth
def update_report_status(actor: ActorContext, path: ReportPath):
    """
    Change the status of a report.

    Approval and rejection are reserved to administrators and public relations
    officers; work transitions to the assignees. A rejection needs a reason.
    """
    with tracer.start_as_current_span(
        "reports.http.update_status",
        attributes={"user.id": actor.user_id, "report.id": path.report_id}
    ) as span:
        status_request = parse_json_body(UpdateReportStatusRequest)
        span.set_attribute("report.new_status", status_request.new_status)

        report = current_app.report_service.update_status(
            path.report_id,
            status_request.new_status,
            actor,
            rejection_reason=status_request.rejection_reason,
            internal_assignee_id=status_request.internal_assignee_id,
            expected_version=status_request.version
        )

        span.set_status(Status(StatusCode.OK))
        return jsonify(_present(report, actor)), 200


@reports_bp.patch('/<string:report_id>/assign-external')
@require_auth
def assign_external_maintainer(actor: ActorContext, path: ReportPath):
    """
    Delegate a report to an external maintainer.

    Only the internal assignee can delegate, and only to a maintainer whose
    company handles the report category.
    """
    with tracer.start_as_current_span(
        "reports.http.assign_external",
        attributes={"user.id": actor.user_id, "report.id": path.report_id}
    ) as span:
        assign_request = parse_json_body(AssignExternalRequest)

        report = current_app.report_service.assign_external(
            path.report_id,
            assign_request.external_assignee_id,
            actor,
            expected_version=assign_request.version
        )

        span.set_status(Status(StatusCode.OK))
        return jsonify(_present(report, actor)), 200
