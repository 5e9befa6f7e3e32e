# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Iterable, Optional
from urllib.parse import urljoin, urlencode
import math

from models.responses import HalLink

REPORTS_PATH = "/api/reports"

# Link relation, HTTP method, endpoint suffix and title per workflow event.
REPORT_ACTIONS = {
    "approve": ("PUT", "status", "Approve report"),
    "reject": ("PUT", "status", "Reject report"),
    "start": ("PUT", "status", "Start work"),
    "suspend": ("PUT", "status", "Suspend work"),
    "resume": ("PUT", "status", "Resume work"),
    "resolve": ("PUT", "status", "Resolve report"),
    "assign-external": ("PATCH", "assign-external", "Assign external maintainer"),
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        action_path = f"{resource_path}/{action}"
        return self.build_link(
            action_path,
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int, size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'size': size})
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build pagination links for a collection."""
        links = {}
        params = {key: value for key, value in (query_params or {}).items() if value is not None}

        links['self'] = self._page_link(base_path, params, current_page, page_size, "Current page")

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on permissions and state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_report_affordances(self, report_id: str, events: Iterable[str]) -> Dict[str, HalLink]:
        """
        Build links for a report.

        Args:
            report_id: Report identifier
            events: Workflow events the current actor may fire

        Returns:
            Mapping of link relation to HalLink
        """
        links = {}
        base_path = f"{REPORTS_PATH}/{report_id}"

        # Self link (always present)
        links['self'] = self.link_builder.build_self_link(base_path)

        # Collection link (always present)
        links['collection'] = self.link_builder.build_collection_link(REPORTS_PATH)

        for event in events:
            action = REPORT_ACTIONS.get(event)
            if action is None:
                continue
            method, suffix, title = action
            links[event] = self.link_builder.build_action_link(base_path, suffix, method=method, title=title)

        return links


class HalResponseBuilder:
    """Main HAL response builder with comprehensive formatting capabilities."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach links to a resource representation."""
        response = dict(data)
        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = math.ceil(total / page_size) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'size': page_size,
            'totalPages': total_pages,
            '_links': {rel: link.model_dump(exclude_none=True) for rel, link in pagination_links.items()},
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': self.link_builder.build_link(f"/problems/{error_type}").href,
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type == "invalid-transition":
            links['report'] = self.link_builder.build_link(instance.rsplit('/', 1)[0], title="Current report")

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_report(self, report: Dict[str, Any], events: Iterable[str] = ()) -> Dict[str, Any]:
        """Format a report with self, collection and action links."""
        links = self.builder.affordance_builder.build_report_affordances(report['id'], events)
        return self.builder.build_resource_response(report, links)

    def format_report_collection(
        self,
        reports: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str = REPORTS_PATH,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Format a page of reports.

        Items must already carry their own ``_links``.
        """
        return self.builder.build_collection_response(
            reports,
            total,
            page,
            page_size,
            collection_path,
            filters
        )

    def format_categories(self, categories: List[str]) -> Dict[str, Any]:
        links = {
            'self': self.builder.link_builder.build_self_link(f"{REPORTS_PATH}/categories"),
            'reports': self.builder.link_builder.build_link(REPORTS_PATH, title="Reports"),
        }
        return self.builder.build_resource_response({'categories': categories}, links)

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format an authentication error response."""
        return self.builder.build_error_response(
            "authentication-required",
            "Authentication Required",
            401,
            detail,
            instance
        )

    def format_authorization_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format an authorization error response."""
        return self.builder.build_error_response(
            "insufficient-permissions",
            "Insufficient Permissions",
            403,
            detail,
            instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a not found error response."""
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_invalid_transition_error(
        self,
        detail: str,
        instance: str,
        current_status: Optional[str] = None,
        event: Optional[str] = None
    ) -> Dict[str, Any]:
        """Format a rejected state machine event."""
        response = self.builder.build_error_response(
            "invalid-transition",
            "Invalid Status Transition",
            409,
            detail,
            instance
        )
        if current_status:
            response['currentStatus'] = current_status
        if event:
            response['event'] = event
        return response

    def format_conflict_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a conflict error response."""
        return self.builder.build_error_response(
            "resource-conflict",
            "Resource Conflict",
            409,
            detail,
            instance
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
