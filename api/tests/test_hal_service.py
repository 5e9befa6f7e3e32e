# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting.
"""

import pytest

from services.hal import (
    AffordanceLinkBuilder,
    HalLinkBuilder,
    PaginationLinkBuilder,
    create_hal_formatter,
)

BASE_URL = "http://api.example.com"


class TestHalLinkBuilder:
    """Test HAL link construction."""

    def test_build_link(self):
        builder = HalLinkBuilder(BASE_URL + "/")
        link = builder.build_link("/api/reports/r1", method="GET", title="Report")

        assert link.href == "http://api.example.com/api/reports/r1"
        assert link.method == "GET"
        assert link.title == "Report"

    def test_build_action_link(self):
        link = HalLinkBuilder(BASE_URL).build_action_link("/api/reports/r1", "status", method="PUT")

        assert link.href == "http://api.example.com/api/reports/r1/status"
        assert link.method == "PUT"
        assert link.type == "application/json"
        assert link.title == "Status"


class TestPaginationLinkBuilder:
    """Test pagination links."""

    def test_first_page(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links("/api/reports", 1, 3, 20)

        assert set(links) == {"self", "next", "last"}
        assert links["next"].href == "http://api.example.com/api/reports?page=2&size=20"
        assert links["last"].href == "http://api.example.com/api/reports?page=3&size=20"

    def test_middle_page_keeps_filters(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links(
            "/api/reports", 2, 3, 10, {"status": "Assigned", "category": None}
        )

        assert set(links) == {"self", "first", "prev", "next", "last"}
        assert links["prev"].href == "http://api.example.com/api/reports?status=Assigned&page=1&size=10"

    def test_single_page(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links("/api/reports", 1, 1, 20)
        assert set(links) == {"self"}


class TestAffordanceLinkBuilder:
    """Test report affordances."""

    def test_links_follow_events(self):
        """Test one link per available event."""
        links = AffordanceLinkBuilder(BASE_URL).build_report_affordances("r1", ["start", "resolve", "assign-external"])

        assert links["self"].href == "http://api.example.com/api/reports/r1"
        assert links["collection"].href == "http://api.example.com/api/reports"
        assert links["start"].href == "http://api.example.com/api/reports/r1/status"
        assert links["start"].method == "PUT"
        assert links["assign-external"].href == "http://api.example.com/api/reports/r1/assign-external"
        assert links["assign-external"].method == "PATCH"
        assert "approve" not in links

    def test_no_events(self):
        links = AffordanceLinkBuilder(BASE_URL).build_report_affordances("r1", [])
        assert set(links) == {"self", "collection"}

    def test_unknown_event_ignored(self):
        links = AffordanceLinkBuilder(BASE_URL).build_report_affordances("r1", ["explode"])
        assert "explode" not in links


class TestHalFormatter:
    """Test the high-level formatter."""

    @pytest.fixture
    def formatter(self):
        return create_hal_formatter(BASE_URL)

    def test_format_report(self, formatter):
        response = formatter.format_report({"id": "r1", "title": "Lamp"}, ["approve", "reject"])

        assert response["title"] == "Lamp"
        assert set(response["_links"]) == {"self", "collection", "approve", "reject"}
        assert response["_links"]["approve"]["method"] == "PUT"

    def test_format_report_collection(self, formatter):
        items = [formatter.format_report({"id": f"r{i}"}) for i in range(2)]
        response = formatter.format_report_collection(items, total=45, page=1, page_size=20)

        assert response["total"] == 45
        assert response["totalPages"] == 3
        assert response["size"] == 20
        assert len(response["_embedded"]["items"]) == 2
        assert "next" in response["_links"]

    def test_format_empty_collection(self, formatter):
        response = formatter.format_report_collection([], total=0, page=1, page_size=20)

        assert response["totalPages"] == 0
        assert set(response["_links"]) == {"self"}

    def test_format_categories(self, formatter):
        response = formatter.format_categories(["Waste", "Other"])

        assert response["categories"] == ["Waste", "Other"]
        assert response["_links"]["self"]["href"] == "http://api.example.com/api/reports/categories"

    def test_validation_error(self, formatter):
        """Test RFC 7807 validation problem."""
        errors = [{"field": "location", "message": "Outside"}]
        response = formatter.format_validation_error("Invalid", "/api/reports", errors)

        assert response["type"] == "http://api.example.com/problems/validation-error"
        assert response["status"] == 400
        assert response["instance"] == "/api/reports"
        assert response["errors"] == errors
        assert "schema" in response["_links"]

    def test_invalid_transition_error(self, formatter):
        response = formatter.format_invalid_transition_error(
            "Cannot start", "/api/reports/r1/status", current_status="Pending Approval", event="start"
        )

        assert response["status"] == 409
        assert response["currentStatus"] == "Pending Approval"
        assert response["event"] == "start"
        assert response["_links"]["report"]["href"] == "http://api.example.com/api/reports/r1"

    @pytest.mark.parametrize("method,status,error_type", [
        ("format_authentication_error", 401, "authentication-required"),
        ("format_authorization_error", 403, "insufficient-permissions"),
        ("format_not_found_error", 404, "resource-not-found"),
        ("format_conflict_error", 409, "resource-conflict"),
        ("format_server_error", 500, "internal-server-error"),
    ])
    def test_error_formats(self, formatter, method, status, error_type):
        response = getattr(formatter, method)("Detail", "/api/reports/r1")

        assert response["status"] == status
        assert response["type"].endswith(f"/problems/{error_type}")
        assert response["detail"] == "Detail"
        assert "help" in response["_links"]
