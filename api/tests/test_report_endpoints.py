# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for report API endpoints.
"""

import pytest

from models.enums import ReportStatus
from conftest import (
    ADMIN_ID,
    CITIZEN_ID,
    LIGHTING_MAINTAINER_ID,
    OTHER_CITIZEN_ID,
    PRO_ID,
    WASTE_MAINTAINER_ID,
    WASTE_STAFF_ID,
    build_report,
)

ADMIN = (ADMIN_ID, "Administrator")
PRO = (PRO_ID, "Municipal Public Relations Officer")
CITIZEN = (CITIZEN_ID, "Citizen")
OTHER_CITIZEN = (OTHER_CITIZEN_ID, "Citizen")
WASTE_STAFF = (WASTE_STAFF_ID, "Recycling Program Staff Member")
WASTE_MAINTAINER = (WASTE_MAINTAINER_ID, "External Maintainer")


@pytest.fixture
def headers(auth_headers):
    """Headers for one of the (user id, role) pairs above."""
    return lambda user: auth_headers(*user)


@pytest.fixture
def pending_report(report_repository):
    return report_repository.insert(build_report())


@pytest.fixture
def assigned_report(report_repository):
    return report_repository.insert(
        build_report(status=ReportStatus.ASSIGNED, internal_assignee_id=WASTE_STAFF_ID)
    )


class TestCreateReport:
    """Test POST /api/reports."""

    def test_create_report_success(self, client, headers, create_payload, report_repository):
        """Test a citizen submitting a report inside the city."""
        response = client.post('/api/reports', json=create_payload, headers=headers(CITIZEN))

        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == "Pending Approval"
        assert data['reporterId'] == CITIZEN_ID
        assert data['version'] == 1
        assert data['_links']['self']['href'] == f"http://testserver/api/reports/{data['id']}"
        # Citizens get no workflow actions on their own pending report
        assert set(data['_links']) == {'self', 'collection'}
        assert data['id'] in report_repository.documents

    def test_create_report_outside_boundary(self, client, headers, create_payload):
        create_payload['location'] = {"latitude": 45.46, "longitude": 9.19}
        response = client.post('/api/reports', json=create_payload, headers=headers(CITIZEN))

        assert response.status_code == 400
        data = response.get_json()
        assert data['type'] == "http://testserver/problems/validation-error"
        assert data['errors'][0]['field'] == "location"

    def test_create_report_at_null_island(self, client, headers, create_payload, report_repository):
        create_payload['location'] = {"latitude": 0, "longitude": 0}
        response = client.post('/api/reports', json=create_payload, headers=headers(CITIZEN))

        assert response.status_code == 400
        assert response.get_json()['errors'][0]['field'] == "location"
        assert report_repository.documents == {}

    def test_create_report_invalid_payload(self, client, headers, create_payload):
        create_payload['category'] = "Potholes"
        create_payload['photos'] = ["1", "2", "3", "4"]
        response = client.post('/api/reports', json=create_payload, headers=headers(CITIZEN))

        assert response.status_code == 400
        fields = {error['field'] for error in response.get_json()['errors']}
        assert {"category", "photos"} <= fields

    def test_create_report_not_json(self, client, headers):
        response = client.post('/api/reports', data="nope", headers={
            'Authorization': headers(CITIZEN)['Authorization'],
            'Content-Type': 'text/plain'
        })
        assert response.status_code == 400

    def test_create_report_unauthenticated(self, client, create_payload):
        response = client.post('/api/reports', json=create_payload)

        assert response.status_code == 401
        assert response.get_json()['type'] == "http://testserver/problems/authentication-required"

    def test_create_report_as_staff(self, client, headers, create_payload):
        response = client.post('/api/reports', json=create_payload, headers=headers(WASTE_STAFF))
        assert response.status_code == 403


class TestGetReport:
    """Test GET /api/reports/<id>."""

    def test_moderator_gets_actions(self, client, headers, pending_report):
        """Test approve and reject links for a moderator on a pending report."""
        response = client.get(f'/api/reports/{pending_report.id}', headers=headers(PRO))

        assert response.status_code == 200
        links = response.get_json()['_links']
        assert links['approve']['href'] == f"http://testserver/api/reports/{pending_report.id}/status"
        assert links['approve']['method'] == "PUT"
        assert 'reject' in links
        assert 'start' not in links

    def test_assignee_gets_work_actions(self, client, headers, assigned_report):
        links = client.get(f'/api/reports/{assigned_report.id}', headers=headers(WASTE_STAFF)).get_json()['_links']

        assert {'start', 'resolve', 'assign-external'} <= set(links)
        assert links['assign-external']['method'] == "PATCH"

    def test_pending_hidden_from_other_citizens(self, client, headers, pending_report):
        response = client.get(f'/api/reports/{pending_report.id}', headers=headers(OTHER_CITIZEN))
        assert response.status_code == 403

    def test_anonymous_reporter_hidden(self, client, headers, report_repository):
        report = report_repository.insert(build_report(
            is_anonymous=True, status=ReportStatus.ASSIGNED, internal_assignee_id=WASTE_STAFF_ID
        ))

        staff_view = client.get(f'/api/reports/{report.id}', headers=headers(WASTE_STAFF)).get_json()
        reporter_view = client.get(f'/api/reports/{report.id}', headers=headers(CITIZEN)).get_json()

        assert staff_view['reporterId'] is None
        assert reporter_view['reporterId'] == CITIZEN_ID

    def test_report_not_found(self, client, headers):
        response = client.get('/api/reports/missing', headers=headers(ADMIN))

        assert response.status_code == 404
        assert response.get_json()['type'] == "http://testserver/problems/resource-not-found"


class TestListReports:
    """Test the listing endpoints."""

    @pytest.fixture
    def reports(self, report_repository):
        return [
            report_repository.insert(build_report()),
            report_repository.insert(build_report(status=ReportStatus.ASSIGNED, internal_assignee_id=WASTE_STAFF_ID)),
            report_repository.insert(build_report(
                status=ReportStatus.IN_PROGRESS, internal_assignee_id=WASTE_STAFF_ID,
                external_assignee_id=WASTE_MAINTAINER_ID
            )),
        ]

    def test_list_as_moderator(self, client, headers, reports):
        """Test a paginated HAL collection."""
        response = client.get('/api/reports?size=2', headers=headers(ADMIN))

        assert response.status_code == 200
        data = response.get_json()
        assert data['total'] == 3
        assert data['totalPages'] == 2
        assert len(data['_embedded']['items']) == 2
        assert data['_links']['next']['href'] == "http://testserver/api/reports?page=2&size=2"

    def test_list_hides_pending_from_citizens(self, client, headers, reports):
        data = client.get('/api/reports', headers=headers(OTHER_CITIZEN)).get_json()

        assert data['total'] == 2
        assert all(item['status'] != "Pending Approval" for item in data['_embedded']['items'])

    def test_citizen_filtering_pending(self, client, headers, reports):
        response = client.get('/api/reports?status=Pending%20Approval', headers=headers(CITIZEN))
        assert response.status_code == 403

    def test_invalid_filter(self, client, headers):
        response = client.get('/api/reports?status=Closed', headers=headers(ADMIN))
        assert response.status_code == 400

    def test_list_mine(self, client, headers, reports):
        data = client.get('/api/reports/me', headers=headers(CITIZEN)).get_json()
        assert data['total'] == 3

        data = client.get('/api/reports/me', headers=headers(OTHER_CITIZEN)).get_json()
        assert data['total'] == 0

    def test_list_assigned_to_me(self, client, headers, reports):
        data = client.get('/api/reports/assigned/me', headers=headers(WASTE_STAFF)).get_json()
        assert data['total'] == 2

        data = client.get('/api/reports/assigned/me', headers=headers(WASTE_MAINTAINER)).get_json()
        assert data['total'] == 1
        assert data['_embedded']['items'][0]['externalAssigneeId'] == WASTE_MAINTAINER_ID

    def test_list_assigned_to_external(self, client, headers, reports):
        response = client.get(f'/api/reports/assigned/external/{WASTE_MAINTAINER_ID}', headers=headers(WASTE_STAFF))

        assert response.status_code == 200
        assert response.get_json()['total'] == 1
        assert response.get_json()['_links']['self']['href'].startswith(
            f"http://testserver/api/reports/assigned/external/{WASTE_MAINTAINER_ID}"
        )

    def test_list_assigned_to_external_forbidden(self, client, headers, reports):
        response = client.get(f'/api/reports/assigned/external/{WASTE_MAINTAINER_ID}', headers=headers(CITIZEN))
        assert response.status_code == 403

    def test_categories_are_public(self, client):
        response = client.get('/api/reports/categories')

        assert response.status_code == 200
        assert len(response.get_json()['categories']) == 9


class TestUpdateStatus:
    """Test PUT /api/reports/<id>/status."""

    def test_approve_with_routing(self, client, headers, pending_report):
        """Test approval routes the report to a staff member of its category."""
        response = client.put(
            f'/api/reports/{pending_report.id}/status',
            json={"newStatus": "Assigned", "internalAssigneeId": WASTE_STAFF_ID, "version": 1},
            headers=headers(ADMIN)
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == "Assigned"
        assert data['internalAssigneeId'] == WASTE_STAFF_ID
        assert data['version'] == 2
        assert data['statusHistory'][0]['event'] == "approve"
        # The approver is not an assignee, so no work actions are offered
        assert 'start' not in data['_links']

    def test_reject_requires_reason(self, client, headers, pending_report):
        response = client.put(
            f'/api/reports/{pending_report.id}/status', json={"newStatus": "Rejected"}, headers=headers(PRO)
        )

        assert response.status_code == 400
        assert response.get_json()['errors'][0]['field'] == "rejectionReason"

    def test_reject(self, client, headers, pending_report):
        response = client.put(
            f'/api/reports/{pending_report.id}/status',
            json={"newStatus": "Rejected", "rejectionReason": "Duplicate of another report"},
            headers=headers(PRO)
        )

        assert response.status_code == 200
        assert response.get_json()['rejectionReason'] == "Duplicate of another report"

    def test_citizen_cannot_approve(self, client, headers, pending_report):
        response = client.put(
            f'/api/reports/{pending_report.id}/status', json={"newStatus": "Assigned"}, headers=headers(CITIZEN)
        )

        assert response.status_code == 403
        assert response.get_json()['type'] == "http://testserver/problems/insufficient-permissions"

    def test_invalid_transition(self, client, headers, pending_report):
        response = client.put(
            f'/api/reports/{pending_report.id}/status', json={"newStatus": "Resolved"}, headers=headers(ADMIN)
        )

        assert response.status_code == 409
        data = response.get_json()
        assert data['type'] == "http://testserver/problems/invalid-transition"
        assert data['currentStatus'] == "Pending Approval"
        assert data['event'] == "resolve"
        assert data['_links']['report']['href'] == f"http://testserver/api/reports/{pending_report.id}"

    def test_stale_version(self, client, headers, assigned_report):
        response = client.put(
            f'/api/reports/{assigned_report.id}/status',
            json={"newStatus": "In Progress", "version": 7},
            headers=headers(WASTE_STAFF)
        )

        assert response.status_code == 409
        assert response.get_json()['type'] == "http://testserver/problems/resource-conflict"

    def test_work_transitions(self, client, headers, assigned_report):
        url = f'/api/reports/{assigned_report.id}/status'

        for status in ("In Progress", "Suspended", "In Progress", "Resolved"):
            response = client.put(url, json={"newStatus": status}, headers=headers(WASTE_STAFF))
            assert response.status_code == 200
            assert response.get_json()['status'] == status

        data = response.get_json()
        assert data['version'] == 5
        assert set(data['_links']) == {'self', 'collection'}

    def test_unknown_status_value(self, client, headers, assigned_report):
        response = client.put(
            f'/api/reports/{assigned_report.id}/status', json={"newStatus": "Closed"}, headers=headers(WASTE_STAFF)
        )
        assert response.status_code == 400

    def test_unknown_assignee_on_closed_report(self, client, headers, report_repository):
        report = report_repository.insert(build_report(status=ReportStatus.REJECTED, rejection_reason="Duplicate"))
        response = client.put(
            f'/api/reports/{report.id}/status',
            json={"newStatus": "Assigned", "internalAssigneeId": "nobody"},
            headers=headers(ADMIN)
        )
        assert response.status_code == 409

    def test_unknown_assignee_from_citizen(self, client, headers, pending_report):
        response = client.put(
            f'/api/reports/{pending_report.id}/status',
            json={"newStatus": "Assigned", "internalAssigneeId": "nobody"},
            headers=headers(CITIZEN)
        )
        assert response.status_code == 403

    def test_report_not_found(self, client, headers):
        response = client.put('/api/reports/missing/status', json={"newStatus": "Assigned"}, headers=headers(ADMIN))
        assert response.status_code == 404


class TestAssignExternal:
    """Test PATCH /api/reports/<id>/assign-external."""

    def test_assign_external(self, client, headers, assigned_report):
        response = client.patch(
            f'/api/reports/{assigned_report.id}/assign-external',
            json={"externalAssigneeId": WASTE_MAINTAINER_ID},
            headers=headers(WASTE_STAFF)
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['externalAssigneeId'] == WASTE_MAINTAINER_ID
        assert data['status'] == "Assigned"
        assert data['statusHistory'][-1]['event'] == "assign-external"

    def test_company_category_mismatch(self, client, headers, assigned_report):
        response = client.patch(
            f'/api/reports/{assigned_report.id}/assign-external',
            json={"externalAssigneeId": LIGHTING_MAINTAINER_ID},
            headers=headers(WASTE_STAFF)
        )

        assert response.status_code == 400
        assert response.get_json()['errors'][0]['field'] == "externalAssigneeId"

    def test_not_internal_assignee(self, client, headers, assigned_report):
        response = client.patch(
            f'/api/reports/{assigned_report.id}/assign-external',
            json={"externalAssigneeId": WASTE_MAINTAINER_ID},
            headers=headers(ADMIN)
        )
        assert response.status_code == 403

    def test_pending_report(self, client, headers, pending_report):
        response = client.patch(
            f'/api/reports/{pending_report.id}/assign-external',
            json={"externalAssigneeId": WASTE_MAINTAINER_ID},
            headers=headers(WASTE_STAFF)
        )

        assert response.status_code == 409
        assert response.get_json()['event'] == "assign-external"

    @pytest.mark.parametrize("overrides", [
        {"status": ReportStatus.RESOLVED, "internal_assignee_id": WASTE_STAFF_ID},
        {"status": ReportStatus.REJECTED, "rejection_reason": "Duplicate"},
    ])
    def test_closed_report(self, client, headers, report_repository, overrides):
        report = report_repository.insert(build_report(**overrides))
        before = dict(report_repository.documents[report.id])

        response = client.patch(
            f'/api/reports/{report.id}/assign-external',
            json={"externalAssigneeId": WASTE_MAINTAINER_ID},
            headers=headers(WASTE_STAFF)
        )

        assert response.status_code == 409
        data = response.get_json()
        assert data['type'] == "http://testserver/problems/invalid-transition"
        assert data['currentStatus'] == report.status
        assert report_repository.documents[report.id] == before

    def test_missing_maintainer(self, client, headers, assigned_report):
        response = client.patch(
            f'/api/reports/{assigned_report.id}/assign-external', json={}, headers=headers(WASTE_STAFF)
        )
        assert response.status_code == 400


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == "healthy"
        assert data['dependencies']['boundary']['status'] == "healthy"
        assert data['_links']['self']['href'] == "http://testserver/api/healthz"
