# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import copy
import json
import os
import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from domain.geofence import boundary_from_geojson
from domain.routing import CategoryRouter, departments_from_config, load_routing_config
from middleware.error_handler import ConflictException, NotFoundException
from models.entities import ActorContext, Company, DirectoryUser, Location, Report
from services.auth import AuthService
from services.boundary import BoundaryService
from services.reports import ReportRepository, ReportService

API_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = API_DIR / "data"

TEST_JWT_SECRET = "test-secret"

# (latitude, longitude)
TURIN_CENTER = (45.07, 7.68)

ADMIN_ID = "admin-1"
PRO_ID = "pro-1"
CITIZEN_ID = "citizen-1"
OTHER_CITIZEN_ID = "citizen-2"
WASTE_STAFF_ID = "staff-waste"
LIGHTING_STAFF_ID = "staff-lighting"
WASTE_MAINTAINER_ID = "ext-waste"
LIGHTING_MAINTAINER_ID = "ext-lighting"
FREELANCE_MAINTAINER_ID = "ext-freelance"

USERS = [
    DirectoryUser(id=ADMIN_ID, username="admin", role="Administrator"),
    DirectoryUser(id=PRO_ID, username="pro", role="Municipal Public Relations Officer"),
    DirectoryUser(id=CITIZEN_ID, username="mario", role="Citizen"),
    DirectoryUser(id=OTHER_CITIZEN_ID, username="lucia", role="Citizen"),
    DirectoryUser(id=WASTE_STAFF_ID, username="giulia", role="Recycling Program Staff Member"),
    DirectoryUser(id=LIGHTING_STAFF_ID, username="paolo", role="Electrical Staff Member"),
    DirectoryUser(id=WASTE_MAINTAINER_ID, username="ecoservizi", role="External Maintainer", company_id="co-waste"),
    DirectoryUser(id=LIGHTING_MAINTAINER_ID, username="lucetorino", role="External Maintainer",
                  company_id="co-lighting"),
    DirectoryUser(id=FREELANCE_MAINTAINER_ID, username="solo", role="External Maintainer"),
]

COMPANIES = [
    Company(id="co-waste", name="Eco Servizi", category="Waste"),
    Company(id="co-lighting", name="Luce Torino", category="Public Lighting"),
]


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate the subset of MongoDB query syntax the report service emits."""
    for key, expected in query.items():
        if key == "$or":
            if not any(_matches(document, clause) for clause in expected):
                return False
        elif isinstance(expected, dict) and "$ne" in expected:
            if document.get(key) == expected["$ne"]:
                return False
        elif document.get(key) != expected:
            return False
    return True


class InMemoryReportRepository:
    """Report repository keeping documents in a dict, with the same version semantics."""

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}

    def _to_report(self, document: Dict[str, Any]) -> Report:
        data = copy.deepcopy(document)
        data["id"] = data.pop("_id")
        return ReportRepository.from_document(data)

    def insert(self, report: Report) -> Report:
        self.documents[report.id] = ReportRepository.to_document(report)
        return report

    def get(self, report_id: str) -> Optional[Report]:
        document = self.documents.get(report_id)
        return self._to_report(document) if document else None

    def list(self, query: Dict[str, Any], page: int, size: int) -> Tuple[List[Report], int]:
        matching = [doc for doc in self.documents.values() if _matches(doc, query)]
        matching.sort(key=lambda doc: doc["createdAt"], reverse=True)
        start = (page - 1) * size
        return [self._to_report(doc) for doc in matching[start:start + size]], len(matching)

    def save(self, previous: Report, updated: Report) -> Report:
        stored = self.documents.get(previous.id)
        if stored is None:
            raise NotFoundException(f"Report {previous.id} not found")
        if stored["version"] != previous.version:
            raise ConflictException(f"Report {previous.id} was modified by another request")
        self.documents[previous.id] = ReportRepository.to_document(updated)
        return self.get(previous.id)


class InMemoryDirectory:
    """User, company and department lookups backed by lists."""

    def __init__(self, users=(), companies=(), departments=(), roles=(), department_roles=()):
        self.users = {user.id: user for user in users}
        self.companies = {company.id: company for company in companies}
        self.departments = list(departments)
        self.roles = list(roles)
        self.department_roles = list(department_roles)

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_company(self, company_id):
        return self.companies.get(company_id)

    def list_departments(self):
        return list(self.departments)

    def list_roles(self):
        return list(self.roles)

    def list_department_roles(self):
        return list(self.department_roles)


@pytest.fixture(scope="session")
def turin_geojson():
    with open(DATA_DIR / "boundaries_turin_city.geojson", encoding="utf-8") as handle:
        return json.load(handle)


@pytest.fixture(scope="session")
def turin_boundary(turin_geojson):
    return boundary_from_geojson(turin_geojson)


@pytest.fixture(scope="session")
def routing_config():
    return load_routing_config(str(DATA_DIR / "routing.json"))


@pytest.fixture
def router(routing_config):
    return CategoryRouter(routing_config.role_categories, departments_from_config(routing_config))


@pytest.fixture
def boundary_service(turin_boundary):
    return BoundaryService(turin_boundary, source="test")


@pytest.fixture
def directory():
    return InMemoryDirectory(USERS, COMPANIES)


@pytest.fixture
def report_repository():
    return InMemoryReportRepository()


@pytest.fixture
def report_service(report_repository, directory, router, boundary_service):
    return ReportService(report_repository, directory, router, boundary_service)


def make_actor(user_id: str, role: str) -> ActorContext:
    return ActorContext(user_id=user_id, role=role)


@pytest.fixture
def admin():
    return make_actor(ADMIN_ID, "Administrator")


@pytest.fixture
def pr_officer():
    return make_actor(PRO_ID, "Municipal Public Relations Officer")


@pytest.fixture
def citizen():
    return make_actor(CITIZEN_ID, "Citizen")


@pytest.fixture
def other_citizen():
    return make_actor(OTHER_CITIZEN_ID, "Citizen")


@pytest.fixture
def waste_staff():
    return make_actor(WASTE_STAFF_ID, "Recycling Program Staff Member")


@pytest.fixture
def lighting_staff():
    return make_actor(LIGHTING_STAFF_ID, "Electrical Staff Member")


@pytest.fixture
def waste_maintainer():
    return make_actor(WASTE_MAINTAINER_ID, "External Maintainer")


def build_report(**overrides) -> Report:
    """A valid pending Waste report at the centre of Turin."""
    data = {
        "title": "Overflowing bins",
        "description": "The bins on the corner have not been emptied for a week",
        "category": "Waste",
        "location": Location(latitude=TURIN_CENTER[0], longitude=TURIN_CENTER[1], address="Via Roma 1"),
        "photos": ["photos/bins-1.jpg"],
        "reporter_id": CITIZEN_ID,
    }
    data.update(overrides)
    return Report(**data)


@pytest.fixture
def create_payload():
    """Request body for a valid report submission."""
    return {
        "title": "Overflowing bins",
        "description": "The bins on the corner have not been emptied for a week",
        "category": "Waste",
        "location": {"latitude": TURIN_CENTER[0], "longitude": TURIN_CENTER[1]},
        "photos": ["photos/bins-1.jpg"],
        "isAnonymous": False
    }


@pytest.fixture
def auth_service():
    return AuthService(TEST_JWT_SECRET, "HS256")


@pytest.fixture
def app(report_repository, directory, router, boundary_service, auth_service):
    """Application wired to in-memory collaborators."""
    from app import create_app

    application = create_app(
        config={
            'ENVIRONMENT': 'test',
            'OTEL_ENABLED': False,
            'BASE_URL': 'http://testserver',
            'JWT_SECRET': TEST_JWT_SECRET
        },
        directory=directory,
        report_repository=report_repository,
        boundary_service=boundary_service,
        router=router,
        auth_service=auth_service
    )
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def auth_headers(auth_service):
    """Factory for bearer headers of a given user and role."""
    def _headers(user_id: str, role: str) -> Dict[str, str]:
        token = auth_service.generate_access_token(user_id, role)
        return {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json'
        }
    return _headers
