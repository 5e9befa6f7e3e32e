# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Read-only access to users, companies and departments.

These records are administered elsewhere; the report engine only looks them
up to validate assignments and to route categories.
"""

import logging
from typing import List, Optional

from opentelemetry import trace

from models.entities import Company, Department, DepartmentRoleMapping, DirectoryUser, Role
from services.mongodb import MongoDBService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
COMPANIES_COLLECTION = "companies"
DEPARTMENTS_COLLECTION = "departments"
ROLES_COLLECTION = "roles"
DEPARTMENT_ROLES_COLLECTION = "department_roles"


class DirectoryService:
    """Lookups of users, companies and departments stored in MongoDB."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb = mongodb_service

    def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        with tracer.start_as_current_span("directory.get_user") as span:
            span.set_attribute("user.id", str(user_id))
            document = self.mongodb.find_one(USERS_COLLECTION, user_id)
            if document is None:
                return None
            return DirectoryUser(
                id=document["id"],
                username=document.get("username"),
                role=document.get("role", ""),
                company_id=str(document["companyId"]) if document.get("companyId") else None
            )

    def get_company(self, company_id: str) -> Optional[Company]:
        with tracer.start_as_current_span("directory.get_company") as span:
            span.set_attribute("company.id", str(company_id))
            document = self.mongodb.find_one(COMPANIES_COLLECTION, company_id)
            if document is None:
                return None
            return Company(id=document["id"], name=document["name"], category=document.get("category"))

    def list_departments(self) -> List[Department]:
        """All departments that declare the category they handle."""
        departments = []
        for document in self.mongodb.find(DEPARTMENTS_COLLECTION):
            if not document.get("category"):
                logger.debug(f"Skipping department without category: {document.get('name')}")
                continue
            departments.append(
                Department(id=document["id"], name=document["name"], category=document["category"])
            )
        return departments

    def list_roles(self) -> List[Role]:
        return [
            Role(id=document["id"], name=document["name"])
            for document in self.mongodb.find(ROLES_COLLECTION)
        ]

    def list_department_roles(self) -> List[DepartmentRoleMapping]:
        """Which roles exist in which department."""
        return [
            DepartmentRoleMapping(
                id=document["id"],
                department_id=str(document["departmentId"]),
                role_id=str(document["roleId"])
            )
            for document in self.mongodb.find(DEPARTMENT_ROLES_COLLECTION)
        ]
