#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Prepare a development database.

Creates the report indexes, loads one department per category and the
staff roles of each department from the routing table, seeds a few companies and users, and prints an access token
for every seeded user. Users and companies are normally managed by the
account service; these records only exist so the workflow can be exercised
locally.
"""

import argparse
import logging
import os
import sys

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domain.routing import load_routing_config
from services.auth import AuthService
from services.directory import (
    COMPANIES_COLLECTION,
    DEPARTMENT_ROLES_COLLECTION,
    DEPARTMENTS_COLLECTION,
    ROLES_COLLECTION,
    USERS_COLLECTION,
)
from services.mongodb import close_mongodb_connection, get_mongodb_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

DEFAULT_ROUTING = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data', 'routing.json')

COMPANIES = [
    {"_id": "company-eco-servizi", "name": "Eco Servizi Torino", "category": "Waste"},
    {"_id": "company-luce", "name": "Luce e Impianti", "category": "Public Lighting"},
    {"_id": "company-verde", "name": "Verde Urbano", "category": "Public Green Areas and Playgrounds"},
]

USERS = [
    {"_id": "user-admin", "username": "admin", "role": "Administrator"},
    {"_id": "user-pro", "username": "pr.officer", "role": "Municipal Public Relations Officer"},
    {"_id": "user-citizen", "username": "mario.rossi", "role": "Citizen"},
    {"_id": "user-waste-staff", "username": "giulia.bianchi", "role": "Recycling Program Staff Member"},
    {"_id": "user-lighting-staff", "username": "paolo.verdi", "role": "Electrical Staff Member"},
    {"_id": "user-eco-servizi", "username": "eco.servizi", "role": "External Maintainer",
     "companyId": "company-eco-servizi"},
    {"_id": "user-luce", "username": "luce.impianti", "role": "External Maintainer", "companyId": "company-luce"},
]


def _slug(value: str) -> str:
    return "-".join("".join(c if c.isalnum() else " " for c in value.lower()).split())


def seed_directory(mongodb_service, routing_path: str) -> None:
    """Replace departments, roles, companies and users with the development set."""
    config = load_routing_config(routing_path)

    departments = [
        {"_id": f"dept-{_slug(category)}", "name": name, "category": category}
        for category, name in config.category_departments.items()
    ]
    roles = [
        {"_id": f"role-{_slug(role)}", "name": role.title()}
        for role in config.role_categories
    ]
    department_roles = [
        {
            "_id": f"{department['_id']}--{role['_id']}",
            "departmentId": department["_id"],
            "roleId": role["_id"]
        }
        for department in departments
        for role in roles
        if config.role_categories[role["name"].lower()] == department["category"]
    ]

    for collection, documents in (
        (DEPARTMENTS_COLLECTION, departments),
        (ROLES_COLLECTION, roles),
        (DEPARTMENT_ROLES_COLLECTION, department_roles),
        (COMPANIES_COLLECTION, COMPANIES),
        (USERS_COLLECTION, USERS),
    ):
        mongodb_service.get_collection(collection).delete_many({})
        mongodb_service.get_collection(collection).insert_many([dict(document) for document in documents])
        logger.info(f"Seeded {len(documents)} documents into {collection}")


def print_tokens() -> None:
    auth_service = AuthService()
    print("Access tokens:")
    for user in USERS:
        token = auth_service.generate_access_token(user["_id"], user["role"], username=user["username"])
        print(f"  {user['username']} ({user['role']}): {token}")


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument('--indexes-only', action='store_true', help="Only create indexes")
    parser.add_argument('--routing', default=DEFAULT_ROUTING, help="Routing configuration file")
    args = parser.parse_args()

    try:
        mongodb_service = get_mongodb_service()

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            sys.exit(1)

        logger.info(f"Connected to MongoDB {health['version']} - Database: {health['database']}")
        mongodb_service.create_indexes()

        if not args.indexes_only:
            seed_directory(mongodb_service, args.routing)
            print_tokens()

    except Exception as e:
        logger.error(f"Failed to prepare database: {e}")
        sys.exit(1)
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    main()
