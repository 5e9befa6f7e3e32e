# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Category and department routing.

Maps staff roles to the single report category they work on, and report
categories to the department that owns them. The role table is keyed by the
normalized (lower-cased, stripped) role name.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from models.entities import Department, DepartmentRoleMapping, Role
from models.enums import ReportCategory, SystemRole
from middleware.error_handler import NotFoundException

logger = logging.getLogger(__name__)


def normalize_role_name(role_name: Optional[str]) -> str:
    """Lower-case and strip a role name for table lookups."""
    return (role_name or "").strip().lower()


@dataclass
class RoutingConfig:
    """Routing tables as loaded from configuration."""
    role_categories: Dict[str, str] = field(default_factory=dict)
    category_departments: Dict[str, str] = field(default_factory=dict)


def load_routing_config(path: str) -> RoutingConfig:
    """
    Load routing tables from a JSON file.

    The file holds two objects: ``roleCategories`` (role name to category)
    and ``categoryDepartments`` (category to department name).

    Raises:
        ValueError: If a category in the file is not a known report category
    """
    with open(path, "r", encoding="utf-8") as handle:
        raw = json.load(handle)

    known = {category.value for category in ReportCategory}
    role_categories = {}
    for role_name, category in (raw.get("roleCategories") or {}).items():
        if category not in known:
            raise ValueError(f"Unknown category '{category}' for role '{role_name}'")
        role_categories[normalize_role_name(role_name)] = category

    category_departments = {}
    for category, department_name in (raw.get("categoryDepartments") or {}).items():
        if category not in known:
            raise ValueError(f"Unknown category '{category}' in department table")
        category_departments[category] = department_name

    logger.info(
        "Routing configuration loaded",
        extra={
            "path": path,
            "roles": len(role_categories),
            "departments": len(category_departments)
        }
    )
    return RoutingConfig(role_categories=role_categories, category_departments=category_departments)


def departments_from_config(config: RoutingConfig) -> List[Department]:
    """Build one department per configured category."""
    return [
        Department(name=name, category=category)
        for category, name in config.category_departments.items()
    ]


class CategoryRouter:
    """
    Resolve departments for categories and categories for staff roles.

    Department membership of roles comes from the stored role and
    department-role records when they are available.
    """

    def __init__(
        self,
        role_categories: Dict[str, Any],
        departments: Iterable[Department] = (),
        roles: Iterable[Role] = (),
        department_roles: Iterable[DepartmentRoleMapping] = ()
    ):
        self._role_categories = {
            normalize_role_name(role): ReportCategory(category).value
            for role, category in role_categories.items()
        }
        self._departments: Dict[str, Department] = {}
        for department in departments:
            if department.category:
                self._departments[department.category] = department

        role_names = {role.id: normalize_role_name(role.name) for role in roles}
        self._department_roles: Dict[str, List[str]] = {}
        for mapping in department_roles:
            name = role_names.get(mapping.role_id)
            if name:
                self._department_roles.setdefault(mapping.department_id, []).append(name)

        non_staff = {
            normalize_role_name(role.value) for role in (
                SystemRole.CITIZEN,
                SystemRole.ADMINISTRATOR,
                SystemRole.PUBLIC_RELATIONS_OFFICER,
                SystemRole.EXTERNAL_MAINTAINER,
            )
        }
        self._staff_roles = (
            set(self._role_categories)
            | set(role_names.values())
            | {normalize_role_name(SystemRole.DEPARTMENT_DIRECTOR.value)}
        ) - non_staff

    def department_for_category(self, category: str) -> Department:
        """
        Get the department owning a category.

        Raises:
            NotFoundException: If no department handles the category
        """
        department = self._departments.get(category)
        if department is None:
            raise NotFoundException(f"No department handles category '{category}'")
        return department

    def category_for_role(self, role_name: Optional[str]) -> Optional[str]:
        """Category a staff role works on, or None when the role is unrestricted."""
        return self._role_categories.get(normalize_role_name(role_name))

    def roles_for_category(self, category: str) -> List[str]:
        return sorted(role for role, mapped in self._role_categories.items() if mapped == category)

    def roles_for_department(self, department_id: Optional[str]) -> List[str]:
        """Normalized names of the roles stored for a department; empty when unknown."""
        return sorted(self._department_roles.get(department_id, [])) if department_id else []

    def is_staff_role(self, role_name: Optional[str]) -> bool:
        """True for municipal staff roles known to the routing table or stored roles."""
        return normalize_role_name(role_name) in self._staff_roles

    def serves_category(self, role_name: Optional[str], category: str) -> bool:
        """True if the role is a staff role mapped to exactly this category."""
        return self.category_for_role(role_name) == category

    @property
    def categories(self) -> List[str]:
        return [category.value for category in ReportCategory]
