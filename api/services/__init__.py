# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, external data and side effects.
"""

from .mongodb import MongoDBService, PaginationResult, get_mongodb_service, close_mongodb_connection
from .boundary import BoundaryService
from .directory import DirectoryService
from .reports import ReportRepository, ReportService, report_to_resource

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "get_mongodb_service",
    "close_mongodb_connection",
    "BoundaryService",
    "DirectoryService",
    "ReportRepository",
    "ReportService",
    "report_to_resource"
]
