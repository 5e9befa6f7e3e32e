# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with versioned updates and connection pooling.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Union
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from opentelemetry import trace

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


def _externalize(document: Optional[Dict]) -> Optional[Dict]:
    """Replace ``_id`` with a string ``id``."""
    if document is not None and "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


class MongoDBService:
    """MongoDB service with optimistic concurrency helpers and connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/civic_reports_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'civic_reports_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    @staticmethod
    def coerce_id(doc_id: Union[str, ObjectId]) -> Union[str, ObjectId]:
        """ObjectId for valid hex ids, the raw value otherwise."""
        if isinstance(doc_id, ObjectId):
            return doc_id
        if isinstance(doc_id, str) and ObjectId.is_valid(doc_id):
            return ObjectId(doc_id)
        return doc_id

    # CRUD Operations

    def create(self, collection: str, document: Dict) -> str:
        """Insert a document, generating an ObjectId when none is given."""
        with tracer.start_as_current_span("mongodb.create") as span:
            span.set_attribute("db.collection", collection)
            try:
                if "_id" not in document:
                    document["_id"] = ObjectId()
                else:
                    document["_id"] = self.coerce_id(document["_id"])

                result = self.get_collection(collection).insert_one(document)

                logger.info(f"Created document in {collection}: {result.inserted_id}")
                return str(result.inserted_id)

            except DuplicateKeyError as e:
                logger.error(f"Duplicate key error in {collection}: {e}")
                raise ValueError("Document with this identifier already exists")
            except Exception as e:
                logger.error(f"Failed to create document in {collection}: {e}")
                raise

    def find_one(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by ID."""
        with tracer.start_as_current_span("mongodb.find_one") as span:
            span.set_attribute("db.collection", collection)
            try:
                document = self.get_collection(collection).find_one({"_id": self.coerce_id(doc_id)})

                if document is None:
                    logger.debug(f"Document {doc_id} not found in {collection}")
                return _externalize(document)

            except Exception as e:
                logger.error(f"Failed to find document {doc_id} in {collection}: {e}")
                raise

    def find(self, collection: str, filters: Dict = None) -> List[Dict]:
        """Find documents with optional filters."""
        try:
            documents = [
                _externalize(doc)
                for doc in self.get_collection(collection).find(filters or {})
            ]
            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents

        except Exception as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise

    def paginate(self, collection: str, page: int = 1, page_size: int = 20,
                 filters: Dict = None, sort_by: str = "createdAt", sort_order: int = DESCENDING) -> PaginationResult:
        """Paginate documents with sorting and filtering."""
        with tracer.start_as_current_span("mongodb.paginate") as span:
            span.set_attributes({"db.collection": collection, "db.page": page, "db.page_size": page_size})
            try:
                query = filters or {}
                collection_obj = self.get_collection(collection)

                skip = (page - 1) * page_size
                total = collection_obj.count_documents(query)

                cursor = collection_obj.find(query).sort(sort_by, sort_order).skip(skip).limit(page_size)
                documents = [_externalize(doc) for doc in cursor]

                logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
                return PaginationResult(documents, total, page, page_size)

            except Exception as e:
                logger.error(f"Failed to paginate documents in {collection}: {e}")
                raise

    def update_versioned(self, collection: str, doc_id: str, expected_version: int,
                         updates: Dict, push: Dict = None) -> Optional[Dict]:
        """
        Apply an update only if the stored version still matches.

        The filter includes the expected version and the update increments
        it, so two writers starting from the same version cannot both win.

        Args:
            collection: Collection name
            doc_id: Document ID
            expected_version: Version the caller read
            updates: Fields to ``$set``
            push: Fields to ``$push``

        Returns:
            The updated document, or None if no document matched
        """
        with tracer.start_as_current_span("mongodb.update_versioned") as span:
            span.set_attributes({"db.collection": collection, "db.expected_version": expected_version})
            try:
                operation = {"$set": updates, "$inc": {"version": 1}}
                if push:
                    operation["$push"] = push

                document = self.get_collection(collection).find_one_and_update(
                    {"_id": self.coerce_id(doc_id), "version": expected_version},
                    operation,
                    return_document=ReturnDocument.AFTER
                )

                if document is None:
                    logger.warning(
                        f"Versioned update matched nothing for {doc_id} in {collection}",
                        extra={"expected_version": expected_version}
                    )
                else:
                    logger.info(f"Updated document {doc_id} in {collection}")
                return _externalize(document)

            except Exception as e:
                logger.error(f"Failed to update document {doc_id} in {collection}: {e}")
                raise

    # Index Management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            reports = self.get_collection("reports")
            reports.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            reports.create_index([("category", ASCENDING), ("status", ASCENDING)])
            reports.create_index([("reporterId", ASCENDING), ("createdAt", DESCENDING)])
            reports.create_index([("internalAssigneeId", ASCENDING), ("status", ASCENDING)])
            reports.create_index([("externalAssigneeId", ASCENDING), ("status", ASCENDING)])

            users = self.get_collection("users")
            users.create_index("role")
            users.create_index("companyId")

            companies = self.get_collection("companies")
            companies.create_index("category")

            departments = self.get_collection("departments")
            departments.create_index("category", unique=True, sparse=True)

            department_roles = self.get_collection("department_roles")
            department_roles.create_index([("departmentId", ASCENDING), ("roleId", ASCENDING)], unique=True)

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
