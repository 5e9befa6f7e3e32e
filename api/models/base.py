# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class BaseEntity(BaseModel):
    """Base entity with common fields for all domain objects."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")
    schema_version: int = Field(default=1, description="Schema version for migrations")
