"""
ECT Core - Shared config, database models, storage and schemas.

This package contains:
- Database models (SQLAlchemy)
- Database connection and session management
- Entity storage layer (per-entity-type storages and queries)
- User-facing messenger
- Configuration settings
- Pydantic schemas for API
"""

from ect_core.config import settings
from ect_core.db import Base, engine, SessionLocal, make_engine
from ect_core.exceptions import (
    EntityToolsError,
    EntityStorageException,
    EntityNotFoundException,
    InvalidFieldException,
    PluginNotFoundException,
)
from ect_core.messenger import Messenger
from ect_core.models import (
    Vocabulary,
    Term,
    NodeType,
    Node,
    Paragraph,
    UserRole,
    FieldStorageConfig,
    FieldConfig,
    EntityFormDisplay,
)
from ect_core.storage import EntityTypeManager, EntityStorage, EntityQuery, FieldDefinition

__all__ = [
    "settings",
    "Base",
    "engine",
    "SessionLocal",
    "make_engine",
    "EntityToolsError",
    "EntityStorageException",
    "EntityNotFoundException",
    "InvalidFieldException",
    "PluginNotFoundException",
    "Messenger",
    "Vocabulary",
    "Term",
    "NodeType",
    "Node",
    "Paragraph",
    "UserRole",
    "FieldStorageConfig",
    "FieldConfig",
    "EntityFormDisplay",
    "EntityTypeManager",
    "EntityStorage",
    "EntityQuery",
    "FieldDefinition",
]
