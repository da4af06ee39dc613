"""
Entity storage layer.

Wraps a SQLAlchemy session behind per-entity-type storages so the helper
service never touches models or SQL directly:

- EntityTypeManager: registry of entity type id -> storage, built per session
- EntityStorage: load / load_multiple / load_by_properties / create / save / delete / query,
  plus savepoint() for multi-step writes
- EntityQuery: condition builder returning matching ids
- FieldDefinition: declared type of a field on a bundle
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import select, and_, not_, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ect_core.exceptions import EntityStorageException, PluginNotFoundException
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

SAVED_NEW = 1
SAVED_UPDATED = 2

ENTITY_TYPES = {
    "taxonomy_vocabulary": Vocabulary,
    "taxonomy_term": Term,
    "node_type": NodeType,
    "node": Node,
    "paragraph": Paragraph,
    "user_role": UserRole,
    "field_storage_config": FieldStorageConfig,
    "field_config": FieldConfig,
    "entity_form_display": EntityFormDisplay,
}


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    type: str
    required: bool = False

    def get_type(self) -> str:
        return self.type


class EntityQuery:
    OPERATORS = {
        "=", "<>", "!=", ">", ">=", "<", "<=",
        "IN", "NOT IN", "CONTAINS", "STARTS_WITH", "ENDS_WITH",
        "BETWEEN", "IS NULL", "IS NOT NULL",
    }

    def __init__(self, storage: "EntityStorage"):
        self.storage = storage
        self.conditions: list[tuple[str, Any, str]] = []
        self.checks_access = True

    def access_check(self, flag: bool = True) -> "EntityQuery":
        # no access layer exists; kept so callers can state intent
        self.checks_access = flag
        return self

    def condition(self, field: str, value: Any = None, operator: str = "=") -> "EntityQuery":
        op = (operator or "=").upper()
        if op not in self.OPERATORS:
            raise ValueError(f"Unsupported query operator: {operator}")
        self.conditions.append((field, value, op))
        return self

    def _field_expr(self, field: str, value: Any):
        model = self.storage.model
        if field == "id":
            return self.storage.primary_key
        column = model.__table__.columns.get(field)
        if column is not None:
            return getattr(model, column.key)
        if not hasattr(model, "field_values"):
            raise ValueError(f"{self.storage.entity_type_id} has no field {field}")
        path = model.field_values[field]
        sample = value[0] if isinstance(value, (list, tuple)) and value else value
        # bool first: it is also an int
        if isinstance(sample, bool):
            return path.as_boolean()
        if isinstance(sample, int):
            return path.as_integer()
        if isinstance(sample, float):
            return path.as_float()
        return path.as_string()

    def _clause(self, field: str, value: Any, op: str):
        expr = self._field_expr(field, value)
        if op == "=":
            return expr == value
        if op in ("<>", "!="):
            return expr != value
        if op == ">":
            return expr > value
        if op == ">=":
            return expr >= value
        if op == "<":
            return expr < value
        if op == "<=":
            return expr <= value
        if op == "IN":
            return expr.in_(list(value))
        if op == "NOT IN":
            return not_(expr.in_(list(value)))
        if op == "CONTAINS":
            return expr.contains(value, autoescape=True)
        if op == "STARTS_WITH":
            return expr.startswith(value, autoescape=True)
        if op == "ENDS_WITH":
            return expr.endswith(value, autoescape=True)
        if op == "BETWEEN":
            low, high = value
            return expr.between(low, high)
        if op == "IS NULL":
            return expr.is_(None)
        return expr.is_not(None)

    def execute(self) -> list:
        pk = self.storage.primary_key
        stmt = select(pk).order_by(pk)
        if self.conditions:
            stmt = stmt.where(and_(*(self._clause(f, v, op) for f, v, op in self.conditions)))
        with self.storage.session.no_autoflush:
            return list(self.storage.session.scalars(stmt))


class EntityStorage:
    def __init__(self, session: Session, entity_type_id: str, model):
        self.session = session
        self.entity_type_id = entity_type_id
        self.model = model
        self.primary_key = model.__mapper__.primary_key[0]

    def load(self, entity_id):
        if entity_id is None:
            return None
        with self.session.no_autoflush:
            return self.session.get(self.model, entity_id)

    def load_multiple(self, ids: Iterable | None = None) -> dict:
        stmt = select(self.model).order_by(self.primary_key)
        if ids is not None:
            if isinstance(ids, (str, int)):
                ids = [ids]
            ids = list(ids)
            if not ids:
                return {}
            stmt = stmt.where(self.primary_key.in_(ids))
        with self.session.no_autoflush:
            return {entity.id: entity for entity in self.session.scalars(stmt)}

    def load_by_properties(self, values: dict) -> dict:
        stmt = select(self.model).order_by(self.primary_key)
        for name, value in values.items():
            column = getattr(self.model, name)
            if isinstance(value, (list, tuple, set)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        with self.session.no_autoflush:
            return {entity.id: entity for entity in self.session.scalars(stmt)}

    def create(self, values: dict | None = None):
        """Build a new, unsaved entity. Unknown keys become configured field values."""
        values = dict(values or {})
        columns = {c.key for c in self.model.__mapper__.column_attrs}
        kwargs = {k: v for k, v in values.items() if k in columns}
        extra = {k: v for k, v in values.items() if k not in columns}
        if extra and not hasattr(self.model, "field_values"):
            raise EntityStorageException(
                f"Unknown properties for {self.entity_type_id}: {', '.join(sorted(extra))}"
            )
        entity = self.model(**kwargs)
        if hasattr(self.model, "field_values"):
            entity.field_values = {**(kwargs.get("field_values") or {}), **extra}
        return entity

    @contextmanager
    def savepoint(self, action: str = "write"):
        """
        Run a block of changes inside a SAVEPOINT.

        Open it before touching any entity: begin_nested() flushes whatever is
        already pending outside the savepoint. A database error rolls back the
        block only and surfaces as EntityStorageException, so the enclosing
        transaction stays usable.
        """
        try:
            with self.session.begin_nested():
                yield
        except SQLAlchemyError as e:
            raise EntityStorageException(f"Failed to {action} {self.entity_type_id}: {e}") from e

    def save(self, entity) -> int:
        is_new = inspect(entity).key is None
        with self.savepoint("save"):
            self.session.add(entity)
        return SAVED_NEW if is_new else SAVED_UPDATED

    def delete(self, entities) -> None:
        if isinstance(entities, dict):
            entities = list(entities.values())
        elif isinstance(entities, self.model):
            entities = [entities]
        entities = [e for e in entities if e is not None]
        if not entities:
            return
        with self.savepoint("delete"):
            for entity in entities:
                self.session.delete(entity)

    def reset(self, entity) -> None:
        """Throw away unsaved changes on a loaded entity."""
        if inspect(entity).persistent:
            self.session.expire(entity)

    def query(self) -> EntityQuery:
        return EntityQuery(self)


class EntityTypeManager:
    """Hands out one storage per entity type for a single session."""

    def __init__(self, session: Session, entity_types: dict | None = None):
        self.session = session
        self.entity_types = dict(entity_types or ENTITY_TYPES)
        self._storages: dict[str, EntityStorage] = {}

    def get_storage(self, entity_type_id: str) -> EntityStorage:
        if entity_type_id not in self.entity_types:
            raise PluginNotFoundException(entity_type_id)
        if entity_type_id not in self._storages:
            self._storages[entity_type_id] = EntityStorage(
                self.session, entity_type_id, self.entity_types[entity_type_id]
            )
        return self._storages[entity_type_id]

    def get_field_definitions(self, entity_type_id: str, bundle: str | None = None) -> dict[str, FieldDefinition]:
        """Base fields plus every configured field storage for the entity type."""
        model = self.entity_types.get(entity_type_id)
        if model is None:
            raise PluginNotFoundException(entity_type_id)
        definitions = {
            name: FieldDefinition(name, field_type)
            for name, field_type in getattr(model, "base_fields", {}).items()
        }
        storages = self.session.scalars(
            select(FieldStorageConfig).where(FieldStorageConfig.entity_type == entity_type_id)
        ).all()
        required = {}
        if bundle is not None:
            instances = self.session.scalars(
                select(FieldConfig).where(
                    FieldConfig.entity_type == entity_type_id, FieldConfig.bundle == bundle
                )
            ).all()
            required = {fc.field_name: fc.is_required() for fc in instances}
        for storage in storages:
            definitions[storage.field_name] = FieldDefinition(
                storage.field_name, storage.type, required.get(storage.field_name, False)
            )
        return definitions
