from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    UniqueConstraint,
    Index,
    Boolean,
    func,
    JSON,
)
from sqlalchemy.orm import Mapped, mapped_column
from ect_core.db import Base


class Vocabulary(Base):
    __tablename__ = "taxonomy_vocabulary"
    vid: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def id(self) -> str:
        return self.vid

    @property
    def label(self) -> str:
        return self.name


class Term(Base):
    __tablename__ = "taxonomy_term"
    tid: Mapped[int] = mapped_column(Integer, primary_key=True)
    vid: Mapped[str] = mapped_column(String(32), index=True)   # vocabulary machine name
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    weight: Mapped[int] = mapped_column(Integer, default=0)

    # (vid, name) is the lookup key but not unique on purpose
    __table_args__ = (
        Index("ix_taxonomy_term_vid_name", "vid", "name"),
    )

    @property
    def id(self) -> int:
        return self.tid

    @property
    def label(self) -> str:
        return self.name

    def get_name(self) -> str:
        return self.name


class NodeType(Base):
    __tablename__ = "node_type"
    type: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def id(self) -> str:
        return self.type

    @property
    def label(self) -> str:
        return self.name


class FieldValuesMixin:
    """Base columns live on the row, configured fields in ``field_values``."""

    base_fields = {}

    def get(self, field_name: str):
        if field_name in self.base_fields:
            return getattr(self, field_name)
        return (self.field_values or {}).get(field_name)

    def set(self, field_name: str, value) -> None:
        if field_name in self.base_fields:
            setattr(self, field_name, value)
            return
        # reassign so the JSON column is flagged dirty
        self.field_values = {**(self.field_values or {}), field_name: value}

    def target_ids(self, field_name: str) -> list:
        """Ids referenced by an entity reference field, in delta order."""
        items = self.get(field_name) or []
        if isinstance(items, dict):
            items = [items]
        ids = []
        for item in items:
            if isinstance(item, dict):
                if item.get("target_id") is not None:
                    ids.append(item["target_id"])
            elif item is not None:
                ids.append(item)
        return ids


class Node(FieldValuesMixin, Base):
    __tablename__ = "node"
    nid: Mapped[int] = mapped_column(Integer, primary_key=True)
    type: Mapped[str] = mapped_column(String(32), index=True)   # bundle
    title: Mapped[str] = mapped_column(Text)
    status: Mapped[bool] = mapped_column(Boolean, default=True)
    created: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
    changed: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
    field_values: Mapped[dict] = mapped_column(JSON, default=dict)

    base_fields = {"title": "string", "status": "boolean", "type": "entity_reference"}

    @property
    def id(self) -> int:
        return self.nid

    @property
    def label(self) -> str:
        return self.title

    @property
    def bundle(self) -> str:
        return self.type


class Paragraph(FieldValuesMixin, Base):
    __tablename__ = "paragraph"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    type: Mapped[str] = mapped_column(String(32))
    parent_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    parent_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    parent_field_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
    field_values: Mapped[dict] = mapped_column(JSON, default=dict)

    base_fields = {"type": "entity_reference"}

    @property
    def label(self) -> str:
        return f"{self.type} {self.id}"

    @property
    def bundle(self) -> str:
        return self.type


class UserRole(Base):
    __tablename__ = "user_role"
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    label: Mapped[str] = mapped_column(Text)
    weight: Mapped[int] = mapped_column(Integer, default=0)


class FieldStorageConfig(Base):
    __tablename__ = "field_storage_config"
    id: Mapped[str] = mapped_column(String(128), primary_key=True)   # "{entity_type}.{field_name}"
    entity_type: Mapped[str] = mapped_column(String(32))
    field_name: Mapped[str] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(64))
    cardinality: Mapped[int] = mapped_column(Integer, default=1)   # -1 is unlimited
    settings = Column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("entity_type", "field_name", name="uq_field_storage_entity_field"),
    )

    @property
    def label(self) -> str:
        return self.field_name


class FieldConfig(Base):
    __tablename__ = "field_config"
    id: Mapped[str] = mapped_column(String(160), primary_key=True)   # "{entity_type}.{bundle}.{field_name}"
    entity_type: Mapped[str] = mapped_column(String(32))
    bundle: Mapped[str] = mapped_column(String(32))
    field_name: Mapped[str] = mapped_column(String(64))
    label: Mapped[str] = mapped_column(Text)
    required: Mapped[bool] = mapped_column(Boolean, default=False)
    translatable: Mapped[bool] = mapped_column(Boolean, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_value = Column(JSON, nullable=True)
    settings = Column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("entity_type", "bundle", "field_name", name="uq_field_config_bundle_field"),
    )

    def is_required(self) -> bool:
        return bool(self.required)

    def set_required(self, required: bool) -> "FieldConfig":
        self.required = bool(required)
        return self


class EntityFormDisplay(Base):
    __tablename__ = "entity_form_display"
    id: Mapped[str] = mapped_column(String(128), primary_key=True)   # "{entity_type}.{bundle}.{mode}"
    target_entity_type: Mapped[str] = mapped_column(String(32))
    bundle: Mapped[str] = mapped_column(String(32))
    mode: Mapped[str] = mapped_column(String(32), default="default")
    content: Mapped[dict] = mapped_column(JSON, default=dict)

    @property
    def label(self) -> str:
        return self.id

    def get_component(self, name: str) -> dict | None:
        return (self.content or {}).get(name)

    def set_component(self, name: str, options: dict) -> "EntityFormDisplay":
        self.content = {**(self.content or {}), name: dict(options)}
        return self

    def remove_component(self, name: str) -> "EntityFormDisplay":
        content = dict(self.content or {})
        content.pop(name, None)
        self.content = content
        return self
