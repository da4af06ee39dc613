"""
Exceptions raised by the entity store and the helper service.

Lookups never raise for a missing record: they return ``False``/``None``.
These exceptions cover writes that fail and misuse of the store.
"""


class EntityToolsError(Exception):
    """Base class for everything raised by this project."""


class EntityStorageException(EntityToolsError):
    """A create/save/delete against the entity store failed."""


class PluginNotFoundException(EntityToolsError):
    """No storage is registered for the requested entity type id."""

    def __init__(self, entity_type_id: str):
        super().__init__(f'The "{entity_type_id}" entity type does not exist.')
        self.entity_type_id = entity_type_id


class EntityNotFoundException(EntityToolsError):
    """A record that had to exist could not be loaded."""

    def __init__(self, entity_type_id: str, entity_id):
        super().__init__(f"No {entity_type_id} entity with id {entity_id!r}.")
        self.entity_type_id = entity_type_id
        self.entity_id = entity_id


class InvalidFieldException(EntityToolsError):
    """A field name that is not defined on the entity's bundle."""

    def __init__(self, field_name: str, entity_type_id: str):
        super().__init__(f'Field "{field_name}" is unknown on {entity_type_id}.')
        self.field_name = field_name
        self.entity_type_id = entity_type_id
