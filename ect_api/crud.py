import logging
from typing import Iterable

from ect_core.config import settings
from ect_core.exceptions import EntityToolsError, EntityNotFoundException, InvalidFieldException
from ect_core.messenger import Messenger
from ect_core.models import FieldStorageConfig, FieldConfig, Term
from ect_core.storage import EntityTypeManager
from ect_api.field_updaters import get_field_updater


class EntityTools:
    """
    Helper service over the entity store: nodes, paragraphs, taxonomy terms,
    roles and field configuration.

    Bulk operations (update_nodes, create_content) report failures to the log
    and the messenger and keep going. Single-record operations let
    EntityStorageException propagate. Lookups return False/None when nothing
    matches.
    """

    def __init__(self, entity_type_manager: EntityTypeManager, messenger: Messenger,
                 logger: logging.Logger | None = None, field_prefix: str | None = None):
        self.entity_type_manager = entity_type_manager
        self.messenger = messenger
        self.logger = logger or logging.getLogger(settings.LOG_CHANNEL)
        self.field_prefix = field_prefix if field_prefix is not None else settings.FIELD_PREFIX

    def _notice(self, message: str) -> None:
        self.messenger.add_status(message)
        self.logger.info(message)

    def _report_error(self, message: str) -> None:
        self.logger.error(message)
        self.messenger.add_error(message)

    # ====== HELPERS ======

    @staticmethod
    def flatten_entity_objects(entities) -> dict:
        """Map a dict or iterable of entities to {id: label}."""
        if isinstance(entities, dict):
            entities = entities.values()
        return {entity.id: entity.label for entity in entities}

    # ====== NODE ======

    def get_content_types(self) -> dict:
        return self.entity_type_manager.get_storage("node_type").load_multiple()

    def get_node_ids_by_fields(self, conditions: dict) -> list:
        """
        Ids of nodes matching every condition.

        Args:
            conditions: {operator: {field: value}}, e.g. {"=": {"type": "article"}, "IN": {"nid": [1, 2]}}

        Returns:
            Matching node ids, ascending
        """
        query = self.entity_type_manager.get_storage("node").query()
        query.access_check(True)
        for operator, values in conditions.items():
            for field, value in values.items():
                query.condition(field, value, operator)
        return query.execute()

    def create_content(self, fields: dict, type_id: str = "node"):
        """
        Create and save an entity of type_id (tested with node and paragraph).

        Returns:
            The saved entity, or None when the save failed
        """
        storage = self.entity_type_manager.get_storage(type_id)
        content = storage.create(fields)
        try:
            storage.save(content)
        except EntityToolsError as e:
            self._report_error(f"{e} Failed to create {type_id} with {fields}")
            return None
        return content

    def update_nodes(self, node_ids, fields: dict) -> int:
        """
        Apply the same field values to one or more nodes.

        Empty values leave a field untouched. Child reference fields
        (paragraphs) lose their current children before the new value is set.
        A node that fails to update is reported and skipped; the rest carry on.

        Args:
            node_ids: a single node id or a list of them
            fields: {field_name: new value}

        Returns:
            Number of nodes saved
        """
        if not node_ids:
            return 0
        node_storage = self.entity_type_manager.get_storage("node")
        nodes = node_storage.load_multiple(node_ids)
        paragraphs = self.entity_type_manager.get_storage("paragraph")
        updates = 0
        for node in nodes.values():
            try:
                # changes to one node land or roll back together
                with node_storage.savepoint("update"):
                    definitions = self.entity_type_manager.get_field_definitions("node", node.bundle)
                    for field, value in fields.items():
                        definition = definitions.get(field)
                        if definition is None:
                            raise InvalidFieldException(field, "node")
                        updater = get_field_updater(definition.get_type(), paragraphs, self._report_error)
                        updater.apply_update(node, field, value)
                    node_storage.save(node)
            except EntityToolsError as e:
                self._report_error(f"{e} Failed to update node. {fields}")
                node_storage.reset(node)
                continue
            updates += 1
        return updates

    update_nodes_by_ids = update_nodes

    def get_nodes_for_ids(self, node_ids) -> dict:
        return self.entity_type_manager.get_storage("node").load_multiple(node_ids)

    def delete_paragraph(self, paragraph_id) -> None:
        storage = self.entity_type_manager.get_storage("paragraph")
        paragraph = storage.load(paragraph_id)
        if paragraph is None:
            raise EntityNotFoundException("paragraph", paragraph_id)
        storage.delete([paragraph])

    delete_paragraphs_in_field = delete_paragraph

    # ====== FIELDS ======

    def get_field_prefix(self) -> str:
        return self.field_prefix

    def remove_field_prefix(self, name: str, prefix: str | None = None) -> str:
        prefix = prefix or self.get_field_prefix()
        return name[len(prefix):] if prefix and name.startswith(prefix) else name

    def field_exists(self, entity_type: str, field_name: str) -> FieldStorageConfig | None:
        return self.entity_type_manager.get_storage("field_storage_config").load(f"{entity_type}.{field_name}")

    def _load_field(self, entity_type: str, bundle: str, field_name: str) -> FieldConfig | None:
        return self.entity_type_manager.get_storage("field_config").load(f"{entity_type}.{bundle}.{field_name}")

    def add_taxonomy_field_to_bundle(self, entity_type: str, bundle: str, field_name: str, label: str,
                                     required: bool, description: str, vocabulary: str, widget_type: str,
                                     default_value=None) -> None:
        """
        Attach an existing taxonomy reference field storage to a bundle and
        put its widget on the default form display.

        Nothing happens if the field storage is missing or the bundle already
        has the field.
        """
        if not self.field_exists(entity_type, field_name):
            return
        if self._load_field(entity_type, bundle, field_name) is not None:
            return
        storage = self.entity_type_manager.get_storage("field_config")
        field = storage.create({
            "id": f"{entity_type}.{bundle}.{field_name}",
            "field_name": field_name,
            "entity_type": entity_type,
            "bundle": bundle,
            "label": label,
            "required": bool(required),
            "default_value": [{"target_id": default_value}] if default_value is not None else [],
            "translatable": True,
            "description": description,
            "settings": {
                "handler_settings": {
                    "target_bundles": {vocabulary: vocabulary},
                    "auto_create": False,
                },
            },
        })
        storage.save(field)
        self._notice(f"Field {field_name} created in bundle {bundle}.")
        self.add_field_to_entity_form(entity_type, bundle, field_name, widget_type)

    def add_field_to_entity_form(self, entity_type: str, bundle: str, field_name: str, widget_type: str) -> None:
        storage = self.entity_type_manager.get_storage("entity_form_display")
        display_id = f"{entity_type}.{bundle}.default"
        display = storage.load(display_id)
        try:
            with storage.savepoint("update"):
                if display is None:
                    display = storage.create({
                        "id": display_id,
                        "target_entity_type": entity_type,
                        "bundle": bundle,
                        "mode": "default",
                        "content": {},
                    })
                display.set_component(field_name, {
                    "type": widget_type,
                    "weight": settings.DEFAULT_WIDGET_WEIGHT,
                })
                saved = storage.save(display)
        except EntityToolsError as e:
            self.logger.warning("Form display %s was not saved: %s", display_id, e)
            storage.reset(display)
            saved = False
        if saved:
            self._notice(f"The form display of {field_name} in bundle {bundle} has been updated.")
        else:
            self._report_error(f"The form display of {field_name} in bundle {bundle} could not be set.")

    def set_field_requirement(self, entity_type: str, bundle: str, field_name: str, required: bool) -> None:
        if not self.field_exists(entity_type, field_name):
            return
        field = self._load_field(entity_type, bundle, field_name)
        if field is None:
            return
        storage = self.entity_type_manager.get_storage("field_config")
        with storage.savepoint("update"):
            field.set_required(required)
            storage.save(field)
        requirement = "on" if required else "off"
        self._notice(f"The field requirement setting for {field_name} has been turned {requirement} in bundle {bundle}.")

    def is_field_required(self, entity_type: str, bundle: str, field_name: str) -> bool | None:
        if not self.field_exists(entity_type, field_name):
            return None
        field = self._load_field(entity_type, bundle, field_name)
        return field.is_required() if field is not None else None

    def remove_field_from_bundle(self, entity_type: str, bundle: str, field_name: str) -> None:
        """Delete the field from the bundle and drop its widget from the default form display."""
        field = self._load_field(entity_type, bundle, field_name)
        if field is None:
            return
        self.entity_type_manager.get_storage("field_config").delete([field])
        displays = self.entity_type_manager.get_storage("entity_form_display")
        display = displays.load(f"{entity_type}.{bundle}.default")
        if display is not None and display.get_component(field_name) is not None:
            with displays.savepoint("update"):
                display.remove_component(field_name)
                displays.save(display)
        self._notice(f"{field_name} in bundle {bundle} has been deleted.")

    # ====== TAXONOMY ======

    def _create_new_term(self, vocabulary_id: str, term_name: str) -> Term:
        storage = self.entity_type_manager.get_storage("taxonomy_term")
        # no tid given: the store always assigns a fresh one
        new_term = storage.create({"vid": vocabulary_id, "name": term_name})
        storage.save(new_term)
        self._notice(f"{term_name} has been added to {vocabulary_id}.")
        return new_term

    def create_term(self, vocabulary_id: str, term_name: str):
        """
        Create a term unless one with the same name exists in the vocabulary.

        Returns:
            The new Term, or False if the term was already there
        """
        if self.get_term(vocabulary_id, term_name):
            return False
        return self._create_new_term(vocabulary_id, term_name)

    def resolve_or_create(self, vocabulary_id: str, term_name: str) -> int:
        """
        Id of the term named term_name in the vocabulary, creating it first if needed.

        If several terms share the name, the lowest tid wins.
        """
        terms = self.get_term(vocabulary_id, term_name)
        if terms:
            return next(iter(terms.values())).id
        return self._create_new_term(vocabulary_id, term_name).id

    create_or_get_term = resolve_or_create

    def delete_term(self, vocabulary_id: str, term_name: str) -> bool:
        terms = self.get_term(vocabulary_id, term_name)
        if terms:
            storage = self.entity_type_manager.get_storage("taxonomy_term")
            storage.delete([next(iter(terms.values()))])
            self._notice(f"{term_name} has been removed from {vocabulary_id}.")
            return True
        self._notice(f"Unable to remove {term_name} from {vocabulary_id}.")
        return False

    def get_term(self, vocabulary_id: str, term_name: str):
        """All terms matching (vocabulary, name) as {tid: Term}, or False."""
        storage = self.entity_type_manager.get_storage("taxonomy_term")
        terms = storage.load_by_properties({"vid": vocabulary_id, "name": term_name})
        return terms or False

    def get_term_id(self, vocabulary_id: str, term_name: str):
        terms = self.get_term(vocabulary_id, term_name)
        if terms:
            return next(iter(terms.values())).id
        return False

    def get_term_name_by_id(self, vocabulary_id: str, term_id) -> str | None:
        storage = self.entity_type_manager.get_storage("taxonomy_term")
        terms = storage.load_by_properties({"vid": vocabulary_id, "tid": term_id})
        # tid is unique, so at most one
        return next(iter(terms.values())).get_name() if terms else None

    def get_terms_by_vocabulary(self, vocabulary_id: str) -> dict | None:
        storage = self.entity_type_manager.get_storage("taxonomy_term")
        terms = storage.load_by_properties({"vid": vocabulary_id})
        return terms or None

    list_terms_by_vocabulary = get_terms_by_vocabulary

    def get_vocabulary_terms_as_dict(self, vocabulary_id: str) -> dict | None:
        """Vocabulary as {tid: name}, handy for select lists."""
        terms = self.get_terms_by_vocabulary(vocabulary_id)
        if terms:
            return {tid: term.get_name() for tid, term in terms.items()}
        return None

    # ====== ROLES ======

    def get_roles(self) -> dict:
        return self.entity_type_manager.get_storage("user_role").load_multiple()

    def get_role_by_id(self, role_id: str):
        return self.entity_type_manager.get_storage("user_role").load(role_id)


def get_entity_tools(session, messenger: Messenger | None = None, **kwargs) -> EntityTools:
    """Wire an EntityTools instance onto a session."""
    return EntityTools(EntityTypeManager(session), messenger or Messenger(), **kwargs)


def load_terms(tools: EntityTools, vocabulary_id: str, names: Iterable[str]) -> dict[str, int]:
    """Resolve-or-create many names at once, returning {name: tid}."""
    return {name: tools.resolve_or_create(vocabulary_id, name) for name in names if name}
