"""
Per-field-type update policies used by the bulk node updater.

Every policy applies "set if non-empty": a falsy value leaves the field as it
is, so callers can send partial updates. Child reference fields additionally
delete the paragraphs they currently point to before the new value lands.
"""

from typing import Callable, TYPE_CHECKING

from ect_core.exceptions import EntityToolsError

if TYPE_CHECKING:
    from ect_core.models import Node
    from ect_core.storage import EntityStorage


class PlainField:
    field_type = "string"

    def apply_update(self, node: "Node", field_name: str, value) -> bool:
        """
        Assign value to the field unless it is empty.

        Returns:
            True if the field was assigned
        """
        if not value:
            return False
        node.set(field_name, value)
        return True


class LongTextField(PlainField):
    field_type = "string_long"


class ChildReferenceField(PlainField):
    field_type = "entity_reference_revisions"

    def __init__(self, child_storage: "EntityStorage", report_error: Callable[[str], None]):
        self.child_storage = child_storage
        self.report_error = report_error

    def delete_children(self, node: "Node", field_name: str) -> list:
        """
        Delete every child record the field references right now.

        A failed delete is reported and swallowed so the node update goes on.

        Returns:
            The child ids that were targeted
        """
        child_ids = node.target_ids(field_name)
        if not child_ids:
            return child_ids
        try:
            self.child_storage.delete(self.child_storage.load_multiple(child_ids))
        except EntityToolsError as e:
            self.report_error(f"{e} Failed to delete paragraphs: {child_ids}")
        return child_ids

    def apply_update(self, node: "Node", field_name: str, value) -> bool:
        # runs even for an empty value: the old children go either way
        self.delete_children(node, field_name)
        return super().apply_update(node, field_name, value)


def get_field_updater(field_type: str, child_storage: "EntityStorage",
                      report_error: Callable[[str], None]) -> PlainField:
    """Pick the update policy for a declared field type. Unknown types update as plain fields."""
    if field_type == ChildReferenceField.field_type:
        return ChildReferenceField(child_storage, report_error)
    if field_type == LongTextField.field_type:
        return LongTextField()
    return PlainField()
