"""Tests for the bulk node updater."""

from unittest.mock import MagicMock

from sqlalchemy import select, text

from ect_core.exceptions import EntityStorageException
from ect_core.messenger import Messenger
from ect_core.models import Node, Paragraph
from ect_api.crud import EntityTools
from tests.fixtures.content import (
    create_article_bundle,
    create_article,
    create_paragraphs,
    reference_items,
)


def reload_node(db, nid) -> Node:
    db.expire_all()
    return db.get(Node, nid)


def test_empty_id_list_is_a_noop():
    manager = MagicMock()
    tools = EntityTools(manager, Messenger())

    assert tools.update_nodes([], {"title": "anything"}) == 0
    assert tools.update_nodes(None, {"title": "anything"}) == 0
    manager.get_storage.assert_not_called()
    manager.get_field_definitions.assert_not_called()


def test_update_single_id(tools, db_session):
    create_article_bundle(db_session)
    node = create_article(db_session, "Draft", field_subtitle="old")

    assert tools.update_nodes(node.nid, {"field_subtitle": "new", "title": "Final"}) == 1

    node = reload_node(db_session, node.nid)
    assert node.title == "Final"
    assert node.get("field_subtitle") == "new"


def test_update_many_ids(tools, db_session):
    create_article_bundle(db_session)
    nodes = [create_article(db_session, f"Node {i}") for i in range(3)]

    updated = tools.update_nodes_by_ids([n.nid for n in nodes], {"field_body": "Shared body"})

    assert updated == 3
    for n in nodes:
        assert reload_node(db_session, n.nid).get("field_body") == "Shared body"


def test_missing_ids_are_ignored(tools, db_session):
    create_article_bundle(db_session)
    node = create_article(db_session, "Only one")

    assert tools.update_nodes([node.nid, 404], {"field_subtitle": "x"}) == 1


def test_empty_value_leaves_field_unchanged(tools, db_session):
    create_article_bundle(db_session)
    node = create_article(db_session, "Keep", field_subtitle="keep me", field_body="body")

    assert tools.update_nodes([node.nid], {"field_subtitle": "", "field_body": "new body"}) == 1

    node = reload_node(db_session, node.nid)
    assert node.get("field_subtitle") == "keep me"
    assert node.get("field_body") == "new body"


def test_child_records_deleted_before_reassignment(tools, db_session):
    create_article_bundle(db_session)
    old = create_paragraphs(db_session, 2)
    node = create_article(db_session, "With sections", field_sections=reference_items(old))
    new = create_paragraphs(db_session, 1, parent_id=node.nid)

    storage = tools.entity_type_manager.get_storage("paragraph")
    original_delete = storage.delete
    seen = []

    def recording_delete(entities):
        seen.append((sorted(entities), node.get("field_sections")))
        return original_delete(entities)

    storage.delete = recording_delete

    assert tools.update_nodes([node.nid], {"field_sections": reference_items(new)}) == 1

    assert seen == [([p.id for p in old], reference_items(old))]
    remaining = db_session.scalars(select(Paragraph.id)).all()
    assert remaining == [new[0].id]
    assert reload_node(db_session, node.nid).get("field_sections") == reference_items(new)


def test_child_delete_failure_is_reported_and_update_continues(tools, db_session, messenger, caplog):
    create_article_bundle(db_session)
    old = create_paragraphs(db_session, 1)
    node = create_article(db_session, "Sections", field_sections=reference_items(old))
    storage = tools.entity_type_manager.get_storage("paragraph")

    def failing_delete(entities):
        raise EntityStorageException("paragraph locked")

    storage.delete = failing_delete

    with caplog.at_level("ERROR", logger="entity_tools"):
        assert tools.update_nodes([node.nid], {"field_sections": [{"target_id": 99}]}) == 1

    errors = messenger.messages_by_type("error")
    assert len(errors) == 1
    assert "Failed to delete paragraphs" in errors[0]
    assert "Failed to delete paragraphs" in caplog.text
    assert db_session.get(Paragraph, old[0].id) is not None


def test_partial_failure_skips_node_and_continues(tools, db_session, messenger):
    create_article_bundle(db_session)
    create_article(db_session, "Five", nid=5, field_subtitle="five")
    create_article(db_session, "Six", nid=6, field_subtitle="six")
    db_session.commit()

    storage = tools.entity_type_manager.get_storage("node")
    original_save = storage.save

    def flaky_save(entity):
        if entity.nid == 5:
            raise EntityStorageException("deadlock")
        return original_save(entity)

    storage.save = flaky_save

    assert tools.update_nodes([5, 6], {"field_subtitle": "updated"}) == 1
    db_session.commit()

    assert reload_node(db_session, 6).get("field_subtitle") == "updated"
    assert reload_node(db_session, 5).get("field_subtitle") == "five"
    errors = messenger.messages_by_type("error")
    assert len(errors) == 1
    assert errors[0].startswith("deadlock Failed to update node.")


def test_unknown_field_fails_that_node_only(tools, db_session, messenger):
    create_article_bundle(db_session)
    node = create_article(db_session, "Strict")

    assert tools.update_nodes([node.nid], {"field_missing": "x"}) == 0
    assert 'Field "field_missing" is unknown on node.' in messenger.messages_by_type("error")[0]


def lock_node(db, nid):
    db.execute(text(
        f"CREATE TRIGGER node_{nid}_locked BEFORE UPDATE ON node WHEN OLD.nid = {nid} "
        f"BEGIN SELECT RAISE(ABORT, 'node {nid} is locked'); END"
    ))


def test_database_rejecting_one_node_skips_it_and_continues(tools, db_session, messenger):
    create_article_bundle(db_session)
    create_article(db_session, "Five", nid=5, field_subtitle="five")
    create_article(db_session, "Six", nid=6, field_subtitle="six")
    db_session.commit()
    lock_node(db_session, 5)

    assert tools.update_nodes([5, 6], {"field_subtitle": "updated"}) == 1
    db_session.commit()

    assert reload_node(db_session, 6).get("field_subtitle") == "updated"
    assert reload_node(db_session, 5).get("field_subtitle") == "five"
    errors = messenger.messages_by_type("error")
    assert len(errors) == 1
    assert "node 5 is locked" in errors[0]
    assert "Failed to update node." in errors[0]

    # the session is still usable afterwards
    assert tools.create_term("tags", "after")
    db_session.commit()
    assert tools.get_term_id("tags", "after")


def test_rejected_node_keeps_its_child_records(tools, db_session):
    create_article_bundle(db_session)
    old = create_paragraphs(db_session, 2)
    create_article(db_session, "Five", nid=5, field_sections=reference_items(old))
    create_article(db_session, "Six", nid=6)
    new = create_paragraphs(db_session, 1)
    db_session.commit()
    lock_node(db_session, 5)

    assert tools.update_nodes([5, 6], {"field_sections": reference_items(new)}) == 1
    db_session.commit()

    db_session.expire_all()
    remaining = db_session.scalars(select(Paragraph.id).order_by(Paragraph.id)).all()
    assert remaining == sorted(p.id for p in old + new)
    assert reload_node(db_session, 5).get("field_sections") == reference_items(old)
    assert reload_node(db_session, 6).get("field_sections") == reference_items(new)
