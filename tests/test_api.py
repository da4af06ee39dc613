"""HTTP tests for the FastAPI surface, run against the in-memory store."""

import pytest
from fastapi.testclient import TestClient

from ect_api.main import app, get_db
from tests.fixtures.content import (
    create_article_bundle,
    create_article,
    create_roles,
    create_terms,
)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session
        db_session.commit()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_term_lifecycle(client):
    r = client.post("/vocabularies/tags/terms", json={"name": "Python"})
    assert r.status_code == 200
    body = r.json()
    assert body["created"] is True
    assert body["messages"] == {"status": ["Python has been added to tags."]}
    tid = body["tid"]

    r = client.post("/vocabularies/tags/terms", json={"name": "Python"})
    assert r.json()["tid"] == tid
    assert r.json()["created"] is False
    assert r.json()["messages"] == {}

    assert client.get("/vocabularies/tags/terms").json() == {str(tid): "Python"}

    r = client.delete("/vocabularies/tags/terms/Python")
    assert r.json() == {"deleted": True, "messages": {"status": ["Python has been removed from tags."]}}
    assert client.get("/vocabularies/tags/terms").json() == {}


def test_term_name_is_required(client):
    assert client.post("/vocabularies/tags/terms", json={"name": ""}).status_code == 422


def test_content_types_and_roles(client, db_session):
    create_article_bundle(db_session)
    create_roles(db_session)

    assert client.get("/content-types").json() == {"article": "Article", "page": "Basic page"}
    assert client.get("/roles").json()["editor"] == "Content editor"


def test_create_and_update_nodes(client, db_session):
    create_article_bundle(db_session)

    r = client.post("/nodes", json={"type": "article", "title": "Hello", "fields": {"field_subtitle": "a"}})
    assert r.status_code == 200
    nid = r.json()["nid"]
    other = create_article(db_session, "Other")

    r = client.patch("/nodes", json={"node_ids": [nid, other.nid], "fields": {"field_subtitle": "b"}})
    assert r.json() == {"updated": 2, "messages": {}}

    r = client.patch("/nodes", json={"node_ids": [], "fields": {"field_subtitle": "c"}})
    assert r.json()["updated"] == 0


def test_update_nodes_reports_failures(client, db_session):
    create_article_bundle(db_session)
    node = create_article(db_session, "Lonely")

    r = client.patch("/nodes", json={"node_ids": node.nid, "fields": {"field_nope": "x"}})
    body = r.json()
    assert body["updated"] == 0
    assert len(body["messages"]["error"]) == 1


def test_update_terms_vocabulary_listing_uses_existing(client, db_session):
    a, b = create_terms(db_session, "topics", ["Art", "Biology"])

    assert client.get("/vocabularies/topics/terms").json() == {str(a.tid): "Art", str(b.tid): "Biology"}
