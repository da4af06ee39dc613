import logging

from fastapi import FastAPI, Depends, HTTPException
from sqlalchemy.orm import Session

from ect_core.config import settings
from ect_core.db import Base, engine, SessionLocal
from ect_core.messenger import Messenger
from ect_core.schemas import (
    TermCreateRequest,
    TermResult,
    TermDeleteResult,
    NodeCreateRequest,
    NodeCreateResult,
    NodeUpdateRequest,
    NodeUpdateResult,
)
from ect_core.storage import EntityTypeManager
from ect_api.crud import EntityTools

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

app = FastAPI(title="Entity Content Tools API")

def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_messenger() -> Messenger:
    return Messenger()

def get_tools(db: Session = Depends(get_db), messenger: Messenger = Depends(get_messenger)) -> EntityTools:
    return EntityTools(EntityTypeManager(db), messenger)

@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)

@app.get("/vocabularies/{vid}/terms", response_model=dict[int, str])
def list_terms(vid: str, tools: EntityTools = Depends(get_tools)):
    return tools.get_vocabulary_terms_as_dict(vid) or {}

@app.post("/vocabularies/{vid}/terms", response_model=TermResult)
def add_term(vid: str, payload: TermCreateRequest, tools: EntityTools = Depends(get_tools)):
    existing = tools.get_term_id(vid, payload.name)
    tid = existing or tools.resolve_or_create(vid, payload.name)
    return TermResult(tid=tid, name=payload.name, vid=vid, created=not existing,
                      messages=tools.messenger.delete_all())

@app.delete("/vocabularies/{vid}/terms/{name}", response_model=TermDeleteResult)
def remove_term(vid: str, name: str, tools: EntityTools = Depends(get_tools)):
    deleted = tools.delete_term(vid, name)
    return TermDeleteResult(deleted=deleted, messages=tools.messenger.delete_all())

@app.get("/content-types", response_model=dict[str, str])
def content_types(tools: EntityTools = Depends(get_tools)):
    return tools.flatten_entity_objects(tools.get_content_types())

@app.post("/nodes", response_model=NodeCreateResult)
def create_node(payload: NodeCreateRequest, tools: EntityTools = Depends(get_tools)):
    values = {"type": payload.type, "title": payload.title, "status": payload.status, **payload.fields}
    node = tools.create_content(values, "node")
    if node is None:
        raise HTTPException(status_code=500, detail=tools.messenger.delete_all())
    return NodeCreateResult(nid=node.id, messages=tools.messenger.delete_all())

@app.patch("/nodes", response_model=NodeUpdateResult)
def update_nodes(payload: NodeUpdateRequest, tools: EntityTools = Depends(get_tools)):
    updated = tools.update_nodes(payload.node_ids, payload.fields)
    return NodeUpdateResult(updated=updated, messages=tools.messenger.delete_all())

@app.get("/roles", response_model=dict[str, str])
def roles(tools: EntityTools = Depends(get_tools)):
    return tools.flatten_entity_objects(tools.get_roles())
