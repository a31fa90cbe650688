import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from storefront.database import SessionLocal
from storefront.models import Document
from storefront.triggers import dispatch

logger = structlog.get_logger(__name__)


def collection_of(path: str) -> str:
    return path.strip("/").rpartition("/")[0]


def parent_document(path: str, levels: int = 1) -> str:
    """Walk up ``levels`` documents, e.g. payments/{pushId} -> stripe_customers/{uid}."""
    segments = path.strip("/").split("/")
    if len(segments) <= 2 * levels:
        raise ValueError(f"{path} has no parent document {levels} level(s) up")
    return "/".join(segments[: len(segments) - 2 * levels])


def new_push_id() -> str:
    return uuid.uuid4().hex


def get_document(path: str) -> Optional[Dict[str, Any]]:
    db = SessionLocal()
    try:
        doc = db.get(Document, path.strip("/"))
        return dict(doc.data) if doc else None
    finally:
        db.close()


def set_document(path: str, data: Dict[str, Any], merge: bool = False) -> Dict[str, Any]:
    path = path.strip("/")
    db = SessionLocal()
    try:
        doc = db.get(Document, path)
        before = dict(doc.data) if doc else None

        after = {**before, **data} if merge and before is not None else dict(data)
        if doc:
            doc.data = after
        else:
            db.add(Document(path=path, collection=collection_of(path), data=after))
        db.commit()
    finally:
        db.close()

    dispatch(path, before, after)
    return after


def add_document(collection: str, data: Dict[str, Any]) -> str:
    path = f"{collection.strip('/')}/{new_push_id()}"
    set_document(path, data)
    return path


def list_documents(collection: str) -> List[Tuple[str, Dict[str, Any]]]:
    db = SessionLocal()
    try:
        docs = (
            db.query(Document)
            .filter_by(collection=collection.strip("/"))
            .order_by(Document.path)
            .all()
        )
        return [(doc.path, dict(doc.data)) for doc in docs]
    finally:
        db.close()


def delete_document(path: str):
    delete_documents([path])


def delete_documents(paths: Iterable[str]):
    """Delete every path in one transaction."""
    paths = [p.strip("/") for p in paths]
    if not paths:
        return

    db = SessionLocal()
    try:
        db.query(Document).filter(Document.path.in_(paths)).delete(synchronize_session=False)
        db.commit()
    finally:
        db.close()

    logger.info("documents_deleted", count=len(paths))
