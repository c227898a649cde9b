from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from doctrack.api.deps import get_db, require_actor
from doctrack.core.enums import DocumentStatus
from doctrack.core.records import Actor
from doctrack.schemas.common import ErrorResponse, ListResponse
from doctrack.schemas.tracking import (
    CollisionRead,
    DocumentCreate,
    DocumentRead,
    ForwardRequest,
    PurgeResult,
    RemarksUpdate,
    ReturnRequest,
    TransitionRequest,
)
from doctrack.services import documents as doc_service
from doctrack.services.common import paginate

router = APIRouter(
    prefix="/documents",
    tags=["documents"],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def _list_response(documents, limit: int, offset: int) -> dict:
    return {
        "items": [doc_service.to_read(d) for d in paginate(documents, limit, offset)],
        "count": len(documents),
        "limit": limit,
        "offset": offset,
    }


# ------------------------------------------------------------------
# Create and list
# ------------------------------------------------------------------


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return doc_service.to_read(doc_service.documents.create(db, payload, actor))


@router.get("", response_model=ListResponse[DocumentRead])
def list_documents(
    search: str | None = None,
    status_filter: DocumentStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    documents = doc_service.documents.list_visible(db, actor, search, status_filter)
    return _list_response(documents, limit, offset)


@router.get("/incoming", response_model=ListResponse[DocumentRead])
def list_incoming(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return _list_response(doc_service.documents.list_incoming(db, actor), limit, offset)


@router.get("/outgoing", response_model=ListResponse[DocumentRead])
def list_outgoing(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return _list_response(doc_service.documents.list_outgoing(db, actor), limit, offset)


@router.get("/archive", response_model=ListResponse[DocumentRead])
def list_archive(
    search: str | None = None,
    status_filter: DocumentStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    documents = doc_service.documents.list_archive(db, actor, search, status_filter)
    return _list_response(documents, limit, offset)


# ------------------------------------------------------------------
# Administration
# ------------------------------------------------------------------


@router.get("/collisions", response_model=ListResponse[CollisionRead])
def list_collisions(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    if not actor.is_admin:
        raise HTTPException(
            status_code=403, detail="Only administrators can list collisions"
        )
    found = doc_service.documents.collisions(db)
    items = [
        {"reference_number": reference, "document_ids": ids}
        for reference, ids in sorted(found.items())
    ]
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}


@router.post("/purge", response_model=PurgeResult)
def purge_documents(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return doc_service.documents.purge(db, actor)


# ------------------------------------------------------------------
# Single document
# ------------------------------------------------------------------


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return doc_service.to_read(doc_service.documents.get(db, document_id, actor))


@router.post("/{document_id}/receive", response_model=DocumentRead)
def receive_document(
    document_id: str,
    payload: TransitionRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    expected = payload.expected_updated_at if payload else None
    return doc_service.to_read(
        doc_service.documents.receive(db, document_id, actor, expected)
    )


@router.post("/{document_id}/forward", response_model=DocumentRead)
def forward_document(
    document_id: str,
    payload: ForwardRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return doc_service.to_read(
        doc_service.documents.forward(
            db,
            document_id,
            actor,
            payload.destination,
            payload.remarks,
            payload.expected_updated_at,
        )
    )


@router.post("/{document_id}/return", response_model=DocumentRead)
def return_document(
    document_id: str,
    payload: ReturnRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return doc_service.to_read(
        doc_service.documents.return_to_origin(
            db, document_id, actor, payload.reason, payload.expected_updated_at
        )
    )


@router.post("/{document_id}/complete", response_model=DocumentRead)
def complete_document(
    document_id: str,
    payload: TransitionRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    expected = payload.expected_updated_at if payload else None
    return doc_service.to_read(
        doc_service.documents.mark_done(db, document_id, actor, expected)
    )


@router.post("/{document_id}/archive", response_model=DocumentRead)
def archive_document(
    document_id: str,
    payload: TransitionRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    expected = payload.expected_updated_at if payload else None
    return doc_service.to_read(
        doc_service.documents.archive(db, document_id, actor, expected)
    )


@router.put("/{document_id}/remarks", response_model=DocumentRead)
def update_remarks(
    document_id: str,
    payload: RemarksUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return doc_service.to_read(
        doc_service.documents.update_remarks(
            db, document_id, actor, payload.remarks, payload.expected_updated_at
        )
    )
