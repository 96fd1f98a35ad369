import logging

from fastapi import APIRouter, Depends

from sheet_timeclock.api.deps import get_document_source
from sheet_timeclock.api.responses import envelope
from sheet_timeclock.core.database import RecordStore, get_store
from sheet_timeclock.core.security import require_authenticated
from sheet_timeclock.models.common import DocumentAdd, Employee
from sheet_timeclock.services import document_service
from sheet_timeclock.services.document_source import DocumentMetadataSource

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/api/documents", dependencies=[Depends(require_authenticated)])
async def list_documents(store: RecordStore = Depends(get_store)):
    """All tracked sheets"""
    return envelope(data=document_service.list_documents(store))

# Plain def: the metadata lookup blocks, so these run in the threadpool
@router.post("/api/documents")
def add_document(
    data: DocumentAdd,
    store: RecordStore = Depends(get_store),
    source: DocumentMetadataSource = Depends(get_document_source),
    employee: Employee = Depends(require_authenticated),
):
    document = document_service.add_document(store, source, data.document_url, employee)
    return envelope(data=document, message="Sheet added to tracking")

@router.delete("/api/documents/{document_id}", dependencies=[Depends(require_authenticated)])
async def delete_document(document_id: str, store: RecordStore = Depends(get_store)):
    document_service.delete_document(store, document_id)
    return envelope(message="Sheet removed from tracking")

@router.get("/api/documents/{document_id}/status")
def document_status(
    document_id: str,
    store: RecordStore = Depends(get_store),
    source: DocumentMetadataSource = Depends(get_document_source),
    employee: Employee = Depends(require_authenticated),
):
    """Check whether the sheet changed since it was last looked at"""
    status = document_service.check_status(store, source, document_id, employee)
    return envelope(data=status)
