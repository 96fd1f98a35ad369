import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from sheet_timeclock.core.database import DOCUMENTS, RecordStore
from sheet_timeclock.core.errors import AccessError, DuplicateError, NotFoundError, ValidationError
from sheet_timeclock.models.common import DocumentStatus, Employee, TrackedDocument
from sheet_timeclock.services.document_source import DocumentMetadataSource

logger = logging.getLogger(__name__)

SHEET_URL_PATTERN = re.compile(r"spreadsheets/d/([a-zA-Z0-9_-]+)")
SHEET_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

def parse_document_id(url_or_id: str) -> Optional[str]:
    """Extract a sheet id from a Google Sheets URL or accept a bare id"""
    value = (url_or_id or "").strip()
    if "spreadsheets/d/" in value:
        match = SHEET_URL_PATTERN.search(value)
        return match.group(1) if match else None
    return value if SHEET_ID_PATTERN.match(value) else None

def list_documents(store: RecordStore) -> List[TrackedDocument]:
    return [TrackedDocument.model_validate(record) for record in store.load(DOCUMENTS)]

def get_document(store: RecordStore, document_id: str) -> Optional[TrackedDocument]:
    for record in store.load(DOCUMENTS):
        if record.get("id") == document_id:
            return TrackedDocument.model_validate(record)
    return None

def add_document(store: RecordStore, source: DocumentMetadataSource, url_or_id: str, employee: Employee) -> TrackedDocument:
    document_id = parse_document_id(url_or_id)
    if not document_id:
        raise ValidationError("Invalid Google Sheet URL or ID")
    
    metadata = source.fetch(document_id, employee.access_token)
    if metadata is None:
        raise AccessError("Unable to access this Google Sheet")
    
    with store.update(DOCUMENTS) as documents:
        if any(doc.get("id") == document_id for doc in documents):
            raise DuplicateError("This sheet is already being tracked")
        
        document = TrackedDocument(
            id=document_id,
            title=metadata.title,
            added_at=datetime.now(timezone.utc),
            last_modified=metadata.last_modified,
            added_by=employee.email,
        )
        documents.append(document.model_dump(mode="json"))
    
    logger.info(f"{employee.email} started tracking sheet '{document.title}' ({document_id})")
    return document

def delete_document(store: RecordStore, document_id: str) -> TrackedDocument:
    with store.update(DOCUMENTS) as documents:
        index = next((i for i, doc in enumerate(documents) if doc.get("id") == document_id), None)
        if index is None:
            raise NotFoundError("Sheet not found")
        document = TrackedDocument.model_validate(documents.pop(index))
    
    logger.info(f"Stopped tracking sheet '{document.title}' ({document_id})")
    return document

def check_status(store: RecordStore, source: DocumentMetadataSource, document_id: str, employee: Employee) -> DocumentStatus:
    """Compare the external modification time with the stored one.

    The stored timestamp is only rewritten when the external one is
    strictly newer.
    """
    if get_document(store, document_id) is None:
        raise NotFoundError("Sheet not found in tracking list")
    
    metadata = source.fetch(document_id, employee.access_token)
    if metadata is None:
        raise AccessError("Unable to access sheet")
    
    with store.update(DOCUMENTS) as documents:
        record = next((doc for doc in documents if doc.get("id") == document_id), None)
        if record is None:
            raise NotFoundError("Sheet not found in tracking list")
        
        stored = TrackedDocument.model_validate(record)
        has_changes = metadata.last_modified > stored.last_modified
        if has_changes:
            stored.last_modified = metadata.last_modified
            record.update(stored.model_dump(mode="json"))
    
    if has_changes:
        logger.info(f"Sheet {document_id} modified at {metadata.last_modified.isoformat()}")
    return DocumentStatus(has_changes=has_changes, last_modified=metadata.last_modified)
