import logging
import time
from typing import Optional

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from sheet_timeclock.core.config import GoogleConfig
from sheet_timeclock.models.common import DocumentMetadata

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

class DocumentMetadataSource:
    """Looks up title and last-modified time of an external document"""

    def fetch(self, document_id: str, access_token: Optional[str] = None) -> Optional[DocumentMetadata]:
        """Return metadata, or None when the document cannot be accessed"""
        raise NotImplementedError

class GoogleDriveMetadataSource(DocumentMetadataSource):
    """Drive v3 ``files.get`` with bounded exponential backoff"""

    def __init__(self, api_key=None, max_retries=None, backoff_seconds=None, sleep=time.sleep, service_factory=None):
        self.api_key = api_key if api_key is not None else GoogleConfig.API_KEY
        self.max_retries = GoogleConfig.MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = GoogleConfig.RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.timeout = GoogleConfig.REQUEST_TIMEOUT_SECONDS
        self.sleep = sleep
        self.service_factory = service_factory or self._make_service

    def _make_service(self, access_token: Optional[str]):
        """Drive client acting as the caller, or keyed by the API key"""
        http = httplib2.Http(timeout=self.timeout)
        if access_token:
            return build("drive", "v3", http=AuthorizedHttp(Credentials(access_token), http=http), cache_discovery=False)
        return build("drive", "v3", http=http, developerKey=self.api_key, cache_discovery=False)

    def fetch(self, document_id: str, access_token: Optional[str] = None) -> Optional[DocumentMetadata]:
        if not access_token and not self.api_key:
            logger.warning(f"No credentials available to look up document {document_id}")
            return None
        
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                request = self.service_factory(access_token).files().get(
                    fileId=document_id,
                    fields="name,modifiedTime",
                    supportsAllDrives=True,
                )
                payload = request.execute()
            except HttpError as e:
                status = e.resp.status
                if status not in RETRYABLE_STATUS:
                    logger.warning(f"Drive refused access to {document_id}: HTTP {status}")
                    return None
                logger.warning(f"Drive lookup for {document_id} answered {status} (attempt {attempt}/{attempts})")
            except (httplib2.HttpLib2Error, OSError) as e:
                logger.warning(f"Drive lookup for {document_id} failed (attempt {attempt}/{attempts}): {e}")
            except ValueError as e:
                logger.error(f"Unexpected Drive response for {document_id}: {e}")
                return None
            else:
                try:
                    return DocumentMetadata(title=payload["name"], last_modified=payload["modifiedTime"])
                except (ValueError, KeyError) as e:
                    logger.error(f"Unexpected Drive metadata for {document_id}: {e}")
                    return None
            
            if attempt < attempts:
                self.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
        
        logger.error(f"Giving up on Drive lookup for {document_id} after {attempts} attempts")
        return None
