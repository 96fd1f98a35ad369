from fastapi import Request

from sheet_timeclock.services.document_source import DocumentMetadataSource
from sheet_timeclock.services.identity_provider import IdentityProvider
from sheet_timeclock.services.session_engine import SessionEngine

# Adapters and the session engine are created by the app lifespan and kept on app.state

def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider

def get_document_source(request: Request) -> DocumentMetadataSource:
    return request.app.state.document_source

def get_session_engine(request: Request) -> SessionEngine:
    return request.app.state.session_engine
