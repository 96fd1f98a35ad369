import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from sheet_timeclock.api.deps import get_identity_provider, get_session_engine
from sheet_timeclock.api.responses import envelope
from sheet_timeclock.core.config import ServerConfig
from sheet_timeclock.core.database import RecordStore, get_store
from sheet_timeclock.core.errors import AuthError, TimeclockError
from sheet_timeclock.core.security import SESSION_STATE_KEY, login_session, session_employee
from sheet_timeclock.models.common import LoginRequest
from sheet_timeclock.services.auth_service import authenticate, authenticate_via_provider
from sheet_timeclock.services.identity_provider import IdentityProvider
from sheet_timeclock.services.session_engine import SessionEngine

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/auth/login")
async def login(credentials: LoginRequest, request: Request, store: RecordStore = Depends(get_store)):
    """Employee login with email and password"""
    employee = authenticate(store, credentials.email, credentials.password)
    login_session(request, employee)
    return envelope(data=employee.to_public(), message="Login successful")

@router.get("/auth/provider")
async def provider_login(request: Request, provider: IdentityProvider = Depends(get_identity_provider)):
    """Redirect to the identity provider's consent screen"""
    state = secrets.token_urlsafe(24)
    request.session[SESSION_STATE_KEY] = state
    return RedirectResponse(provider.authorization_url(state), status_code=302)

@router.get("/auth/provider/callback")
def provider_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    store: RecordStore = Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Finish delegated login and send the caller to the page for their role"""
    expected_state = request.session.pop(SESSION_STATE_KEY, None)
    
    if error or not code:
        logger.warning(f"Identity provider callback without a code (error: {error})")
        return RedirectResponse(ServerConfig.UNAUTHORIZED_PAGE, status_code=302)
    
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("Identity provider callback with a mismatched state")
        return RedirectResponse(ServerConfig.UNAUTHORIZED_PAGE, status_code=302)
    
    try:
        access_token = provider.exchange_code(code)
        profile = provider.verify(access_token)
    except AuthError as e:
        logger.warning(f"Identity provider login failed: {e.message}")
        return RedirectResponse(ServerConfig.UNAUTHORIZED_PAGE, status_code=302)
    
    employee = authenticate_via_provider(store, profile, access_token)
    if employee is None:
        return RedirectResponse(ServerConfig.UNAUTHORIZED_PAGE, status_code=302)
    
    login_session(request, employee)
    target = ServerConfig.ADMIN_PAGE if employee.is_admin else ServerConfig.DASHBOARD_PAGE
    return RedirectResponse(target, status_code=302)

@router.get("/auth/logout")
async def logout(
    request: Request,
    store: RecordStore = Depends(get_store),
    engine: SessionEngine = Depends(get_session_engine),
):
    """Close any running work session, then drop the login session"""
    employee = session_employee(request, store)
    
    if employee and engine.active_for(employee.id):
        try:
            outcome = await engine.end_session(employee)
            logger.info(f"Work session closed on logout for {employee.email} (recorded: {outcome.recorded})")
        except TimeclockError as e:
            logger.error(f"Work session for {employee.email} lost on logout: {e.message}")
    
    request.session.clear()
    return RedirectResponse(ServerConfig.LOGIN_PAGE, status_code=302)

@router.get("/auth/status")
async def auth_status(request: Request, store: RecordStore = Depends(get_store)):
    employee = session_employee(request, store)
    return {
        "success": True,
        "authenticated": employee is not None,
        "user": employee.to_public() if employee else None,
    }
