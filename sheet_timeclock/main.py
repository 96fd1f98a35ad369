import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from sheet_timeclock.core.config import GoogleConfig, ServerConfig, TrackingConfig # Import config classes
from sheet_timeclock.core.database import get_store, init_store, seed_admin # Import store functions
from sheet_timeclock.core.errors import TimeclockError
from sheet_timeclock.api.responses import envelope
from sheet_timeclock.api.endpoints import general, auth, employees, documents, history, sessions # Import all endpoint routers
from sheet_timeclock.services import document_service
from sheet_timeclock.services.document_source import GoogleDriveMetadataSource
from sheet_timeclock.services.history_service import append_record
from sheet_timeclock.services.identity_provider import GoogleIdentityProvider
from sheet_timeclock.services.session_engine import SessionEngine

# Configure logging
log_level = getattr(logging, ServerConfig.LOG_LEVEL.upper())
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

def build_session_engine(app: FastAPI) -> SessionEngine:
    """Wire the engine to the current store and the app's metadata source"""
    
    def status_checker(document_id, employee):
        return document_service.check_status(get_store(), app.state.document_source, document_id, employee)
    
    def recorder(record):
        return append_record(get_store(), record)
    
    return SessionEngine(status_checker=status_checker, recorder=recorder)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    logger.info("=" * 60)
    logger.info(f"🚀 {ServerConfig.APP_NAME.upper()}")
    logger.info(f"Version: {ServerConfig.APP_VERSION}")
    logger.info("=" * 60)
    
    # Initialize record store
    store = init_store(ServerConfig.DATA_DIR)
    
    if ServerConfig.SEED_ADMIN:
        seed_admin(store)
    
    # Tests may install their own adapters before startup
    if not hasattr(app.state, "identity_provider"):
        app.state.identity_provider = GoogleIdentityProvider()
    if not hasattr(app.state, "document_source"):
        app.state.document_source = GoogleDriveMetadataSource()
    app.state.session_engine = build_session_engine(app)
    
    if GoogleConfig.is_configured():
        logger.info("Google login: ENABLED")
    else:
        logger.warning("⚠️  Google client credentials are not set - provider login will fail")
    
    logger.info(f"Data directory: {store.data_dir}")
    logger.info(f"Modification poll interval: {TrackingConfig.POLL_INTERVAL_SECONDS}s")
    logger.info(f"HTTPS: {'ENABLED' if ServerConfig.USE_HTTPS else 'DISABLED'}")
    logger.info("=" * 60)
    logger.info("Timeclock server started successfully!")
    
    yield  # Server is running
    
    # Shutdown logic
    logger.info("Shutting down Timeclock server...")
    await app.state.session_engine.close_all()


app = FastAPI(
    title=ServerConfig.APP_NAME,
    version=ServerConfig.APP_VERSION,
    description=ServerConfig.APP_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs" if ServerConfig.ENABLE_API_DOCS else None,
    redoc_url="/redoc" if ServerConfig.ENABLE_API_DOCS else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=ServerConfig.CORS_ORIGINS,
    allow_credentials=ServerConfig.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Cookie-backed login sessions
app.add_middleware(
    SessionMiddleware,
    secret_key=ServerConfig.SESSION_SECRET,
    session_cookie=ServerConfig.SESSION_COOKIE_NAME,
    max_age=ServerConfig.SESSION_MAX_AGE_SECONDS,
    same_site="lax",
    https_only=ServerConfig.USE_HTTPS,
)

# --- Error envelope ---
@app.exception_handler(TimeclockError)
async def timeclock_error_handler(request: Request, exc: TimeclockError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(success=False, message=exc.message, errors=exc.errors),
    )

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(success=False, message=message),
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content=envelope(success=False, message="Validation failed", errors=errors),
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=envelope(
            success=False,
            message="Internal server error",
            errors=[str(exc)] if ServerConfig.DEVELOPMENT_MODE else None,
        ),
    )

# Include API routers
app.include_router(general.router, tags=["General"])
app.include_router(auth.router, tags=["Authentication"])
app.include_router(employees.router, tags=["Employees"])
app.include_router(documents.router, tags=["Documents"])
app.include_router(sessions.router, tags=["Sessions"])
app.include_router(history.router, tags=["History"])
