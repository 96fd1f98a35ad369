import uvicorn
import logging
from pathlib import Path
from sheet_timeclock.core.config import ServerConfig # Import ServerConfig

# Configure logging for the main entry point
log_level = getattr(logging, ServerConfig.LOG_LEVEL.upper())
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

APP_PATH = "sheet_timeclock.main:app"

def ssl_files_present() -> bool:
    return Path(ServerConfig.SSL_CERT_FILE).is_file() and Path(ServerConfig.SSL_KEY_FILE).is_file()

if __name__ == "__main__":
    # Uvicorn only honours workers when given an import string
    workers = ServerConfig.WORKERS if ServerConfig.WORKERS > 1 else None
    if workers:
        logger.warning("⚠️  Active work sessions live in process memory - each worker tracks its own")
    
    if ServerConfig.USE_HTTPS and not ssl_files_present():
        logger.error(f"SSL certificate or key not found ({ServerConfig.SSL_CERT_FILE}, {ServerConfig.SSL_KEY_FILE}), falling back to HTTP")
        ServerConfig.USE_HTTPS = False
    
    if ServerConfig.USE_HTTPS:
        logger.info(f"Starting HTTPS server on port {ServerConfig.SSL_PORT}...")
        logger.info(f"API Documentation: https://localhost:{ServerConfig.SSL_PORT}/docs")
        
        uvicorn.run(
            APP_PATH,
            host=ServerConfig.HOST,
            port=ServerConfig.SSL_PORT,
            ssl_keyfile=ServerConfig.SSL_KEY_FILE,
            ssl_certfile=ServerConfig.SSL_CERT_FILE,
            log_level=ServerConfig.LOG_LEVEL.lower(),
            workers=workers
        )
    else:
        logger.info(f"Starting HTTP server on port {ServerConfig.PORT}...")
        logger.info(f"API Documentation: http://localhost:{ServerConfig.PORT}/docs")
        logger.warning("⚠️  HTTP mode - login cookies are sent unencrypted")
        
        uvicorn.run(
            APP_PATH,
            host=ServerConfig.HOST,
            port=ServerConfig.PORT,
            log_level=ServerConfig.LOG_LEVEL.lower(),
            workers=workers
        )
