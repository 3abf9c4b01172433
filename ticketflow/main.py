# ticketflow/main.py
"""
TicketFlow - Helpdesk API

Employees raise tickets routed to a department (ADMIN, FINANCE, HR);
department managers triage them. Features:
- Role and department based ticket visibility
- Attachment upload to object storage with signed download links
- Email notifications to department mailboxes
- Dashboard statistics
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketflow.core.config import CORS_ORIGINS
from ticketflow.core.database import init_db, test_connection
from ticketflow.core.logger import get_logger
from ticketflow.middleware.error_handler import register_error_handlers
from ticketflow.middleware.logging import add_request_id_middleware
from ticketflow.routes import include_routes
from ticketflow.utils.datetime_utils import get_utc_now, to_iso_string

logger = get_logger(__name__)

VERSION = "1.0.0"

# ==================== FASTAPI APPLICATION ====================

app = FastAPI(
    title="TicketFlow",
    description="Helpdesk ticket management with department routing, attachments and notifications",
    version=VERSION
)

# ==================== MIDDLEWARE SETUP ====================

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(add_request_id_middleware)

# ==================== ERROR HANDLERS ====================

register_error_handlers(app)

# ==================== ROUTE REGISTRATION ====================

include_routes(app)

# ==================== STARTUP/SHUTDOWN ====================

@app.on_event("startup")
async def startup_event():
    """Initialize database and test connection on startup"""
    logger.info("Starting up TicketFlow...")

    if not test_connection():
        logger.error("Failed to connect to database on startup!")
        raise RuntimeError("Database connection failed")

    if not init_db():
        logger.error("Failed to initialize database on startup!")
        raise RuntimeError("Database initialization failed")

    logger.info("TicketFlow started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down TicketFlow...")


# ==================== HEALTH CHECKS ====================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "TicketFlow",
        "version": VERSION,
        "timestamp": to_iso_string(get_utc_now())
    }


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "name": "TicketFlow",
        "version": VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "tickets": "/api/tickets",
            "upload": "/api/tickets/upload",
            "stats": "/api/dashboard/stats"
        }
    }


if __name__ == "__main__":
    import uvicorn
    from ticketflow.core.config import APP_HOST, APP_PORT, APP_DEBUG

    uvicorn.run("ticketflow.main:app", host=APP_HOST, port=APP_PORT, reload=APP_DEBUG)
