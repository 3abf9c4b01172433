from .ticket_routes import router as ticket_router
from .dashboard_routes import router as dashboard_router
from .user_routes import router as user_router


def include_routes(app):
    """Include all routes in the FastAPI app."""
    app.include_router(ticket_router)
    app.include_router(dashboard_router)
    app.include_router(user_router)
