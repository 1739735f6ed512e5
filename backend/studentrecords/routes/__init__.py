"""API routers, grouped the way clients address them."""

from .admin import router as admin_router
from .auth import router as auth_router
from .students import router as students_router

__all__ = ["admin_router", "auth_router", "students_router"]
