"""API route modules."""

from estoque.api.routes.allocations import router as allocations_router
from estoque.api.routes.health import router as health_router
from estoque.api.routes.materials import router as materials_router
from estoque.api.routes.reports import router as reports_router
from estoque.api.routes.serials import router as serials_router

__all__ = [
    "health_router",
    "materials_router",
    "serials_router",
    "allocations_router",
    "reports_router",
]
