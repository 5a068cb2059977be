"""
Route package initialization.
"""
from .cars import router as cars_router
from .search import router as search_router
from .stats import router as stats_router
from .users import router as users_router

__all__ = ["cars_router", "search_router", "stats_router", "users_router"]
