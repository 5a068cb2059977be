"""
Service handles passed into every operation.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Request

from .cache import ViewCache
from .config import Config
from .database import get_db_connection
from .storage import SupabaseStorage
from .vision import GeminiVisionClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """External clients and settings used by the car operations."""
    db_path: str
    storage: Optional[SupabaseStorage] = None
    vision: Optional[GeminiVisionClient] = None
    cache: ViewCache = field(default_factory=ViewCache)
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_image_types: List[str] = field(default_factory=lambda: ["image/jpeg", "image/jpg", "image/png"])

    @contextmanager
    def connect(self):
        with get_db_connection(self.db_path) as conn:
            yield conn

    def close(self) -> None:
        if self.storage is not None:
            self.storage.close()


def build_services(cfg: Config) -> Services:
    """Create service handles from configuration."""
    storage = None
    if cfg.storage_enabled():
        storage = SupabaseStorage(cfg.SUPABASE_URL, cfg.SUPABASE_KEY, cfg.STORAGE_BUCKET, cfg.STORAGE_TIMEOUT)
    else:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set; car creation is disabled")

    vision = None
    if cfg.GEMINI_API_KEY:
        vision = GeminiVisionClient(cfg.GEMINI_API_KEY, cfg.GEMINI_MODEL)
    else:
        logger.warning("GEMINI_API_KEY not set; image analysis is disabled")

    return Services(
        db_path=cfg.DB_PATH,
        storage=storage,
        vision=vision,
        cache=ViewCache(cfg.CACHE_TTL),
        max_image_bytes=cfg.MAX_IMAGE_BYTES,
        allowed_image_types=list(cfg.ALLOWED_IMAGE_TYPES),
    )


def get_services(request: Request) -> Services:
    """Dependency returning the services created at startup."""
    return request.app.state.services
