from scanbinder.api.collection import router as collection_router
from scanbinder.api.health import router as health_router
from scanbinder.api.scan import router as scan_router
from scanbinder.api.settings import router as settings_router

__all__ = [
    "collection_router",
    "health_router",
    "scan_router",
    "settings_router",
]
