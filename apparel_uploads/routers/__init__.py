# Routers package
from . import uploads_router
from . import image_assets_router
from . import files_router

__all__ = [
    "uploads_router",
    "image_assets_router",
    "files_router",
]
