"""
Services module for eventgallery.

- PhotoMetadataStore: owned, persisted collection of photo records
- GalleryService: upload/delete lifecycle orchestration over a blob adapter
"""

from .gallery import (
    WIPE_CONFIRMATION,
    GalleryService,
    GalleryStats,
    HardDeleteResult,
    create_gallery_service,
    get_gallery_service,
    reset_gallery_service,
)
from .metadata import PhotoMetadataStore

__all__ = [
    "WIPE_CONFIRMATION",
    "GalleryService",
    "GalleryStats",
    "HardDeleteResult",
    "PhotoMetadataStore",
    "create_gallery_service",
    "get_gallery_service",
    "reset_gallery_service",
]
