"""
eventgallery - Photo storage and lifecycle core for a shared event gallery

Guests upload event photos, tag them by category and by the people in them,
and browse the collection. This package provides:
- Pluggable blob storage (local filesystem or Google Cloud Storage)
- Time-limited signed URLs for private cloud objects
- A JSON metadata document kept consistent with blob existence
- Soft delete, hard delete and confirmed bulk wipe lifecycles
"""

__version__ = "0.1.0"
__author__ = "eventgallery"
__description__ = "Photo storage and lifecycle core for a shared event gallery"
