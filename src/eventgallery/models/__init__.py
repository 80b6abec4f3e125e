"""
Data models for eventgallery.
"""

from .photo import FaceDetection, Photo, PhotoTag, normalize_people

__all__ = [
    "FaceDetection",
    "Photo",
    "PhotoTag",
    "normalize_people",
]
