"""Asset localization: download CDN images and rewrite their references."""

from .localizer import AssetLocalizer, extract_image_references
from .markers import MarkerStatus, MarkerStore

__all__ = [
    "AssetLocalizer",
    "MarkerStatus",
    "MarkerStore",
    "extract_image_references",
]
