from .field_extractor import UNAVAILABLE, extract_field
from .image_resolver import ImageResolutionManager, ImageResolver, build_fallback_image_url
from .record_parser import RECORD_SEPARATOR, parse_destinations
from .recommender import TravelRecommender

__all__ = [
    "UNAVAILABLE",
    "extract_field",
    "ImageResolutionManager",
    "ImageResolver",
    "build_fallback_image_url",
    "RECORD_SEPARATOR",
    "parse_destinations",
    "TravelRecommender",
]
