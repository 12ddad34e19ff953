from .magnet import extract_magnet, is_valid_magnet, sanitize_link, validate_magnet
from .retry_transport import RetryTransport

__all__ = [
    "RetryTransport",
    "extract_magnet",
    "is_valid_magnet",
    "sanitize_link",
    "validate_magnet",
]
