class ImageDecodeError(Exception):
    """Raised when image bytes cannot be decoded."""
