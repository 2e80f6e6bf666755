from django.core.exceptions import ValidationError
from django.utils.deconstruct import deconstructible


# File size validator
@deconstructible
class FileSizeValidator:
    """
    Validator that ensures uploaded files don't exceed a maximum size.
    """
    def __init__(self, max_size_mb):
        self.max_size_mb = max_size_mb
        self.max_size_bytes = max_size_mb * 1024 * 1024

    def __call__(self, value):
        if value.size > self.max_size_bytes:
            raise ValidationError(f"File size exceeds the maximum allowed: {self.max_size_bytes / (1024 * 1024):.1f} MB")

    def __eq__(self, other):
        return isinstance(other, FileSizeValidator) and self.max_size_mb == other.max_size_mb


# Upload content type validator
@deconstructible
class MediaTypeValidator:
    """
    Validator that only lets through uploads whose content type starts
    with one of the allowed prefixes (e.g. 'image/', 'video/').
    """
    def __init__(self, allowed_prefixes=('image/', 'video/')):
        self.allowed_prefixes = tuple(allowed_prefixes)

    def __call__(self, value):
        # Files already stored have no content type, only fresh uploads do
        content_type = getattr(value, 'content_type', None)
        if content_type is None:
            file = getattr(value, 'file', None)
            content_type = getattr(file, 'content_type', None)
        if content_type is None:
            return

        if not content_type.startswith(self.allowed_prefixes):
            raise ValidationError("Only images and videos are allowed.")

    def __eq__(self, other):
        return isinstance(other, MediaTypeValidator) and self.allowed_prefixes == other.allowed_prefixes


def count_words(text):
    """Number of whitespace separated words in text."""
    return len(text.split()) if text else 0
