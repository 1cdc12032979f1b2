"""
Exception classes for the design extraction core.
"""


class DesignExtractionError(Exception):
    """Base exception for all design extraction errors."""

    pass


class InvalidImageError(DesignExtractionError):
    """Input pixel buffer is empty, malformed, or could not be decoded."""

    pass


class InferenceUnavailableError(DesignExtractionError):
    """The learned-detector inference session is not ready."""

    pass


class InvalidGeometryError(DesignExtractionError):
    """A region cannot be clamped into a non-empty rectangle inside the image."""

    pass


class EncodingError(DesignExtractionError):
    """Encoding a cropped region into an image format failed."""

    pass


class PipelineError(DesignExtractionError):
    """Unexpected failure that escaped every inner stage of the pipeline."""

    pass
