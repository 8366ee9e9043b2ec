"""
Error types raised by blockmark
"""


class BlockmarkError(Exception):
    """
    Base class for every error raised by the library.

    Args:
        message: Human readable description
        details: Optional dict with the values that triggered the error
    """

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if not self.details:
            return self.message
        extra = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({extra})"


class PipelineError(BlockmarkError):
    """An ImageState operation was invoked in the wrong stage."""


class NotYCbCrConverted(PipelineError):
    """The operation needs Y/Cb/Cr planes but the state is still raw RGB."""

    def __init__(self, operation):
        super().__init__(f"'{operation}' requires YCbCr planes; call convert_to_ycbcr() first",
                         {"operation": operation})


class StageOrderError(PipelineError):
    """A forward step was repeated, or an inverse step had no forward step."""


class InvalidMatrixError(BlockmarkError, ValueError):
    """A pixel plane is missing, not 2-D, empty or holds non-finite values."""


class InvalidBlockSize(BlockmarkError, ValueError):
    """Block size is not usable for the requested transform."""


class UnsupportedTransformType(BlockmarkError, ValueError):
    """Unknown transform kind."""


class WatermarkTooLarge(BlockmarkError):
    """The watermark does not fit into the carrier plane."""


class DimensionMismatch(BlockmarkError, ValueError):
    """Two operands that must share a shape do not."""


class InvalidAttackParameter(BlockmarkError, ValueError):
    """An attack parameter is unknown or outside its valid range."""


class MissingReference(BlockmarkError, ValueError):
    """A non-blind codec was asked to extract without the unmarked host plane."""
