"""
Error taxonomy for the detection pipeline.

Decode, shape and inference errors abort a request. Malformed candidates are
recovered inside the decoder and never reach the caller.
"""


class DetectionError(Exception):
    """Base class for every error raised by detect_kit."""


class ImageError(DetectionError, ValueError):
    """Image has unusable geometry (e.g. zero width or height)."""


class ImageDecodeError(ImageError):
    """Bytes do not decode to a valid, non-empty image."""


class ImageEncodeError(ImageError):
    """Annotated image could not be serialized."""


class UnsupportedOutputShapeError(DetectionError, ValueError):
    """Raw model output shape matches no recognized layout."""

    def __init__(self, shape):
        self.shape = tuple(int(d) for d in shape)
        super().__init__(f"Unsupported model output shape: {list(self.shape)}")


class MalformedCandidateError(DetectionError, ValueError):
    """Candidate row carries fewer values than the decode mode requires."""

    def __init__(self, width: int, required: int):
        self.width = width
        self.required = required
        super().__init__(f"Candidate has {width} values, expected at least {required}")


class InferenceError(DetectionError, RuntimeError):
    """Inference backend failed, or the handle is no longer usable."""


class ConfigurationError(DetectionError, ValueError):
    """Configuration or class list is inconsistent with the loaded model."""
