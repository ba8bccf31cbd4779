from __future__ import annotations


class ProctorError(Exception):
    """Base class for proctoring failures."""


class ModelLoadError(ProctorError):
    pass


class ModelsNotReadyError(ProctorError):
    pass


class CameraAccessError(ProctorError):
    pass


class DetectionError(ProctorError):
    """A single tick could not produce a detection result."""
