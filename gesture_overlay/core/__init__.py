"""Shared types, events, and the pipeline controller."""
from .exceptions import (
    DeviceUnavailable,
    InferenceFailure,
    InitializationFailure,
    NotReadyError,
    PipelineError,
)
from .types import (
    HAND_CONNECTIONS,
    Frame,
    GestureResult,
    Handedness,
    InferenceOutcome,
    Landmark,
    PipelineState,
)

__all__ = [
    "HAND_CONNECTIONS",
    "Frame",
    "GestureResult",
    "Handedness",
    "InferenceOutcome",
    "Landmark",
    "PipelineState",
    "PipelineError",
    "InitializationFailure",
    "DeviceUnavailable",
    "InferenceFailure",
    "NotReadyError",
]
