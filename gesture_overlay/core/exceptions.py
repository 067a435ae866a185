"""
Error taxonomy for the gesture overlay pipeline.

InitializationFailure, DeviceUnavailable and NotReadyError reach the user
through PipelineFault. InferenceFailure is recovered inside the
InferenceGate, and a stale completion is not an error at all: the
ResultBuffer simply rejects it.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class InitializationFailure(PipelineError):
    """The inference capability could not be loaded."""


class DeviceUnavailable(PipelineError):
    """The capture device was never opened successfully."""


class InferenceFailure(PipelineError):
    """A single inference call raised inside the recognizer."""


class NotReadyError(PipelineError):
    """Capture was requested before the recognizer finished loading."""
