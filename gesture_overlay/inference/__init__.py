"""Inference gating and result storage.

The MediaPipe adapter lives in ``inference.recognizer`` and is imported
explicitly so the rest of the pipeline does not require MediaPipe.
"""
from .gate import GateStatus, InferenceGate
from .outcome import Category, RecognizerOutput, build_outcome
from .result_buffer import ResultBuffer

__all__ = [
    "GateStatus",
    "InferenceGate",
    "Category",
    "RecognizerOutput",
    "build_outcome",
    "ResultBuffer",
]
