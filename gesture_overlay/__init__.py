"""
Gesture Overlay
===============

Live hand-gesture recognition with a synchronized landmark overlay.

Modules:
    - capture: Live camera frame source
    - inference: Recognizer adapter, single-flight gate, result buffer
    - visualization: Mirror transform, drawing surface, overlay renderer
    - core: Shared types, events, and the pipeline controller
    - utils: Configuration, logging, performance monitoring
"""

__version__ = "1.0.0"
