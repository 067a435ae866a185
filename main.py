#!/usr/bin/env python3
"""
Gesture Overlay - live hand-gesture recognition with a landmark overlay.

Usage:
    python main.py                          # Default camera, CPU delegate
    python main.py --camera 1               # Different camera device
    python main.py --delegate GPU           # GPU inference delegate
    python main.py --config my_config.yaml  # Custom configuration

Controls:
    SPACE   Turn the camera on / off
    p       Print performance report
    q, ESC  Quit
"""

import os
import sys

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from gesture_overlay.app import main

if __name__ == "__main__":
    main()
