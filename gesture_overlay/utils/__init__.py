"""Configuration, logging, and performance utilities."""
from .config import Config
from .logger import setup_logging
from .performance import PerformanceMonitor

__all__ = ["Config", "setup_logging", "PerformanceMonitor"]
