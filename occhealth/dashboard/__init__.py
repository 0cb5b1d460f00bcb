"""Dashboard module for the Occupational Health Insight Engine.

This module provides a FastAPI-based backend serving the Comprehensive
Medical Report, the Treatment Timeline and the classification review feed.
"""

__version__ = "1.0.0"
