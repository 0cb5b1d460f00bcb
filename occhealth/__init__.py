"""Occupational Health Insight Engine.

Aggregates a patient's clinical domain records into a Comprehensive Medical
Report and a Treatment Timeline.
"""

__version__ = "1.0.0"
