"""
triggerProc - Actuation Trigger Processing

Finds actuator pulses on the trigger channel at sub-sample precision.

Usage:
    from nflib.triggerProc import ActuationDetector

    detector = ActuationDetector(config.detection)
    results = detector.detect_blocks(trigger)     # trigger: (samples, blocks)
    events = [r.events for r in results]
"""

from .actuation_detection import (
    ActuationDetector,
    ActuationResult,
    detect_actuation,
)

__all__ = [
    'ActuationDetector',
    'ActuationResult',
    'detect_actuation',
]
