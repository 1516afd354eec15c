"""
syncAvg - Phase-Locked Averaging

Averages actuated pressure signals over all complete actuation cycles
to suppress incoherent turbulent noise.

Key Features:
- Block-pooled period estimate from sub-sample actuation events
- Two-stage averaging (within block, then across blocks)
- Blocks without complete cycles are excluded, not zero-filled

Usage:
    from nflib.syncAvg import PhaseAverager

    averager = PhaseAverager()
    result = averager.average(pressure, events_per_block)
    result.waveform, result.period
"""

from .phase_averager import PhaseAverager, PhaseAverageResult, phase_average

__all__ = [
    'PhaseAverager',
    'PhaseAverageResult',
    'phase_average',
]
