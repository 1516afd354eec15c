"""
Actuation Event Detection for Trigger Traces

Locates actuator pulses on the trigger channel of each recording block at
sub-sample resolution.

The trigger is a train of short voltage drops. Each drop is found as a
negative peak and then refined by back-interpolating along the average
rising slope of the trace to the exact crossing of the pulse minimum.

Algorithm (per block):
1. Remove the trace mean so the baseline sits above zero and the pulse below
2. vmin = minimum of the demeaned trace (commanded low voltage)
3. slope = mean of the first differences >= alpha_fraction * max difference
4. Negative peaks strictly deeper than peak_depth_fraction * vmin, min_peak_distance
   apart; a flat bottom counts at its first sample
5. Peaks whose previous sample is still above zero move one sample later
6. event = p + (vmin - trace[p]) / slope
7. Events at or below min_event_index are dropped

Usage:
    detector = ActuationDetector()
    result = detector.detect(trigger[:, 0])
    result.events   # sub-sample indices, temporal order
"""

import logging
import numpy as np
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from scipy.signal import find_peaks

from ..config.settings import DetectionConfig

logger = logging.getLogger(__name__)


@dataclass
class ActuationResult:
    """Result of actuation detection on one block."""
    events: np.ndarray            # Sub-sample actuation indices (float, ascending)
    peaks: np.ndarray             # Integer peak indices after edge correction
    vmin: float                   # Minimum of the demeaned trace
    slope: float                  # Mean rise per sample on the rising edge
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def num_events(self) -> int:
        return len(self.events)


class ActuationDetector:
    """
    Detect actuation events in trigger traces.

    Attributes:
        config: DetectionConfig with alpha/peak-depth/spacing constants
    """

    def __init__(self, config: Optional[DetectionConfig] = None):
        """
        Initialize actuation detector.

        Args:
            config: Detection constants (default: DetectionConfig())
        """
        self.config = config or DetectionConfig()

    def detect(self, trace: np.ndarray) -> ActuationResult:
        """
        Detect actuation events in one block's trigger trace.

        Args:
            trace: Trigger samples for one block (1D numpy array)

        Returns:
            ActuationResult with sub-sample event indices (possibly empty)
        """
        trace = np.asarray(trace, dtype=float)
        if trace.ndim != 1:
            raise ValueError(f"Trigger trace must be 1-D, got shape {trace.shape}")
        if trace.size < 3 or not np.all(np.isfinite(trace)):
            return self._empty(np.nan, np.nan, reason='short or non-finite trace')

        # Subtract mean so there are zero crossings
        trace = trace - np.mean(trace)
        vmin = float(np.min(trace))

        # Average rise per sample, from differences on the rising slope only
        dtrace = np.diff(trace)
        alpha = self.config.alpha_fraction * np.max(dtrace)
        rising = dtrace[dtrace >= alpha]
        slope = float(np.mean(rising)) if rising.size else np.nan

        if not np.isfinite(slope) or slope <= 0 or vmin >= 0:
            return self._empty(vmin, slope, reason='no rising edge')

        # Negative peaks (unrefined actuation indices), first sample of a flat bottom
        depth = -self.config.peak_depth_fraction * vmin
        _, props = find_peaks(
            -trace,
            height=depth,
            distance=self.config.min_peak_distance,
            plateau_size=1,
        )
        peaks = props['left_edges']
        # Strictly deeper than the threshold
        peaks = peaks[-trace[peaks] > depth]

        # Peak found on the voltage drop rather than the rise: move one sample on
        peaks = peaks + (trace[peaks - 1] > 0).astype(int)
        peaks = peaks[peaks < trace.size]

        # Interpolate based on the average slope of the voltage rise
        events = peaks + (vmin - trace[peaks]) / slope

        keep = events > self.config.min_event_index
        events = events[keep]
        peaks = peaks[keep]

        logger.debug("Detected %d actuation events (vmin=%.4g, slope=%.4g)", len(events), vmin, slope)

        return ActuationResult(
            events=events,
            peaks=peaks,
            vmin=vmin,
            slope=slope,
            stats={
                'alpha': float(alpha),
                'num_rising_samples': int(rising.size),
                'num_peaks': int(len(keep)),
                'num_discarded': int(np.count_nonzero(~keep)),
                'num_events': int(len(events)),
            }
        )

    def detect_blocks(self, trigger: np.ndarray) -> List[ActuationResult]:
        """
        Detect actuation events in every block of a trigger array.

        Args:
            trigger: Trigger samples, shape (samples_per_block, blocks)

        Returns:
            One ActuationResult per block, in block order
        """
        trigger = np.asarray(trigger, dtype=float)
        if trigger.ndim == 1:
            trigger = trigger[:, np.newaxis]
        if trigger.ndim != 2:
            raise ValueError(f"Trigger array must be (samples, blocks), got shape {trigger.shape}")

        results = []
        for n in range(trigger.shape[1]):
            result = self.detect(trigger[:, n])
            if result.num_events < 2:
                logger.warning("Block %d: %d actuation events, no period estimate", n, result.num_events)
            results.append(result)
        return results

    def _empty(self, vmin: float, slope: float, reason: str) -> ActuationResult:
        logger.debug("No actuation events: %s", reason)
        return ActuationResult(
            events=np.array([], dtype=float),
            peaks=np.array([], dtype=np.int64),
            vmin=float(vmin),
            slope=float(slope),
            stats={'num_events': 0, 'reason': reason},
        )


def detect_actuation(trace: np.ndarray, config: Optional[DetectionConfig] = None) -> np.ndarray:
    """
    Convenience function returning only the sub-sample event indices.

    Args:
        trace: Trigger samples for one block
        config: Detection constants

    Returns:
        Array of sub-sample actuation indices
    """
    return ActuationDetector(config).detect(trace).events
