"""
Phase-Locked Averager for Actuated Pressure Signals

Estimates the actuation period from the detected events and averages
every complete actuation cycle of every block into one representative
waveform per pressure channel.

The core idea: the flow response to each actuation is coherent with the
trigger and accumulates in the average, while turbulent noise is
incoherent and cancels out.

Averaging is two-stage: cycles are averaged within each block first and
the block averages are then averaged with equal weight, so blocks with
more cycles do not dominate the result.

Usage:
    averager = PhaseAverager()
    result = averager.average(pressure, [r.events for r in actuation_results])
    result.waveform    # (period, channels)
"""

import logging
import numpy as np
from typing import List, Optional, Sequence
from dataclasses import dataclass

from ..errors import NoPeriodEstimateError, InsufficientCyclesError
from ..utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class PhaseAverageResult:
    """Result of phase-locked averaging."""
    waveform: np.ndarray          # Averaged cycle, shape (period, channels)
    period: int                   # Actuation period in samples
    block_periods: np.ndarray     # Local period estimate per block (NaN if undefined)
    cycles_per_block: np.ndarray  # Complete cycles averaged in each block
    blocks_used: int              # Blocks contributing to the average

    @property
    def num_cycles(self) -> int:
        """Total number of cycles averaged over all blocks."""
        return int(np.sum(self.cycles_per_block))


class PhaseAverager:
    """
    Phase-locked (synchronous) averaging keyed on actuation events.

    The averager holds no per-file state; every call works on its own
    arrays.
    """

    def block_period(self, events: np.ndarray) -> float:
        """
        Local period estimate of one block.

        Args:
            events: Sub-sample actuation indices of the block

        Returns:
            Mean spacing of the rounded events, NaN with fewer than 2 events
        """
        indices = round_half_up(events)
        if indices.size < 2:
            return np.nan
        return float(np.mean(np.diff(indices)))

    def estimate_period(self, events_per_block: Sequence[np.ndarray]) -> int:
        """
        Estimate the actuation period shared by every block of a file.

        Args:
            events_per_block: Sub-sample event indices, one array per block

        Returns:
            Period in samples (rounded mean of valid block estimates)

        Raises:
            NoPeriodEstimateError: if no block yields an estimate
        """
        periods = np.array([self.block_period(e) for e in events_per_block], dtype=float)
        return self._pooled_period(periods)

    def average(
        self,
        pressure: np.ndarray,
        events_per_block: Sequence[np.ndarray],
        period: Optional[int] = None,
    ) -> PhaseAverageResult:
        """
        Average all complete actuation cycles of all blocks.

        Args:
            pressure: Calibrated pressure, shape (samples_per_block, channels, blocks)
            events_per_block: Sub-sample event indices, one array per block
            period: Use this period instead of estimating it from the events

        Returns:
            PhaseAverageResult with the averaged cycle per channel

        Raises:
            NoPeriodEstimateError: if no block yields a period estimate
            InsufficientCyclesError: if no block holds a complete cycle
        """
        pressure = np.asarray(pressure, dtype=float)
        if pressure.ndim == 2:
            pressure = pressure[:, :, np.newaxis]
        if pressure.ndim != 3:
            raise ValueError(f"Pressure must be (samples, channels, blocks), got shape {pressure.shape}")

        block_size, n_channels, n_blocks = pressure.shape
        if len(events_per_block) != n_blocks:
            raise ValueError(
                f"Got events for {len(events_per_block)} blocks but pressure has {n_blocks} blocks"
            )

        block_periods = np.array([self.block_period(e) for e in events_per_block], dtype=float)
        if period is None:
            period = self._pooled_period(block_periods)
        elif period <= 0:
            raise ValueError("period must be positive")
        window = int(period)

        block_averages = []
        cycles_per_block = np.zeros(n_blocks, dtype=np.int64)

        for n in range(n_blocks):
            # Blocks without a local period estimate contribute no cycles
            if not np.isfinite(block_periods[n]):
                logger.warning("Block %d: fewer than 2 actuation events, skipped", n)
                continue

            starts = round_half_up(events_per_block[n]).astype(np.int64)
            starts = starts[(starts >= 0) & (starts + window <= block_size)]
            if starts.size == 0:
                logger.warning("Block %d: no complete actuation cycle of %d samples", n, window)
                continue

            # Sum every complete window, then divide by the count
            total = np.zeros((window, n_channels))
            for start in starts:
                total += pressure[start:start + window, :, n]
            block_averages.append(total / starts.size)
            cycles_per_block[n] = starts.size

        if not block_averages:
            raise InsufficientCyclesError(
                f"No block contains a complete actuation cycle of {window} samples"
            )

        waveform = np.mean(np.stack(block_averages, axis=2), axis=2)
        logger.debug(
            "Averaged %d cycles from %d/%d blocks (period %d samples)",
            int(cycles_per_block.sum()), len(block_averages), n_blocks, window,
        )

        return PhaseAverageResult(
            waveform=waveform,
            period=window,
            block_periods=block_periods,
            cycles_per_block=cycles_per_block,
            blocks_used=len(block_averages),
        )

    def _pooled_period(self, block_periods: np.ndarray) -> int:
        valid = block_periods[np.isfinite(block_periods)]
        if valid.size == 0:
            raise NoPeriodEstimateError(
                f"Actuation period undefined in all {len(block_periods)} blocks"
            )
        period = int(round_half_up(np.mean(valid)))
        if period <= 0:
            raise NoPeriodEstimateError(f"Non-positive actuation period estimate: {period}")
        return period


def phase_average(
    pressure: np.ndarray,
    events_per_block: Sequence[np.ndarray],
) -> PhaseAverageResult:
    """
    Convenience function for phase-locked averaging.

    Args:
        pressure: Calibrated pressure, shape (samples_per_block, channels, blocks)
        events_per_block: Sub-sample event indices, one array per block

    Returns:
        PhaseAverageResult
    """
    return PhaseAverager().average(pressure, events_per_block)
