"""
Actuator Self-Noise Filter

Removes the actuator's own acoustic signature from phase-averaged pressure
waveforms while leaving the flow-induced signal in place.

Algorithm (per channel):
1. Rotate the waveform so the expected acoustic arrival sits at ceil(N/2),
   remove the channel mean
2. Continuous wavelet transform (Paul, fixed logarithmic scale ladder)
3. In a temporal window around the center, find regional maxima of |W|
   and keep those exceeding mean + sigma * std of |W| at their own scale
4. No significant maximum: the channel passes through unchanged
5. Otherwise box the maxima in (scale, time), padded by half the window
6. Hard (Hamming) smoothing inside the box, soft (Hann) circular
   smoothing of the whole map
7. Inverse transform, add the mean back, replace the boxed time range only
8. Hard moving average inside the time range, soft moving average overall
9. Rotate back

The statistical test and every width are empirical constants held in
SelfNoiseConfig; they encode the expected spectral width of the actuator
signature.

Usage:
    snf = SelfNoiseFilter.from_config(config)
    result = snf.filter(averaged_waveform, physical.arrival_index)
    result.waveform                      # (N, channels)
    [c.state for c in result.channels]   # FilterState per channel
"""

import logging
from enum import Enum
import numpy as np
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from scipy.ndimage import maximum_filter

from ..config.settings import SelfNoiseConfig, WaveletConfig
from ..utils import circular_shift
from .cwt import ContinuousWaveletTransform
from .smoothing import SmoothingWindow, smooth_1d, smooth_2d

logger = logging.getLogger(__name__)


class FilterState(Enum):
    """Terminal state of one channel."""
    PASSTHROUGH = 'passthrough'
    FILTERED = 'filtered'


@dataclass(frozen=True)
class SelfNoiseRegion:
    """Rectangle in wavelet-map coordinates (inclusive, 0-based)."""
    scale_range: Optional[Tuple[int, int]] = None
    time_range: Optional[Tuple[int, int]] = None

    @property
    def is_empty(self) -> bool:
        return self.scale_range is None or self.time_range is None

    @classmethod
    def empty(cls) -> 'SelfNoiseRegion':
        return cls()


@dataclass
class SignificantPeak:
    """Regional maximum of the wavelet magnitude."""
    scale_index: int
    time_index: int
    magnitude: float
    threshold: float              # mean + sigma * std at this scale


@dataclass
class ChannelFilterResult:
    """Outcome of filtering one channel."""
    waveform: np.ndarray          # Filtered waveform (same length as input)
    state: FilterState
    region: SelfNoiseRegion       # Box used for smoothing (centered coordinates)
    shift: int                    # Circular shift applied before processing
    peaks: List[SignificantPeak] = field(default_factory=list)
    reason: str = ''


@dataclass
class SelfNoiseResult:
    """Filtered waveforms for all channels of one file."""
    waveform: np.ndarray                  # (N, channels)
    channels: List[ChannelFilterResult]

    @property
    def states(self) -> List[FilterState]:
        return [c.state for c in self.channels]


class SelfNoiseFilter:
    """
    Wavelet-domain actuator self-noise suppression.

    Attributes:
        config: SelfNoiseConfig with window widths and significance level
        transform: ContinuousWaveletTransform used for analysis and synthesis
        sample_rate: Sample rate in Hz (sets the scale ladder's dt)
    """

    def __init__(
        self,
        config: Optional[SelfNoiseConfig] = None,
        wavelet: Optional[WaveletConfig] = None,
        sample_rate: float = 200000.0,
    ):
        """
        Initialize self-noise filter.

        Args:
            config: Region detection and smoothing constants
            wavelet: Mother wavelet and scale ladder setup
            sample_rate: Sample rate in Hz
        """
        self.config = config or SelfNoiseConfig()
        self.transform = ContinuousWaveletTransform.from_config(wavelet or WaveletConfig())
        self.sample_rate = sample_rate

    @classmethod
    def from_config(cls, config) -> 'SelfNoiseFilter':
        """Build from a ProcessingConfig."""
        return cls(config.self_noise, config.wavelet, config.acquisition.sample_rate)

    def filter(self, averaged: np.ndarray, arrival_indices: Sequence[int]) -> SelfNoiseResult:
        """
        Filter every channel of an averaged waveform.

        Args:
            averaged: Averaged waveform, shape (N, channels) or (N,)
            arrival_indices: Expected arrival index per channel (any size, reduced modulo N)

        Returns:
            SelfNoiseResult with the filtered waveforms
        """
        averaged = np.asarray(averaged, dtype=float)
        if averaged.ndim == 1:
            averaged = averaged[:, np.newaxis]
        if averaged.ndim != 2:
            raise ValueError(f"Averaged waveform must be (N, channels), got shape {averaged.shape}")

        arrival_indices = np.atleast_1d(np.asarray(arrival_indices))
        if arrival_indices.size != averaged.shape[1]:
            raise ValueError(
                f"Got {arrival_indices.size} arrival indices for {averaged.shape[1]} channels"
            )

        channels = []
        for n in range(averaged.shape[1]):
            result = self.filter_channel(averaged[:, n], int(arrival_indices[n]))
            logger.debug("Channel %d: %s %s", n, result.state.value, result.reason)
            channels.append(result)

        return SelfNoiseResult(
            waveform=np.column_stack([c.waveform for c in channels]),
            channels=channels,
        )

    def filter_channel(self, signal: np.ndarray, arrival_index: int) -> ChannelFilterResult:
        """
        Filter one averaged waveform.

        Args:
            signal: Averaged waveform of one channel (length N)
            arrival_index: Expected arrival index of the disturbance

        Returns:
            ChannelFilterResult (PASSTHROUGH returns an exact copy of the input)
        """
        signal = np.array(signal, dtype=float)
        n = signal.size
        center = int(np.ceil(n / 2))
        shift = center - (int(arrival_index) % n if n else 0)
        w = self.config.search_half_width

        if not np.all(np.isfinite(signal)):
            logger.warning("Non-finite samples in averaged waveform, channel passed through")
            return self._passthrough(signal, shift, 'non-finite samples')
        if center - w - 1 < 0 or center + w + 1 > n - 1:
            logger.warning("Waveform of %d samples too short for a %d-sample search window", n, 2 * w + 1)
            return self._passthrough(signal, shift, 'waveform shorter than search window')

        # Rotate so expected time of arrival is in center of window
        s = circular_shift(signal, shift)
        mean = np.mean(s)
        wmap = self.transform.forward(s - mean, dt=1.0 / self.sample_rate)

        peaks = self.find_significant_peaks(np.abs(wmap.coefficients), center)
        if not peaks:
            return self._passthrough(signal, shift, 'no significant wavelet maxima')

        region = self.bounding_region(peaks, wmap.shape)
        hww = self.config.hard_wavelet_half_width
        t0, t1 = self._clamp_time_range(region.time_range, hww, n)
        if t0 > t1:
            return self._passthrough(signal, shift, 'time range collapsed after padding')
        j1 = region.scale_range[1]

        # Filter out actuator self-noise in the wavelet domain
        fwave = self.smooth_coefficients(wmap.coefficients, (j1, t0, t1))

        # Reconstruct, replace the boxed time range only
        filtered = s.copy()
        rec = self.transform.inverse(fwave, wmap) + mean
        filtered[t0:t1 + 1] = rec[t0:t1 + 1]

        # Smooth final waveform in the temporal domain
        htw = self.config.hard_temporal_half_width
        u0, u1 = self._clamp_time_range((t0, t1), htw, n)
        if u0 <= u1:
            hts = smooth_1d(filtered[u0 - htw:u1 + htw + 1], htw, SmoothingWindow.HARD)
            filtered[u0:u1 + 1] = hts[htw:htw + (u1 - u0 + 1)]
        filtered = smooth_1d(filtered, self.config.soft_temporal_half_width, SmoothingWindow.SOFT)

        return ChannelFilterResult(
            waveform=circular_shift(filtered, -shift),
            state=FilterState.FILTERED,
            region=SelfNoiseRegion(scale_range=(0, j1), time_range=(t0, t1)),
            shift=shift,
            peaks=peaks,
            reason=f'{len(peaks)} significant maxima',
        )

    def find_significant_peaks(self, magnitude: np.ndarray, center: int) -> List[SignificantPeak]:
        """
        Regional maxima of |W| near the center that stand out at their scale.

        Args:
            magnitude: |W|, shape (scales, N)
            center: Column of the expected arrival

        Returns:
            Significant peaks (possibly empty)
        """
        w = self.config.search_half_width
        lo, hi = center - w, center + w

        window = magnitude[:, lo - 1:hi + 2]
        is_max = window == maximum_filter(window, size=3, mode='nearest')
        # Edge columns are not true peaks
        is_max = is_max[:, 1:-2]
        ps, pt = np.nonzero(is_max)
        if ps.size == 0:
            return []
        pt = pt + lo

        row_mean = np.mean(magnitude, axis=1)
        row_std = np.std(magnitude, axis=1)
        spread = np.ptp(magnitude, axis=1)
        # Rows without two distinct magnitudes (beyond roundoff of the map) have no peaks
        degenerate = ~(spread > self.config.degenerate_rtol * np.max(magnitude))

        threshold = row_mean[ps] + self.config.significance_sigma * row_std[ps]
        values = magnitude[ps, pt]
        keep = (values > threshold) & ~degenerate[ps] & np.isfinite(threshold)

        return [
            SignificantPeak(int(j), int(t), float(v), float(th))
            for j, t, v, th in zip(ps[keep], pt[keep], values[keep], threshold[keep])
        ]

    def bounding_region(self, peaks: List[SignificantPeak], shape: Tuple[int, int]) -> SelfNoiseRegion:
        """Box around all significant peaks, padded by half the search window."""
        if not peaks:
            return SelfNoiseRegion.empty()
        n_scales, n = shape
        pad = self.config.search_half_width // 2
        scales = [p.scale_index for p in peaks]
        times = [p.time_index for p in peaks]
        return SelfNoiseRegion(
            scale_range=(0, min(max(scales) + pad, n_scales - 1)),
            time_range=(max(min(times) - pad, 0), min(max(times) + pad, n - 1)),
        )

    def smooth_coefficients(self, coefficients: np.ndarray, box: Tuple[int, int, int]) -> np.ndarray:
        """
        Two-stage smoothing of the wavelet map.

        Args:
            coefficients: Complex coefficients, shape (scales, N)
            box: (last scale row, first column, last column), columns already
                at least hard_wavelet_half_width away from both edges

        Returns:
            Smoothed copy of the coefficients
        """
        j1, t0, t1 = box
        hww = self.config.hard_wavelet_half_width
        n_scales = coefficients.shape[0]

        # Hard smoothing of the padded box, replace the inner box only
        block = coefficients[:min(j1 + hww, n_scales - 1) + 1, t0 - hww:t1 + hww + 1]
        hws = smooth_2d(block, hww, SmoothingWindow.HARD)
        fwave = coefficients.copy()
        fwave[:j1 + 1, t0:t1 + 1] = hws[:j1 + 1, hww:hww + (t1 - t0 + 1)]

        # Soft smoothing of the whole map
        return smooth_2d(fwave, self.config.soft_wavelet_half_width, SmoothingWindow.SOFT, circular=True)

    def _clamp_time_range(self, time_range: Tuple[int, int], half_width: int, n: int) -> Tuple[int, int]:
        t0, t1 = time_range
        if t0 < half_width:
            t0 = half_width
        if t1 + half_width > n - 1:
            t1 = n - 1 - half_width
        return t0, t1

    def _passthrough(self, signal: np.ndarray, shift: int, reason: str) -> ChannelFilterResult:
        return ChannelFilterResult(
            waveform=signal.copy(),
            state=FilterState.PASSTHROUGH,
            region=SelfNoiseRegion.empty(),
            shift=shift,
            reason=reason,
        )


def filter_self_noise(
    averaged: np.ndarray,
    arrival_indices: Sequence[int],
    sample_rate: float = 200000.0,
) -> np.ndarray:
    """
    Convenience function returning only the filtered waveforms.

    Args:
        averaged: Averaged waveform, shape (N, channels)
        arrival_indices: Expected arrival index per channel
        sample_rate: Sample rate in Hz

    Returns:
        Filtered waveform, shape (N, channels)
    """
    return SelfNoiseFilter(sample_rate=sample_rate).filter(averaged, arrival_indices).waveform
