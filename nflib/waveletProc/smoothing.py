"""
Window Smoothing for Wavelet Maps and Waveforms

Two fixed window shapes are used when suppressing self-noise:
    HARD: Hamming window, used for the narrow local replacement
    SOFT: Hann window, used for the gentle whole-signal pass

A window of half-width h has 2*h + 1 taps. Averages are normalized by the
window weight that falls inside the data, so samples near an edge are
averaged over the available neighbours only. The circular variant wraps
around instead (whole-map smoothing of the wavelet coefficients).
"""

from enum import Enum
import numpy as np
from typing import Tuple, Union
from scipy.signal import convolve, convolve2d
from scipy.signal import windows


class SmoothingWindow(Enum):
    """Closed set of smoothing window shapes."""
    HARD = 'hamming'
    SOFT = 'hann'

    def taps(self, half_width: int) -> np.ndarray:
        """Symmetric window of 2*half_width + 1 taps."""
        if half_width < 0:
            raise ValueError("half_width must be non-negative")
        length = 2 * int(half_width) + 1
        if self is SmoothingWindow.HARD:
            return windows.hamming(length, sym=True)
        return windows.hann(length, sym=True)

    def taps_2d(self, half_width: Union[int, Tuple[int, int]]) -> np.ndarray:
        """Separable 2-D window (rows x columns)."""
        if np.isscalar(half_width):
            half_width = (half_width, half_width)
        rows, cols = half_width
        return np.outer(self.taps(rows), self.taps(cols))


def smooth_1d(signal: np.ndarray, half_width: int, window: SmoothingWindow) -> np.ndarray:
    """
    Weighted moving average of a 1-D signal.

    Args:
        signal: 1-D array
        half_width: Window half-width in samples
        window: SmoothingWindow.HARD or SmoothingWindow.SOFT

    Returns:
        Smoothed array with the same length as the input
    """
    signal = np.asarray(signal)
    taps = window.taps(half_width)
    weight = convolve(np.ones(signal.shape), taps, mode='same')
    return convolve(signal, taps, mode='same') / weight


def smooth_2d(
    data: np.ndarray,
    half_width: Union[int, Tuple[int, int]],
    window: SmoothingWindow,
    circular: bool = False,
) -> np.ndarray:
    """
    Weighted moving average of a 2-D (possibly complex) array.

    Args:
        data: 2-D array, e.g. wavelet coefficients (scales x time)
        half_width: Half-width, scalar or (rows, columns)
        window: SmoothingWindow.HARD or SmoothingWindow.SOFT
        circular: Wrap around both edges instead of truncating the window

    Returns:
        Smoothed array with the same shape as the input
    """
    data = np.asarray(data)
    taps = window.taps_2d(half_width)

    if circular:
        return convolve2d(data, taps, mode='same', boundary='wrap') / np.sum(taps)

    weight = convolve2d(np.ones(data.shape), taps, mode='same', boundary='fill', fillvalue=0)
    return convolve2d(data, taps, mode='same', boundary='fill', fillvalue=0) / weight
