"""
nflib.utils - Utility Functions

Small array helpers shared by the processing stages:
- circular_shift: periodic shift of a waveform (centering / un-centering)
- round_half_up: rounding of positive sample indices, ties away from zero
"""

import numpy as np


def circular_shift(signal: np.ndarray, shift: int) -> np.ndarray:
    """
    Circularly shift a 1-D signal by an integer number of samples.

    Positive shifts move samples toward higher indices; shifting by s and
    then by -s restores the input exactly.

    Args:
        signal: 1-D array
        shift: Integer sample shift (any sign, any magnitude)

    Returns:
        New shifted array (input is not modified)
    """
    return np.roll(np.asarray(signal), int(shift))


def round_half_up(values):
    """Round half away from zero (np.round rounds half to even)."""
    values = np.asarray(values, dtype=float)
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


__all__ = ['circular_shift', 'round_half_up']
