"""
waveletProc - Wavelet-based Self-Noise Suppression

Uses a Continuous Wavelet Transform to localize the actuator self-noise in
time and scale, smooths it out of the coefficient map and reconstructs the
averaged waveform.

Key Features:
- Paul (default) or Morlet mother wavelet, fixed logarithmic scale ladder
- Statistical significance test of wavelet maxima per scale
- Hard/soft two-stage smoothing in the wavelet and temporal domains
- Channels without significant self-noise pass through unchanged

Usage:
    from nflib.waveletProc import SelfNoiseFilter

    snf = SelfNoiseFilter.from_config(config)
    result = snf.filter(averaged, physical.arrival_index)
"""

from .cwt import (
    ContinuousWaveletTransform,
    WaveletMap,
    WAVELETS,
    DEFAULT_WAVELET,
    list_wavelets,
    get_wavelet_info,
    cwt,
    icwt,
)
from .smoothing import SmoothingWindow, smooth_1d, smooth_2d
from .self_noise_filter import (
    SelfNoiseFilter,
    SelfNoiseResult,
    SelfNoiseRegion,
    ChannelFilterResult,
    SignificantPeak,
    FilterState,
    filter_self_noise,
)

__all__ = [
    # Transform
    'ContinuousWaveletTransform',
    'WaveletMap',
    'WAVELETS',
    'DEFAULT_WAVELET',
    'list_wavelets',
    'get_wavelet_info',
    'cwt',
    'icwt',
    # Smoothing
    'SmoothingWindow',
    'smooth_1d',
    'smooth_2d',
    # Filtering
    'SelfNoiseFilter',
    'SelfNoiseResult',
    'SelfNoiseRegion',
    'ChannelFilterResult',
    'SignificantPeak',
    'FilterState',
    'filter_self_noise',
]
