"""
Continuous Wavelet Transform

FFT-based continuous wavelet transform after Torrence & Compo (1998),
with a reconstruction that inverts the transform on the same scale ladder.

Forward transform:
1. Angular frequencies k = 2*pi/(N*dt) * [0, 1, ..., N/2, -(N-1)/2, ..., -1]
2. Daughter wavelet in Fourier space at every scale, normalized to unit energy
3. W[j, :] = ifft(fft(x) * daughter_j)

Scale ladder (fixed count, logarithmic):
    s_j = s0 * 2**(j * dj),  j = 0..n_scales,  s0 = dt
    dj  = log2(scale_span * N) / n_scales
so the largest scale is scale_span * N * dt.

Inverse transform (delta-function reconstruction):
    x_n = sum_j Re(W[j, n]) / sqrt(s_j)  /  sum_j Re(Wd_j) / sqrt(s_j)
where Wd_j is the transform of a unit impulse at its own location. This is
the usual dj*sqrt(dt)/(C_delta*psi0) factor with C_delta computed for the
actual ladder instead of the tabulated asymptotic value. Both mothers are
analytic (no negative frequencies), so the signal mean is not recovered and
must be removed before the transform and added back afterwards.

Usage:
    cwt = ContinuousWaveletTransform(mother='paul', param=4)
    wmap = cwt.forward(signal - signal.mean(), dt=1/200e3)
    rec = cwt.inverse(wmap.coefficients, wmap)
"""

import math
import numpy as np
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass
from scipy import fft as sp_fft


# Mother wavelet families
WAVELETS = {
    'paul': {
        'default_param': 4,
        'param_name': 'order m',
        'description': 'Complex Paul wavelet, sharp in time, broad in frequency',
    },
    'morlet': {
        'default_param': 6,
        'param_name': 'non-dimensional frequency w0',
        'description': 'Complex Morlet wavelet, good frequency localization',
    },
}

DEFAULT_WAVELET = 'paul'


def list_wavelets():
    """Return the available mother wavelet names."""
    return list(WAVELETS.keys())


def get_wavelet_info(name: str) -> Dict[str, Any]:
    """Return the description of a mother wavelet."""
    if name not in WAVELETS:
        raise ValueError(f"Unknown mother wavelet: {name}. Available: {list_wavelets()}")
    return dict(WAVELETS[name])


def wavenumbers(n: int, dt: float) -> np.ndarray:
    """Angular frequency of every FFT bin, in FFT order."""
    positive = np.arange(1, n // 2 + 1)
    negative = -np.arange((n - 1) // 2, 0, -1)
    return np.concatenate(([0.0], positive, negative)) * (2.0 * np.pi / (n * dt))


def wave_bases(
    mother: str,
    k: np.ndarray,
    scales: np.ndarray,
    param: float,
) -> Tuple[np.ndarray, float, float]:
    """
    Daughter wavelets in Fourier space.

    Args:
        mother: 'paul' or 'morlet'
        k: Angular frequencies (see wavenumbers)
        scales: Scale ladder in seconds
        param: Mother-specific parameter

    Returns:
        (daughters with shape (scales, N), fourier_factor, coi_factor)
    """
    n = k.size
    sk = np.outer(scales, k)
    positive = k > 0
    base = np.sqrt(scales * k[1])[:, np.newaxis] * math.sqrt(n)

    if mother == 'paul':
        m = int(param)
        norm = 2.0 ** m / math.sqrt(m * math.factorial(2 * m - 1))
        with np.errstate(over='ignore', invalid='ignore'):
            daughter = base * norm * np.where(positive, sk ** m * np.exp(-sk), 0.0)
        fourier_factor = 4.0 * np.pi / (2 * m + 1)
        coi_factor = fourier_factor * math.sqrt(2.0)
    elif mother == 'morlet':
        k0 = float(param)
        norm = np.pi ** -0.25
        daughter = base * norm * np.where(positive, np.exp(-((sk - k0) ** 2) / 2.0), 0.0)
        fourier_factor = 4.0 * np.pi / (k0 + math.sqrt(2.0 + k0 ** 2))
        coi_factor = fourier_factor / math.sqrt(2.0)
    else:
        raise ValueError(f"Unknown mother wavelet: {mother}. Available: {list_wavelets()}")

    return np.nan_to_num(daughter), fourier_factor, coi_factor


@dataclass
class WaveletMap:
    """Time-scale representation of one signal."""
    coefficients: np.ndarray   # Complex coefficients, shape (scales, N)
    scales: np.ndarray         # Scale of each row (seconds)
    periods: np.ndarray        # Equivalent Fourier period of each row (seconds)
    coi: np.ndarray            # Cone of influence per sample (seconds)
    k: np.ndarray              # Angular frequencies used by the transform
    dt: float                  # Sampling interval
    dj: float                  # Scale spacing (octaves)
    mother: str
    param: float

    @property
    def magnitude(self) -> np.ndarray:
        return np.abs(self.coefficients)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.coefficients.shape


class ContinuousWaveletTransform:
    """
    Forward and inverse continuous wavelet transform on a fixed scale ladder.

    Attributes:
        mother: Mother wavelet family ('paul' or 'morlet')
        param: Mother-specific parameter (Paul order, Morlet w0)
        n_scales: Number of scales minus one
        scale_span: Largest scale as a multiple of the signal duration
    """

    def __init__(
        self,
        mother: str = DEFAULT_WAVELET,
        param: Optional[float] = None,
        n_scales: int = 400,
        scale_span: float = 1.5,
    ):
        if mother not in WAVELETS:
            raise ValueError(f"Unknown mother wavelet: {mother}. Available: {list_wavelets()}")
        self.mother = mother
        self.param = WAVELETS[mother]['default_param'] if param is None else param
        self.n_scales = int(n_scales)
        self.scale_span = float(scale_span)

    @classmethod
    def from_config(cls, config) -> 'ContinuousWaveletTransform':
        """Build from a WaveletConfig."""
        return cls(config.mother, config.param, config.n_scales, config.scale_span)

    def scale_ladder(self, n: int, dt: float) -> Tuple[np.ndarray, float]:
        """
        Logarithmic scale ladder for a signal of n samples.

        Returns:
            (scales, dj)
        """
        dj = math.log2(self.scale_span * n) / self.n_scales
        scales = dt * 2.0 ** (np.arange(self.n_scales + 1) * dj)
        return scales, dj

    def forward(self, signal: np.ndarray, dt: float = 1.0) -> WaveletMap:
        """
        Transform a 1-D signal into its time-scale representation.

        Args:
            signal: Real 1-D signal (mean should already be removed)
            dt: Sampling interval in seconds

        Returns:
            WaveletMap with complex coefficients, shape (n_scales + 1, N)
        """
        x = np.asarray(signal, dtype=float)
        if x.ndim != 1 or x.size < 2:
            raise ValueError(f"Signal must be 1-D with at least 2 samples, got shape {x.shape}")
        n = x.size

        scales, dj = self.scale_ladder(n, dt)
        k = wavenumbers(n, dt)
        daughters, fourier_factor, coi_factor = wave_bases(self.mother, k, scales, self.param)

        coefficients = sp_fft.ifft(sp_fft.fft(x)[np.newaxis, :] * daughters, axis=1)

        # Cone of influence, distance to the nearest edge
        edge = np.concatenate((
            [1e-5],
            np.arange(1, (n + 1) // 2),
            np.arange(n // 2 - 1, 0, -1),
            [1e-5],
        ))[:n]
        coi = coi_factor * dt * edge

        return WaveletMap(
            coefficients=coefficients,
            scales=scales,
            periods=fourier_factor * scales,
            coi=coi,
            k=k,
            dt=dt,
            dj=dj,
            mother=self.mother,
            param=self.param,
        )

    def inverse(self, coefficients: np.ndarray, wavelet_map: WaveletMap) -> np.ndarray:
        """
        Reconstruct a real signal from (possibly modified) coefficients.

        Args:
            coefficients: Complex coefficients with the shape of wavelet_map
            wavelet_map: Map whose scale ladder and wavenumbers to use

        Returns:
            Real reconstructed signal (zero mean)
        """
        coefficients = np.asarray(coefficients)
        if coefficients.shape != wavelet_map.shape:
            raise ValueError(
                f"Coefficient shape {coefficients.shape} does not match map shape {wavelet_map.shape}"
            )
        weights = 1.0 / np.sqrt(wavelet_map.scales)

        daughters, _, _ = wave_bases(wavelet_map.mother, wavelet_map.k, wavelet_map.scales, wavelet_map.param)
        # Transform of a unit impulse, read at the impulse position
        delta_response = np.real(np.mean(daughters, axis=1))
        normalization = np.sum(delta_response * weights)

        return np.sum(np.real(coefficients) * weights[:, np.newaxis], axis=0) / normalization


def cwt(signal: np.ndarray, dt: float = 1.0, mother: str = DEFAULT_WAVELET, **kwargs) -> WaveletMap:
    """Convenience function for a forward transform."""
    return ContinuousWaveletTransform(mother, **kwargs).forward(signal, dt)


def icwt(wavelet_map: WaveletMap, coefficients: Optional[np.ndarray] = None) -> np.ndarray:
    """Convenience function for the inverse of a forward transform."""
    transform = ContinuousWaveletTransform(
        wavelet_map.mother, wavelet_map.param,
        n_scales=wavelet_map.scales.size - 1,
    )
    if coefficients is None:
        coefficients = wavelet_map.coefficients
    return transform.inverse(coefficients, wavelet_map)
