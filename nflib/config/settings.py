"""
Processing Configuration

Immutable configuration values passed to every processing component at
construction. Built from the merged YAML dictionary produced by
ConfigLoader; never mutated afterwards (use with_overrides for variants).
"""

import math
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional, Tuple

from ..errors import ConfigError


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section


def _build(cls, values: Dict[str, Any], name: str):
    known = set(cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {sorted(unknown)}")
    try:
        return cls(**values)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid '{name}' configuration: {e}") from e


@dataclass(frozen=True)
class AcquisitionConfig:
    """DAQ layout of one raw file."""
    block_size: int = 81920                       # Samples per block
    n_blocks: Optional[int] = 10                  # Blocks per file (None = all)
    sample_rate: float = 200000.0                 # Hz
    farfield_channels: Tuple[int, ...] = (0, 1, 2)
    trigger_channel: int = 3
    nearfield_channels: Tuple[int, ...] = (4, 5, 6)
    invert_pressure: bool = True
    dtype: str = '<f4'

    def __post_init__(self):
        object.__setattr__(self, 'farfield_channels', tuple(int(c) for c in self.farfield_channels))
        object.__setattr__(self, 'nearfield_channels', tuple(int(c) for c in self.nearfield_channels))
        if self.block_size <= 0:
            raise ValueError("block_size must be positive")
        if self.n_blocks is not None and self.n_blocks <= 0:
            raise ValueError("n_blocks must be positive or null")
        if not (math.isfinite(self.sample_rate) and self.sample_rate > 0):
            raise ValueError("sample_rate must be positive and finite")
        channels = list(self.pressure_channels) + [self.trigger_channel]
        if len(set(channels)) != len(channels):
            raise ValueError("farfield, nearfield and trigger channels must be distinct")
        if min(channels) < 0:
            raise ValueError("channel indices must be non-negative")
        if not self.pressure_channels:
            raise ValueError("at least one pressure channel is required")

    @property
    def pressure_channels(self) -> Tuple[int, ...]:
        """Farfield channels followed by nearfield channels."""
        return self.farfield_channels + self.nearfield_channels

    @property
    def n_channels(self) -> int:
        """Total channel count of a raw file."""
        return max(self.pressure_channels + (self.trigger_channel,)) + 1

    @property
    def sample_interval(self) -> float:
        return 1.0 / self.sample_rate


@dataclass(frozen=True)
class GeometryConfig:
    """Nozzle, ambient and microphone-array geometry."""
    nozzle_diameter: float = 0.0254     # m
    ambient_temperature: float = 26.1   # deg C
    mic_spacing: float = 1.0            # x/D between nearfield microphones
    farfield_radii: Tuple[float, ...] = (2.57, 3.68, 3.15)

    def __post_init__(self):
        object.__setattr__(self, 'farfield_radii', tuple(float(r) for r in self.farfield_radii))
        if not (math.isfinite(self.nozzle_diameter) and self.nozzle_diameter > 0):
            raise ValueError("nozzle_diameter must be positive and finite")
        if not all(math.isfinite(r) and r > 0 for r in self.farfield_radii):
            raise ValueError("farfield_radii must be positive and finite")


@dataclass(frozen=True)
class DetectionConfig:
    """Actuation-event detection constants."""
    alpha_fraction: float = 0.05
    peak_depth_fraction: float = 0.5
    min_peak_distance: int = 2
    min_event_index: float = 0.5

    def __post_init__(self):
        if not 0 < self.alpha_fraction < 1:
            raise ValueError("alpha_fraction must lie in (0, 1)")
        if self.min_peak_distance < 1:
            raise ValueError("min_peak_distance must be at least 1")


@dataclass(frozen=True)
class WaveletConfig:
    """Continuous wavelet transform setup."""
    mother: str = 'paul'
    param: float = 4
    n_scales: int = 400
    scale_span: float = 1.5

    def __post_init__(self):
        from ..waveletProc.cwt import WAVELETS
        object.__setattr__(self, 'mother', str(self.mother).lower())
        if self.mother not in WAVELETS:
            raise ValueError(f"Unknown mother wavelet: {self.mother}. Available: {list(WAVELETS)}")
        if self.n_scales < 1:
            raise ValueError("n_scales must be at least 1")
        if self.scale_span <= 0:
            raise ValueError("scale_span must be positive")


@dataclass(frozen=True)
class SelfNoiseConfig:
    """Self-noise region detection and smoothing widths."""
    search_half_width: int = 20
    hard_wavelet_half_width: int = 15
    soft_wavelet_half_width: int = 7
    hard_temporal_half_width: int = 15
    soft_temporal_half_width: int = 5
    significance_sigma: float = 1.0
    degenerate_rtol: float = 1e-9

    def __post_init__(self):
        for name in ('search_half_width', 'hard_wavelet_half_width', 'soft_wavelet_half_width',
                     'hard_temporal_half_width', 'soft_temporal_half_width'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")


@dataclass(frozen=True)
class ProcessingConfig:
    """Complete, immutable processing configuration."""
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    wavelet: WaveletConfig = field(default_factory=WaveletConfig)
    self_noise: SelfNoiseConfig = field(default_factory=SelfNoiseConfig)

    def __post_init__(self):
        n_ff = len(self.acquisition.farfield_channels)
        if len(self.geometry.farfield_radii) != n_ff:
            raise ConfigError(
                f"geometry.farfield_radii has {len(self.geometry.farfield_radii)} entries "
                f"for {n_ff} farfield channels"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessingConfig':
        """Build a config from a (merged) YAML dictionary."""
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown config sections: {sorted(unknown)}")
        return cls(
            acquisition=_build(AcquisitionConfig, _section(data, 'acquisition'), 'acquisition'),
            geometry=_build(GeometryConfig, _section(data, 'geometry'), 'geometry'),
            detection=_build(DetectionConfig, _section(data, 'detection'), 'detection'),
            wavelet=_build(WaveletConfig, _section(data, 'wavelet'), 'wavelet'),
            self_noise=_build(SelfNoiseConfig, _section(data, 'self_noise'), 'self_noise'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain nested dictionaries (tuples become lists)."""
        def _plain(value):
            if isinstance(value, dict):
                return {k: _plain(v) for k, v in value.items()}
            if isinstance(value, tuple):
                return [_plain(v) for v in value]
            return value
        return _plain(asdict(self))

    def with_overrides(self, overrides: Dict[str, Any]) -> 'ProcessingConfig':
        """Return a new config with nested overrides applied."""
        merged = self.to_dict()
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section] = {**merged[section], **values}
            else:
                merged[section] = values
        return ProcessingConfig.from_dict(merged)
