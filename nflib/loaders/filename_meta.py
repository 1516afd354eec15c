"""
Filename Metadata and Physical Parameters

Run conditions are encoded in the raw file name as '_'-separated tokens of
the form <key><number>, for example

    M0.90_T25_x4_r1.5_a8_mVf1_mV3.bin

Required keys:
- M:   jet Mach number
- T:   total temperature (deg C)
- x:   axial station of the first nearfield microphone (x/D)
- r:   radial station of the first nearfield microphone (r/D)
- a:   nearfield array angle (degrees)
- mVf: farfield conditioner gain (mV/Pa)
- mV, or mVu and mVd: nearfield gain (mVu/mVd split over the array halves)

From these and the geometry configuration the jet/ambient properties and
the acoustic/convective arrival indices per pressure channel are derived.

Usage:
    meta = parse_filename('M0.90_T25_x4_r1.5_a8_mVf1_mV3.bin')
    phys = PhysicalParameters.from_metadata(meta, config)
    phys.arrival_index      # acoustic arrival index per pressure channel
"""

import re
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Union

from ..errors import MetadataError
from ..utils import round_half_up

GAMMA = 1.4
GAS_CONSTANT = 287.05   # J/(kg K), dry air
KELVIN = 273.15

REQUIRED_KEYS = ('M', 'T', 'x', 'r', 'a', 'mVf')

TOKEN_PATTERN = re.compile(r'^([A-Za-z]+)([-+]?\d+(?:\.\d*)?(?:[eE][-+]?\d+)?)$')


def _strip_extension(filename: str) -> str:
    name = Path(filename).name
    suffix = Path(name).suffix
    # A numeric suffix belongs to the last token ("..._mV3.16")
    if suffix and '_' not in suffix and not re.fullmatch(r'\.\d+', suffix):
        return name[:-len(suffix)]
    return name


def parse_filename(filename: Union[str, Path]) -> Dict[str, float]:
    """
    Parse <key><number> tokens from a file name.

    Tokens that do not follow the pattern are ignored. Keys are case
    sensitive ('M' is Mach number, 'mV' a gain).

    Args:
        filename: File name or path (extension optional)

    Returns:
        {key: value}

    Raises:
        MetadataError: if a required key is missing
    """
    stem = _strip_extension(str(filename))
    values = {}
    for token in stem.split('_'):
        match = TOKEN_PATTERN.match(token)
        if match:
            values[match.group(1)] = float(match.group(2))

    missing = [k for k in REQUIRED_KEYS if k not in values]
    if 'mV' not in values and not ('mVu' in values and 'mVd' in values):
        missing.append('mV (or mVu and mVd)')
    if missing:
        raise MetadataError(f"{Path(str(filename)).name}: missing run parameters {missing}")

    return values


@dataclass
class PhysicalParameters:
    """Jet operating conditions and arrival times for one file."""
    mach: float                     # Jet Mach number
    total_temperature: float        # deg C
    temperature_ratio: float        # To / T_ambient
    exit_temperature: float         # K
    exit_velocity: float            # m/s
    acoustic_mach: float            # Ue / a_ambient
    sound_speed: float              # ambient speed of sound, m/s
    jet_sound_speed: float          # Ue / M, m/s
    convective_velocity: float      # m/s
    x: np.ndarray                   # nearfield axial stations (x/D)
    y: np.ndarray                   # nearfield radial stations (r/D)
    radius: np.ndarray              # distance per pressure channel, m
    convective_time: np.ndarray     # s
    convective_index: np.ndarray    # samples
    acoustic_time: np.ndarray       # s
    arrival_index: np.ndarray       # acoustic arrival, samples
    gain: Dict[int, float]          # conditioner gain per raw channel (0 = trigger)
    extra: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_metadata(cls, meta: Dict[str, float], config) -> 'PhysicalParameters':
        """
        Derive physical parameters from parsed filename metadata.

        Args:
            meta: Output of parse_filename
            config: ProcessingConfig supplying geometry and channel layout

        Returns:
            PhysicalParameters
        """
        acq = config.acquisition
        geo = config.geometry

        M = meta['M']
        T = meta['T']
        angle = np.deg2rad(meta['a'])
        ambient = geo.ambient_temperature + KELVIN

        To = T + KELVIN
        Te = To / (1 + M ** 2 / 5)
        ttr = To / ambient
        Ue = M * np.sqrt(GAMMA * GAS_CONSTANT * Te)
        Ma = M * np.sqrt(Te / ambient)
        a = np.sqrt(GAMMA * GAS_CONSTANT * ambient)
        c = Ue / M if M else 0.0
        Uc = Ue * a / (a + c)

        n_nf = len(acq.nearfield_channels)
        x = meta['x'] + np.arange(n_nf) * geo.mic_spacing * np.cos(angle)
        y = meta['r'] + (x - meta['x']) * np.tan(angle)
        radius = np.concatenate([
            np.asarray(geo.farfield_radii, dtype=float),
            np.sqrt(x ** 2 + y ** 2) * geo.nozzle_diameter,
        ])

        fs = acq.sample_rate
        with np.errstate(divide='ignore'):
            t_c = radius / Uc
        t_a = radius / a

        known = set(REQUIRED_KEYS) | {'mV', 'mVu', 'mVd'}
        return cls(
            mach=M,
            total_temperature=T,
            temperature_ratio=ttr,
            exit_temperature=Te,
            exit_velocity=Ue,
            acoustic_mach=Ma,
            sound_speed=a,
            jet_sound_speed=c,
            convective_velocity=Uc,
            x=x,
            y=y,
            radius=radius,
            convective_time=t_c,
            convective_index=round_half_up(t_c * fs),
            acoustic_time=t_a,
            arrival_index=round_half_up(t_a * fs).astype(int),
            gain=channel_gains(meta, acq),
            extra={k: v for k, v in meta.items() if k not in known},
        )

    def to_dict(self) -> dict:
        """Flat dictionary for persistence (MATLAB struct fields)."""
        return {
            'M': self.mach,
            'T': self.total_temperature,
            'TTR': self.temperature_ratio,
            'Te': self.exit_temperature,
            'Ue': self.exit_velocity,
            'Ma': self.acoustic_mach,
            'a': self.sound_speed,
            'c': self.jet_sound_speed,
            'Uc': self.convective_velocity,
            'x': self.x,
            'y': self.y,
            'r': self.radius,
            't_c': self.convective_time,
            'i_c': self.convective_index,
            't_a': self.acoustic_time,
            'i_a': self.arrival_index,
            'gain': np.array([self.gain[ch] for ch in sorted(self.gain)], dtype=float),
            'extra': dict(self.extra),
        }


def channel_gains(meta: Dict[str, float], acquisition) -> Dict[int, float]:
    """
    Conditioner gain per raw channel.

    Farfield channels share 'mVf'; the trigger gets 0. Nearfield channels
    use 'mV', or 'mVu' for the first half of the array and 'mVd' for the
    rest (the upstream half takes the extra microphone for odd counts).
    """
    gains = {ch: meta['mVf'] for ch in acquisition.farfield_channels}
    gains[acquisition.trigger_channel] = 0.0

    nf = acquisition.nearfield_channels
    if 'mV' in meta:
        gains.update({ch: meta['mV'] for ch in nf})
    else:
        upstream = (len(nf) + 1) // 2
        gains.update({ch: meta['mVu'] for ch in nf[:upstream]})
        gains.update({ch: meta['mVd'] for ch in nf[upstream:]})
    return gains


def read_physical_parameters(filename: Union[str, Path], config) -> PhysicalParameters:
    """
    Convenience function: parse a file name and derive its physical parameters.

    Args:
        filename: Raw file name or path
        config: ProcessingConfig

    Returns:
        PhysicalParameters
    """
    return PhysicalParameters.from_metadata(parse_filename(filename), config)
