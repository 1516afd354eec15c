"""
Calibration File Repository

Resolves microphone calibration factors (Pa/V) from a directory of MATLAB
calibration files. File names follow

    CAL<anything>Ch<n><anything>mVPa<gain><anything>.mat

where <n> is the 1-based DAQ channel number and <gain> the conditioner
gain setting in mV/Pa. Each file holds the factor in variable 'PaV'.
Both classic MATLAB files and v7.3 (HDF5) files are read.

Usage:
    repo = CalibrationRepository('calibrations/')
    factor = repo.resolve(channel=0, gain=3.16)
    factors = repo.factors_for([0, 1, 2], gains)
"""

import logging
import re
import numpy as np
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Tuple, Union
import scipy.io as sio
from scipy.io.matlab import MatReadError
import h5py

from ..errors import MissingCalibrationError

logger = logging.getLogger(__name__)


def format_gain(gain: float) -> str:
    """Gain as written in calibration file names (3.0 -> '3', 3.16 -> '3.16')."""
    return f"{float(gain):g}"


def read_mat_variables(filepath: Path) -> Dict[str, np.ndarray]:
    """Top-level variables of a .mat file."""
    try:
        return sio.loadmat(str(filepath), squeeze_me=True)
    except NotImplementedError:
        # v7.3 files are HDF5 format
        with h5py.File(str(filepath), 'r') as f:
            return {key: f[key][()] for key in f.keys() if isinstance(f[key], h5py.Dataset)}


class CalibrationRepository:
    """
    Lookup of per-channel calibration factors.

    Attributes:
        cal_dir: Directory holding the calibration .mat files
        variable: Name of the factor variable inside each file
    """

    def __init__(self, cal_dir: Union[str, Path], variable: str = 'PaV'):
        self.cal_dir = Path(cal_dir)
        self.variable = variable
        self._cache: Dict[Tuple[int, str], float] = {}

    def _pattern(self, channel: int, gain: float) -> re.Pattern:
        number = channel + 1
        gain_text = re.escape(format_gain(gain))
        return re.compile(
            rf"^CAL.*Ch{number}(?!\d).*mVPa{gain_text}(?!\d)(?!\.\d).*\.mat$"
        )

    def find_files(self, channel: int, gain: float) -> List[Path]:
        """
        Calibration files matching a channel and gain, sorted by name.

        Args:
            channel: 0-based channel index
            gain: Gain setting in mV/Pa
        """
        if not self.cal_dir.is_dir():
            return []
        pattern = self._pattern(channel, gain)
        return sorted(p for p in self.cal_dir.iterdir() if p.is_file() and pattern.match(p.name))

    def resolve(self, channel: int, gain: float) -> float:
        """
        Calibration factor for one channel.

        Args:
            channel: 0-based channel index
            gain: Gain setting in mV/Pa

        Returns:
            Factor in Pa/V

        Raises:
            MissingCalibrationError: if no usable file exists
        """
        key = (channel, format_gain(gain))
        if key in self._cache:
            return self._cache[key]

        files = self.find_files(channel, gain)
        if not files:
            logger.warning("No calibration file for channel %d at %s mV/Pa in %s", channel, key[1], self.cal_dir)
            raise MissingCalibrationError(channel, gain)
        if len(files) > 1:
            logger.debug("Channel %d: %d calibration files, using %s", channel, len(files), files[0].name)

        try:
            data = read_mat_variables(files[0])
        except (MatReadError, ValueError, OSError) as e:
            raise MissingCalibrationError(channel, gain, reason=f"unreadable {files[0].name}: {e}") from e
        if self.variable not in data:
            raise MissingCalibrationError(channel, gain, reason=f"'{self.variable}' not in {files[0].name}")

        factor = float(np.asarray(data[self.variable]).ravel()[0])
        if not np.isfinite(factor) or factor <= 0:
            raise MissingCalibrationError(channel, gain, reason=f'invalid factor {factor!r} in {files[0].name}')

        self._cache[key] = factor
        return factor

    def factors_for(self, channels: Iterable[int], gains: Mapping[int, float]) -> Dict[int, float]:
        """
        Calibration factors for several channels.

        Args:
            channels: 0-based channel indices
            gains: Gain setting per channel

        Returns:
            {channel: factor}
        """
        factors = {}
        for ch in channels:
            if ch not in gains:
                raise MissingCalibrationError(ch, reason='no gain setting for channel')
            factors[ch] = self.resolve(ch, gains[ch])
        return factors
