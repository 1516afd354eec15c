"""
Channel Calibration

Converts raw voltage blocks to pressure using one Pa/V factor per pressure
channel and splits the calibrated array into pressure and trigger parts.

The trigger channel always keeps factor 1 (raw volts); channels outside
the pressure and trigger groups are passed through unscaled.

Usage:
    calibrator = Calibrator(config.acquisition)
    calibrated = calibrator.calibrate(raw, factors)      # factors: {channel: Pa/V}
    pressure, trigger = calibrator.split(calibrated)
"""

import numpy as np
from typing import Mapping, Tuple, Optional

from ..config.settings import AcquisitionConfig
from ..errors import MissingCalibrationError


class Calibrator:
    """
    Apply per-channel calibration factors to Points x Channels x Blocks data.

    Holds no per-file state; factors are supplied on every call.
    """

    def __init__(self, acquisition: Optional[AcquisitionConfig] = None):
        self.acquisition = acquisition or AcquisitionConfig()

    def factor_vector(self, factors: Mapping[int, float], n_channels: int) -> np.ndarray:
        """
        Build the full per-channel factor vector.

        Args:
            factors: Pa/V factor for each pressure channel
            n_channels: Channel count of the raw array

        Returns:
            Factor per channel (1 for trigger and unused channels)

        Raises:
            MissingCalibrationError: if a pressure channel lacks a valid factor
        """
        cal = np.ones(n_channels)
        for ch in self.acquisition.pressure_channels:
            if ch not in factors:
                raise MissingCalibrationError(ch)
            value = float(factors[ch])
            if not np.isfinite(value) or value <= 0:
                raise MissingCalibrationError(ch, reason=f'invalid factor {value!r}')
            cal[ch] = value
        cal[self.acquisition.trigger_channel] = 1.0
        return cal

    def calibrate(self, raw: np.ndarray, factors: Mapping[int, float]) -> np.ndarray:
        """
        Convert raw volts to physical units.

        Args:
            raw: Raw samples, shape (samples_per_block, channels, blocks)
            factors: Pa/V factor for each pressure channel

        Returns:
            Calibrated array, same shape: out[:, ch, :] = raw[:, ch, :] * factor[ch]
        """
        raw = np.asarray(raw, dtype=float)
        if raw.ndim != 3:
            raise ValueError(f"Raw data must be (samples, channels, blocks), got shape {raw.shape}")
        if raw.shape[1] < self.acquisition.n_channels:
            raise ValueError(
                f"Raw data has {raw.shape[1]} channels, configuration needs {self.acquisition.n_channels}"
            )
        cal = self.factor_vector(factors, raw.shape[1])
        return raw * cal[np.newaxis, :, np.newaxis]

    def split(self, calibrated: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Separate pressure channels from the trigger.

        Args:
            calibrated: Calibrated array, shape (samples_per_block, channels, blocks)

        Returns:
            (pressure, trigger): pressure has farfield then nearfield channels,
            shape (samples, channels, blocks), sign-inverted when configured;
            trigger has shape (samples, blocks)
        """
        pressure = calibrated[:, list(self.acquisition.pressure_channels), :]
        if self.acquisition.invert_pressure:
            pressure = -pressure
        trigger = calibrated[:, self.acquisition.trigger_channel, :]
        return pressure, trigger
