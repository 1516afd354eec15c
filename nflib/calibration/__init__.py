"""
calibration - Microphone Calibration

Resolves per-channel Pa/V factors from calibration files and applies them
to raw acquisition blocks.

Usage:
    from nflib.calibration import CalibrationRepository, Calibrator

    repo = CalibrationRepository(cal_dir)
    factors = repo.factors_for(config.acquisition.pressure_channels, physical.gain)

    calibrator = Calibrator(config.acquisition)
    pressure, trigger = calibrator.split(calibrator.calibrate(raw, factors))
"""

from .calibrator import Calibrator
from .repository import CalibrationRepository, format_gain

__all__ = [
    'Calibrator',
    'CalibrationRepository',
    'format_gain',
]
