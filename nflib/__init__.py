"""
nflib - Nearfield Acoustic Processing Library

Phase-averaging and self-noise filtering of actuated jet acoustic
recordings (nearfield and farfield microphones with a trigger channel).

Modules:
- config: YAML-backed immutable processing configuration
- loaders: raw block files and run metadata from file names
- calibration: per-channel Pa/V factors
- triggerProc: sub-sample actuation event detection
- syncAvg: phase-locked averaging
- waveletProc: CWT and wavelet-domain self-noise suppression
- pipeline: batch processing and persistence

Usage:
    from nflib import process_files
    batch = process_files(src_dir, flist, out_dir, 'run42', cal_dir)
"""

__version__ = "0.1.0"

from .errors import (
    NFError,
    ConfigError,
    RawDataError,
    MetadataError,
    MissingCalibrationError,
    NoPeriodEstimateError,
    InsufficientCyclesError,
)
from .config import ProcessingConfig, get_processing_config
from .triggerProc import ActuationDetector
from .syncAvg import PhaseAverager
from .waveletProc import SelfNoiseFilter, ContinuousWaveletTransform
from .calibration import Calibrator, CalibrationRepository
from .pipeline import process_file, process_files

__all__ = [
    'NFError',
    'ConfigError',
    'RawDataError',
    'MetadataError',
    'MissingCalibrationError',
    'NoPeriodEstimateError',
    'InsufficientCyclesError',
    'ProcessingConfig',
    'get_processing_config',
    'ActuationDetector',
    'PhaseAverager',
    'SelfNoiseFilter',
    'ContinuousWaveletTransform',
    'Calibrator',
    'CalibrationRepository',
    'process_file',
    'process_files',
]
