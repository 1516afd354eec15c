"""
Error Types for Nearfield Processing

All errors raised by nflib derive from NFError so that a batch run can
isolate a failing file without swallowing unrelated exceptions.

File-fatal errors (abort the current file, batch continues):
- MissingCalibrationError: no calibration factor resolvable for a channel
- NoPeriodEstimateError: actuation detection failed on every block
- InsufficientCyclesError: no block holds a complete averaging window
- RawDataError: raw file cannot be reshaped into blocks
- MetadataError: filename does not carry the required run parameters

Batch-fatal:
- ConfigError: invalid processing configuration
"""


class NFError(Exception):
    """Base class for all nflib processing errors."""


class ConfigError(NFError):
    """Invalid or inconsistent processing configuration."""


class RawDataError(NFError):
    """Raw acquisition file could not be read into blocks."""


class MetadataError(NFError):
    """Required run parameters missing from a filename."""


class MissingCalibrationError(NFError):
    """No calibration factor could be resolved for a channel."""

    def __init__(self, channel: int, gain=None, reason: str = 'no calibration file found'):
        self.channel = channel
        self.gain = gain
        self.reason = reason
        detail = f"channel {channel}"
        if gain is not None:
            detail += f" (gain {gain:g} mV/Pa)"
        super().__init__(f"Missing calibration for {detail}: {reason}")


class NoPeriodEstimateError(NFError):
    """No block produced a usable actuation period estimate."""


class InsufficientCyclesError(NFError):
    """No block contained a complete actuation cycle to average."""
