"""
nflib.config - Configuration Management

Manages configuration for nearfield processing:
- DAQ layout (block size, sample rate, channel groups)
- Nozzle and microphone geometry
- Actuation detection constants
- Wavelet setup and self-noise smoothing widths

Configuration files are in YAML format under nflib/config/defaults/.
Local overrides can be placed in nflib/config/local/ (gitignored).

Usage:
    from nflib.config import get_processing_config

    config = get_processing_config()
    config.acquisition.sample_rate
"""

from .loader import (
    ConfigLoader,
    get_config,
    get_processing,
    get_processing_config,
)
from .settings import (
    ProcessingConfig,
    AcquisitionConfig,
    GeometryConfig,
    DetectionConfig,
    WaveletConfig,
    SelfNoiseConfig,
)

__all__ = [
    'ConfigLoader',
    'get_config',
    'get_processing',
    'get_processing_config',
    'ProcessingConfig',
    'AcquisitionConfig',
    'GeometryConfig',
    'DetectionConfig',
    'WaveletConfig',
    'SelfNoiseConfig',
]
