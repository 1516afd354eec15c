"""
loaders - Raw Data and Run Metadata

Usage:
    from nflib.loaders import RawLoader, read_physical_parameters

    raw = RawLoader.from_config(path, config.acquisition).load()
    phys = read_physical_parameters(path, config)
"""

from .raw_loader import RawLoader, load_raw_blocks
from .filename_meta import (
    PhysicalParameters,
    parse_filename,
    channel_gains,
    read_physical_parameters,
)

__all__ = [
    'RawLoader',
    'load_raw_blocks',
    'PhysicalParameters',
    'parse_filename',
    'channel_gains',
    'read_physical_parameters',
]
