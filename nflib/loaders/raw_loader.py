"""
Raw Acquisition File Loader

Loads a binary DAQ recording (little-endian float32 by default) and
reshapes it to Points x Channels x Blocks. Samples are stored column-major:
all samples of channel 0 of block 0, then channel 1 of block 0, and so on.

Usage:
    loader = RawLoader('data/M0.90_T25_x4_r1.5_a8_mVf1_mV3.bin',
                       block_size=81920, n_channels=7)
    raw = loader.load()                 # (81920, 7, blocks)

    # Or from config
    raw = RawLoader.from_config(path, config.acquisition).load()
"""

import logging
import numpy as np
from pathlib import Path
from typing import Optional, Union

from ..errors import RawDataError

logger = logging.getLogger(__name__)


class RawLoader:
    """
    Loader for raw multichannel block recordings.

    Attributes:
        filepath: Path to the raw file
        block_size: Samples per block and channel
        n_channels: Channels interleaved in each block
        dtype: numpy dtype string of the stored samples
        n_blocks: Expected block count (None = use every block in the file)
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        block_size: int,
        n_channels: int,
        dtype: str = '<f4',
        n_blocks: Optional[int] = None,
    ):
        self.filepath = Path(filepath)
        self.block_size = int(block_size)
        self.n_channels = int(n_channels)
        self.dtype = np.dtype(dtype)
        self.n_blocks = n_blocks

        if self.block_size <= 0 or self.n_channels <= 0:
            raise ValueError("block_size and n_channels must be positive")

    @classmethod
    def from_config(cls, filepath: Union[str, Path], acquisition) -> 'RawLoader':
        """Create a loader from an AcquisitionConfig."""
        return cls(
            filepath,
            block_size=acquisition.block_size,
            n_channels=acquisition.n_channels,
            dtype=acquisition.dtype,
            n_blocks=acquisition.n_blocks,
        )

    def load(self) -> np.ndarray:
        """
        Read and reshape the file.

        Returns:
            Float array of shape (block_size, n_channels, blocks)

        Raises:
            RawDataError: empty file, size not a whole number of blocks,
                or fewer blocks than n_blocks
        """
        samples = np.fromfile(str(self.filepath), dtype=self.dtype)
        if samples.size == 0:
            raise RawDataError(f"{self.filepath.name}: file is empty")

        per_block = self.block_size * self.n_channels
        if samples.size % per_block:
            raise RawDataError(
                f"{self.filepath.name}: {samples.size} samples is not a multiple of "
                f"{self.block_size} x {self.n_channels}"
            )

        raw = samples.reshape((self.block_size, self.n_channels, -1), order='F')
        blocks = raw.shape[2]

        if self.n_blocks is not None:
            if blocks < self.n_blocks:
                raise RawDataError(
                    f"{self.filepath.name}: {blocks} blocks found, {self.n_blocks} expected"
                )
            if blocks > self.n_blocks:
                logger.warning("%s: %d blocks found, using the first %d",
                               self.filepath.name, blocks, self.n_blocks)
                raw = raw[:, :, :self.n_blocks]

        logger.debug("%s: loaded %s", self.filepath.name, raw.shape)
        return raw.astype(float)


def load_raw_blocks(
    filepath: Union[str, Path],
    block_size: int,
    n_channels: int,
    dtype: str = '<f4',
    n_blocks: Optional[int] = None,
) -> np.ndarray:
    """
    Convenience function to load a raw block recording.

    Args:
        filepath: Path to the raw file
        block_size: Samples per block and channel
        n_channels: Channels per block
        dtype: Stored sample type
        n_blocks: Expected block count (None = all)

    Returns:
        Array of shape (block_size, n_channels, blocks)
    """
    return RawLoader(filepath, block_size, n_channels, dtype=dtype, n_blocks=n_blocks).load()
