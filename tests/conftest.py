from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from nflib.config import ProcessingConfig  # noqa: E402


@pytest.fixture
def default_config() -> ProcessingConfig:
    """Dataclass defaults (same values as defaults/processing.yaml)."""
    return ProcessingConfig()


@pytest.fixture
def small_config() -> ProcessingConfig:
    """Short blocks and one nearfield microphone for fast end-to-end runs."""
    return ProcessingConfig().with_overrides({
        'acquisition': {
            'block_size': 4096,
            'n_blocks': 3,
            'farfield_channels': [0],
            'trigger_channel': 1,
            'nearfield_channels': [2],
        },
        'geometry': {'farfield_radii': [2.57]},
    })
