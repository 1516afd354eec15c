"""Unit tests for raw block loading and filename metadata."""
from __future__ import annotations

import logging

import numpy as np
import pytest

from nflib.config import ProcessingConfig
from nflib.errors import MetadataError, RawDataError
from nflib.loaders import (
    PhysicalParameters,
    RawLoader,
    channel_gains,
    load_raw_blocks,
    parse_filename,
    read_physical_parameters,
)
from tests.fixtures.signal_generators import write_raw_file


NAME = 'M0.90_T25_x4_r1.5_a8_mVf1_mV3.bin'


class TestRawLoader:

    def test_column_major_reshape(self, tmp_path):
        raw = np.arange(6 * 3 * 2, dtype=np.float32).reshape((6, 3, 2), order='F')
        path = tmp_path / 'run.bin'
        write_raw_file(path, raw)

        loaded = load_raw_blocks(path, block_size=6, n_channels=3)
        assert loaded.shape == (6, 3, 2)
        np.testing.assert_array_equal(loaded, raw)
        # First block_size samples on disk are channel 0 of block 0
        np.testing.assert_array_equal(loaded[:, 0, 0], np.arange(6))

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.bin'
        path.write_bytes(b'')
        with pytest.raises(RawDataError):
            load_raw_blocks(path, 6, 3)

    def test_partial_block(self, tmp_path):
        path = tmp_path / 'partial.bin'
        np.zeros(6 * 3 + 5, dtype='<f4').tofile(str(path))
        with pytest.raises(RawDataError):
            load_raw_blocks(path, 6, 3)

    def test_too_few_blocks(self, tmp_path):
        path = tmp_path / 'short.bin'
        np.zeros(6 * 3 * 2, dtype='<f4').tofile(str(path))
        with pytest.raises(RawDataError):
            load_raw_blocks(path, 6, 3, n_blocks=3)

    def test_extra_blocks_truncated(self, tmp_path, caplog):
        path = tmp_path / 'long.bin'
        raw = np.random.default_rng(0).normal(size=(6, 3, 4)).astype(np.float32)
        write_raw_file(path, raw)

        with caplog.at_level(logging.WARNING, logger='nflib.loaders'):
            loaded = load_raw_blocks(path, 6, 3, n_blocks=2)
        assert loaded.shape == (6, 3, 2)
        np.testing.assert_array_equal(loaded, raw[:, :, :2])
        assert caplog.records

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_raw_blocks(tmp_path / 'nope.bin', 6, 3)

    def test_from_config(self, tmp_path, small_config):
        acq = small_config.acquisition
        loader = RawLoader.from_config(tmp_path / 'x.bin', acq)
        assert loader.block_size == acq.block_size
        assert loader.n_channels == 3
        assert loader.n_blocks == acq.n_blocks


class TestParseFilename:

    def test_tokens(self):
        meta = parse_filename(NAME)
        assert meta == {'M': 0.9, 'T': 25.0, 'x': 4.0, 'r': 1.5, 'a': 8.0, 'mVf': 1.0, 'mV': 3.0}

    def test_path_and_extra_tokens(self, tmp_path):
        meta = parse_filename(tmp_path / 'M0.5_T30_x2_r1_a0_mVf1_mVu3.16_mVd1_F1500_run.dat')
        assert meta['mVu'] == 3.16
        assert meta['mVd'] == 1.0
        assert meta['F'] == 1500.0
        assert 'run' not in meta

    def test_numeric_last_token_without_extension(self):
        meta = parse_filename('M0.5_T30_x2_r1_a0_mVf1_mV3.16')
        assert meta['mV'] == 3.16

    @pytest.mark.parametrize('name', [
        'T25_x4_r1.5_a8_mVf1_mV3.bin',
        'M0.9_T25_x4_r1.5_a8_mV3.bin',
        'M0.9_T25_x4_r1.5_a8_mVf1.bin',
        'M0.9_T25_x4_r1.5_a8_mVf1_mVu3.bin',
    ])
    def test_missing_required_keys(self, name):
        with pytest.raises(MetadataError):
            parse_filename(name)


class TestPhysicalParameters:

    def test_jet_properties(self, default_config):
        phys = read_physical_parameters(NAME, default_config)

        to = 25.0 + 273.15
        te = to / (1 + 0.9 ** 2 / 5)
        ambient = 26.1 + 273.15
        ue = 0.9 * np.sqrt(1.4 * 287.05 * te)
        a = np.sqrt(1.4 * 287.05 * ambient)

        assert phys.exit_temperature == pytest.approx(te)
        assert phys.temperature_ratio == pytest.approx(to / ambient)
        assert phys.exit_velocity == pytest.approx(ue)
        assert phys.acoustic_mach == pytest.approx(0.9 * np.sqrt(te / ambient))
        assert phys.sound_speed == pytest.approx(a)
        assert phys.jet_sound_speed == pytest.approx(ue / 0.9)
        assert phys.convective_velocity == pytest.approx(ue * a / (a + ue / 0.9))

    def test_microphone_geometry(self, default_config):
        phys = read_physical_parameters(NAME, default_config)
        angle = np.deg2rad(8.0)
        x = 4.0 + np.arange(3) * np.cos(angle)
        y = 1.5 + (x - 4.0) * np.tan(angle)

        np.testing.assert_allclose(phys.x, x)
        np.testing.assert_allclose(phys.y, y)
        np.testing.assert_allclose(phys.radius[:3], [2.57, 3.68, 3.15])
        np.testing.assert_allclose(phys.radius[3:], np.sqrt(x ** 2 + y ** 2) * 0.0254)

    def test_arrival_indices(self, default_config):
        phys = read_physical_parameters(NAME, default_config)
        expected = np.floor(phys.radius / phys.sound_speed * 200000.0 + 0.5)

        assert phys.arrival_index.shape == (6,)
        assert phys.arrival_index.dtype.kind == 'i'
        np.testing.assert_array_equal(phys.arrival_index, expected)
        np.testing.assert_allclose(phys.convective_time, phys.radius / phys.convective_velocity)

    def test_gains_per_channel(self, default_config):
        phys = read_physical_parameters(NAME, default_config)
        assert phys.gain == {0: 1.0, 1: 1.0, 2: 1.0, 3: 0.0, 4: 3.0, 5: 3.0, 6: 3.0}

    def test_split_nearfield_gain(self):
        config = ProcessingConfig().with_overrides({'acquisition': {'nearfield_channels': [4, 5, 6, 7]}})
        gains = channel_gains({'mVf': 1.0, 'mVu': 3.16, 'mVd': 10.0}, config.acquisition)
        assert [gains[ch] for ch in (4, 5, 6, 7)] == [3.16, 3.16, 10.0, 10.0]

    def test_to_dict(self, default_config):
        data = PhysicalParameters.from_metadata(parse_filename(NAME), default_config).to_dict()
        assert set(['M', 'TTR', 'Ue', 'Uc', 'r', 'i_a', 't_a', 'gain']) <= set(data)
        np.testing.assert_array_equal(data['gain'], [1, 1, 1, 0, 3, 3, 3])
