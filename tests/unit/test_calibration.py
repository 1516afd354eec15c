"""Unit tests for calibration file lookup and channel calibration."""
from __future__ import annotations

import h5py
import numpy as np
import pytest
import scipy.io as sio

from nflib.calibration import CalibrationRepository, Calibrator, format_gain
from nflib.config import AcquisitionConfig
from nflib.errors import MissingCalibrationError


def write_cal(directory, name: str, factor: float) -> None:
    sio.savemat(str(directory / name), {'PaV': np.array([[factor]])})


@pytest.fixture
def cal_dir(tmp_path):
    write_cal(tmp_path, 'CAL_2023_Ch1_mVPa3.16_a.mat', 101.0)
    write_cal(tmp_path, 'CAL_2023_Ch10_mVPa3.16_a.mat', 110.0)
    write_cal(tmp_path, 'CAL_2023_Ch2_mVPa1_a.mat', 102.0)
    write_cal(tmp_path, 'CAL_2023_Ch2_mVPa10_a.mat', 902.0)
    write_cal(tmp_path, 'CAL_2023_Ch3_mVPa1.5_a.mat', 103.0)
    return tmp_path


class TestRepository:

    def test_channel_numbers_are_one_based(self, cal_dir):
        repo = CalibrationRepository(cal_dir)
        assert repo.resolve(0, 3.16) == pytest.approx(101.0)
        assert repo.resolve(9, 3.16) == pytest.approx(110.0)

    def test_channel_token_matched_exactly(self, cal_dir):
        files = CalibrationRepository(cal_dir).find_files(0, 3.16)
        assert [f.name for f in files] == ['CAL_2023_Ch1_mVPa3.16_a.mat']

    def test_gain_token_matched_exactly(self, cal_dir):
        repo = CalibrationRepository(cal_dir)
        assert repo.resolve(1, 1.0) == pytest.approx(102.0)
        assert repo.resolve(1, 10) == pytest.approx(902.0)
        with pytest.raises(MissingCalibrationError):
            repo.resolve(2, 1.0)
        assert repo.resolve(2, 1.5) == pytest.approx(103.0)

    def test_missing_file(self, cal_dir):
        with pytest.raises(MissingCalibrationError) as info:
            CalibrationRepository(cal_dir).resolve(4, 3.16)
        assert info.value.channel == 4

    def test_missing_directory(self, tmp_path):
        with pytest.raises(MissingCalibrationError):
            CalibrationRepository(tmp_path / 'nowhere').resolve(0, 1)

    def test_invalid_factor_rejected(self, tmp_path):
        write_cal(tmp_path, 'CAL_Ch1_mVPa1.mat', -5.0)
        with pytest.raises(MissingCalibrationError):
            CalibrationRepository(tmp_path).resolve(0, 1)

    def test_missing_variable(self, tmp_path):
        sio.savemat(str(tmp_path / 'CAL_Ch1_mVPa1.mat'), {'other': 1.0})
        with pytest.raises(MissingCalibrationError):
            CalibrationRepository(tmp_path).resolve(0, 1)

    @pytest.mark.parametrize('content', [b'not a matlab file ' * 20, b''])
    def test_unreadable_file(self, tmp_path, content):
        (tmp_path / 'CAL_Ch1_mVPa1.mat').write_bytes(content)
        with pytest.raises(MissingCalibrationError) as info:
            CalibrationRepository(tmp_path).resolve(0, 1)
        assert info.value.channel == 0

    def test_hdf5_calibration_file(self, tmp_path):
        path = tmp_path / 'CAL_Ch4_mVPa1.mat'
        with h5py.File(str(path), 'w', userblock_size=512) as f:
            f.create_dataset('PaV', data=np.array([[42.0]]))
        # MATLAB v7.3 header: text, subsystem offset, version 0x0200, 'IM'
        header = b'MATLAB 7.3 MAT-file'.ljust(116, b' ') + b'\x00' * 8 + b'\x00\x02' + b'IM'
        with open(path, 'r+b') as f:
            f.write(header)

        assert CalibrationRepository(tmp_path).resolve(3, 1) == pytest.approx(42.0)

    def test_factors_cached(self, cal_dir):
        repo = CalibrationRepository(cal_dir)
        repo.resolve(0, 3.16)
        (cal_dir / 'CAL_2023_Ch1_mVPa3.16_a.mat').unlink()
        assert repo.resolve(0, 3.16) == pytest.approx(101.0)

    def test_factors_for(self, cal_dir):
        factors = CalibrationRepository(cal_dir).factors_for([0, 1], {0: 3.16, 1: 1.0, 3: 0.0})
        assert factors == pytest.approx({0: 101.0, 1: 102.0})

    def test_format_gain(self):
        assert format_gain(3.0) == '3'
        assert format_gain(3.16) == '3.16'
        assert format_gain(0.5) == '0.5'


class TestCalibrator:

    @pytest.fixture
    def acquisition(self):
        return AcquisitionConfig(
            block_size=8, farfield_channels=(0,), trigger_channel=1, nearfield_channels=(2, 3),
        )

    def test_scales_pressure_channels_only(self, acquisition):
        raw = np.ones((8, 5, 2))
        out = Calibrator(acquisition).calibrate(raw, {0: 2.0, 2: 3.0, 3: 4.0})

        np.testing.assert_allclose(out[:, 0, :], 2.0)
        np.testing.assert_allclose(out[:, 1, :], 1.0)
        np.testing.assert_allclose(out[:, 2, :], 3.0)
        np.testing.assert_allclose(out[:, 3, :], 4.0)
        np.testing.assert_allclose(out[:, 4, :], 1.0)

    def test_trigger_factor_ignored(self, acquisition):
        raw = np.ones((8, 4, 1))
        out = Calibrator(acquisition).calibrate(raw, {0: 2.0, 1: 50.0, 2: 3.0, 3: 4.0})
        np.testing.assert_allclose(out[:, 1, :], 1.0)

    @pytest.mark.parametrize('factors', [
        {0: 2.0, 2: 3.0},
        {0: 2.0, 2: 3.0, 3: 0.0},
        {0: np.nan, 2: 3.0, 3: 4.0},
    ])
    def test_missing_or_invalid_factor(self, acquisition, factors):
        with pytest.raises(MissingCalibrationError):
            Calibrator(acquisition).calibrate(np.ones((8, 4, 1)), factors)

    def test_split_orders_and_inverts(self, acquisition):
        raw = np.zeros((8, 4, 3))
        for ch in range(4):
            raw[:, ch, :] = ch + 1
        pressure, trigger = Calibrator(acquisition).split(raw)

        assert pressure.shape == (8, 3, 3)
        assert trigger.shape == (8, 3)
        np.testing.assert_allclose(pressure[0, :, 0], [-1.0, -3.0, -4.0])
        np.testing.assert_allclose(trigger, 2.0)

    def test_split_without_inversion(self):
        acq = AcquisitionConfig(farfield_channels=(0,), trigger_channel=1, nearfield_channels=(2,),
                                invert_pressure=False)
        pressure, _ = Calibrator(acq).split(np.ones((4, 3, 1)))
        np.testing.assert_allclose(pressure, 1.0)

    def test_too_few_channels(self, acquisition):
        with pytest.raises(ValueError):
            Calibrator(acquisition).calibrate(np.ones((8, 3, 1)), {0: 1.0, 2: 1.0, 3: 1.0})
