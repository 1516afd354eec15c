"""
Unit tests for phase-locked averaging.

Pressure blocks are built from a known reference cycle repeated at known
start indices, so the averaged cycle and the period are known exactly.
"""
from __future__ import annotations

import numpy as np
import pytest

from nflib.errors import InsufficientCyclesError, NoPeriodEstimateError
from nflib.syncAvg import PhaseAverager, phase_average
from tests.fixtures.signal_generators import make_cycle, make_periodic_pressure


class TestPeriodEstimation:

    def test_period_is_rounded_mean_spacing(self):
        rng = np.random.default_rng(3)
        true_period = 123.3
        blocks = []
        for b in range(4):
            k = np.arange(20)
            events = 15.0 + b + k * true_period + rng.uniform(-0.2, 0.2, k.size)
            blocks.append(events)

        assert PhaseAverager().estimate_period(blocks) == round(true_period)

    def test_block_period_undefined_below_two_events(self):
        averager = PhaseAverager()
        assert np.isnan(averager.block_period(np.array([])))
        assert np.isnan(averager.block_period(np.array([12.4])))
        assert averager.block_period(np.array([10.4, 110.6, 210.5])) == pytest.approx(100.5)

    def test_blocks_without_estimate_are_ignored(self):
        blocks = [np.array([5.0]), np.array([10.0, 60.0, 110.0]), np.array([])]
        assert PhaseAverager().estimate_period(blocks) == 50

    def test_no_estimate_in_any_block(self):
        with pytest.raises(NoPeriodEstimateError):
            PhaseAverager().estimate_period([np.array([4.0]), np.array([])])


class TestAveraging:

    def test_noise_free_cycle_recovered_exactly(self):
        cycle = make_cycle(100, n_channels=3)
        starts = [[10 + 100 * k for k in range(9)], [37 + 100 * k for k in range(8)]]
        pressure = make_periodic_pressure(cycle, 1000, starts)

        result = PhaseAverager().average(pressure, [np.array(s, dtype=float) for s in starts])

        assert result.period == 100
        assert result.waveform.shape == (100, 3)
        np.testing.assert_allclose(result.waveform, cycle, atol=1e-12)

    def test_average_converges_with_noise(self):
        cycle = make_cycle(100, n_channels=2)
        starts = [[10 + 100 * k for k in range(39)] for _ in range(4)]
        pressure = make_periodic_pressure(cycle, 4000, starts, noise_std=0.5, seed=7)

        result = phase_average(pressure, [np.array(s, dtype=float) + 0.3 for s in starts])

        assert result.num_cycles == 4 * 39
        for c in range(2):
            corr = np.corrcoef(result.waveform[:, c], cycle[:, c])[0, 1]
            assert corr > 0.99
        assert np.max(np.abs(result.waveform - cycle)) < 0.25

    def test_incomplete_trailing_window_skipped(self):
        cycle = make_cycle(50)
        pressure = make_periodic_pressure(cycle, 200, [[0, 50, 100, 150]])
        events = [np.array([20.0, 70.0, 120.0, 170.0])]

        result = PhaseAverager().average(pressure, events)

        # 170 + 50 > 200: only three complete windows
        assert result.cycles_per_block.tolist() == [3]

    def test_blocks_weighted_equally(self):
        period = 10
        pressure = np.zeros((100, 1, 2))
        pressure[:, 0, 0] = 1.0
        pressure[:, 0, 1] = 3.0
        events = [np.array([0.0, 10.0, 20.0, 30.0]), np.array([0.0, 10.0])]

        result = PhaseAverager().average(pressure, events, period=period)

        np.testing.assert_allclose(result.waveform, 2.0)
        assert result.cycles_per_block.tolist() == [4, 2]

    def test_block_without_complete_cycle_excluded(self):
        period = 10
        pressure = np.zeros((100, 1, 2))
        pressure[:, 0, 0] = 1.0
        pressure[:, 0, 1] = 5.0
        events = [np.array([0.0, 10.0, 20.0]), np.array([95.0])]

        result = PhaseAverager().average(pressure, events, period=period)

        assert result.blocks_used == 1
        np.testing.assert_allclose(result.waveform, 1.0)

    def test_single_event_block_contributes_nothing(self):
        pressure = np.zeros((100, 1, 2))
        pressure[:, 0, 0] = 1.0
        pressure[:, 0, 1] = 5.0
        # Block 1 holds one complete window but no period estimate
        events = [np.array([0.0, 10.0, 20.0]), np.array([50.0])]

        result = PhaseAverager().average(pressure, events)

        assert result.period == 10
        assert result.blocks_used == 1
        assert result.cycles_per_block.tolist() == [3, 0]
        np.testing.assert_allclose(result.waveform, 1.0)

    def test_no_complete_cycle_anywhere(self):
        pressure = np.zeros((100, 2, 1))
        with pytest.raises(InsufficientCyclesError):
            PhaseAverager().average(pressure, [np.array([10.0, 20.0])], period=200)

    def test_block_count_mismatch(self):
        with pytest.raises(ValueError):
            PhaseAverager().average(np.zeros((100, 1, 2)), [np.array([1.0, 11.0])])
