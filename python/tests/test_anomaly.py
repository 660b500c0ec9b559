import math

import pytest

from netpulse.anomaly import MIN_WINDOW_SIZE, RollingStats, SpikeDetector


def test_rolling_stats_uses_sample_standard_deviation():
    stats = RollingStats(10)
    for value in (2, 4, 4, 4, 5, 5, 7, 9):
        stats.push(value)

    assert stats.mean == pytest.approx(5.0)
    assert stats.variance == pytest.approx(32 / 7)
    assert stats.std_dev == pytest.approx(math.sqrt(32 / 7))


def test_rolling_stats_window_has_minimum_size():
    stats = RollingStats(2)
    assert stats.window_size == MIN_WINDOW_SIZE

    for value in range(10):
        stats.push(value)
    assert len(stats) == MIN_WINDOW_SIZE
    assert stats.mean == pytest.approx(7.0)


def test_rolling_stats_degenerate_cases():
    stats = RollingStats()
    assert stats.mean == 0.0
    assert stats.std_dev == 0.0

    stats.push(42)
    assert stats.mean == 42.0
    assert stats.std_dev == 0.0


def test_constant_series_never_fires():
    detector = SpikeDetector()
    for produced in range(1, 50):
        detector.observe(1_000)
        assert detector.check(1_000, produced) is None


def test_spike_after_long_baseline_fires():
    detector = SpikeDetector(window_size=60)
    baseline = [100, 110, 90, 105, 95] * 6
    for produced, value in enumerate(baseline, start=1):
        detector.observe(value)
        assert detector.check(value, produced) is None

    detector.observe(5_000)
    spike = detector.check(5_000, len(baseline) + 1)

    assert spike is not None
    assert spike.z >= 3.5
    assert spike.value == 5_000
    assert spike.mean == pytest.approx((sum(baseline) + 5_000) / (len(baseline) + 1))


def test_short_window_cannot_reach_threshold():
    # With the spike inside the window, z is bounded by (n - 1) / sqrt(n).
    detector = SpikeDetector()
    for _ in range(10):
        detector.observe(10)
    detector.observe(1_000)

    z = detector.zscore(1_000)
    assert z == pytest.approx(10 / math.sqrt(11))
    assert detector.check(1_000, 11) is None


def test_no_check_during_warmup():
    detector = SpikeDetector(window_size=5, threshold=0.5)
    for value in (1, 1, 1, 1, 100):
        detector.observe(value)

    assert detector.check(100, 10) is None
    assert detector.check(100, 11) is not None
