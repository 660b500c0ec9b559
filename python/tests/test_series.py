from netpulse.series import SERIES_CAPACITY, StatsPoint, StatsSeries


def _point(ts: int) -> StatsPoint:
    return StatsPoint(
        ts=ts,
        bytes_per_sec=ts * 10,
        packets_per_sec=ts,
        active_flows=1,
        unique_dst_ips=1,
        unique_dst_ports=1,
    )


def test_series_keeps_most_recent_points_in_order():
    series = StatsSeries()
    for ts in range(SERIES_CAPACITY + 1):
        series.append(_point(ts))

    points = series.points()
    assert len(points) == SERIES_CAPACITY
    assert points[0].ts == 1
    assert points[-1].ts == SERIES_CAPACITY
    assert series.latest().ts == SERIES_CAPACITY
    assert series.points_produced == SERIES_CAPACITY + 1


def test_point_serialises_camel_case():
    assert _point(3).to_dict() == {
        "ts": 3,
        "bytesPerSec": 30,
        "packetsPerSec": 3,
        "activeFlows": 1,
        "uniqueDstIps": 1,
        "uniqueDstPorts": 1,
    }


def test_empty_series():
    series = StatsSeries(capacity=5)
    assert series.latest() is None
    assert series.to_list() == []
