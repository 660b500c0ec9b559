import unittest

from netpulse.flow_table import PUBLISHED_FLOW_LIMIT, TOP_TALKER_LIMIT, FlowTable
from netpulse.packet_sample import TCP, UDP, FlowKey, PacketSample

T0 = 1_700_000_000_000


def _sample(
    src_ip: str = "10.0.0.1",
    dst_ip: str = "8.8.8.8",
    *,
    src_port: int = 40_000,
    dst_port: int = 443,
    size: int = 100,
    protocol: str = TCP,
) -> PacketSample:
    return PacketSample(
        protocol=protocol,
        src_ip=src_ip,
        src_port=src_port,
        dst_ip=dst_ip,
        dst_port=dst_port,
        bytes=size,
    )


class _RecordingListener:
    def __init__(self) -> None:
        self.notices = []

    def on_new_destination_port(self, port, key, ts):
        self.notices.append((port, key, ts))


class FlowTableTest(unittest.TestCase):
    def test_repeated_samples_accumulate_on_one_flow(self) -> None:
        table = FlowTable()
        table.ingest(_sample(size=100), T0)
        table.ingest(_sample(size=250), T0 + 5)
        flow = table.ingest(_sample(size=50), T0 + 10)

        self.assertEqual(len(table), 1)
        self.assertEqual(flow.bytes, 400)
        self.assertEqual(flow.packets, 3)
        self.assertEqual(flow.first_seen, T0)
        self.assertEqual(flow.last_seen, T0 + 10)

    def test_direction_is_part_of_the_key(self) -> None:
        table = FlowTable()
        table.ingest(_sample("10.0.0.1", "10.0.0.2", src_port=1000, dst_port=80), T0)
        table.ingest(_sample("10.0.0.2", "10.0.0.1", src_port=80, dst_port=1000), T0)
        self.assertEqual(len(table), 2)

    def test_prune_respects_idle_timeout_boundary(self) -> None:
        table = FlowTable()
        table.ingest(_sample(), T0)

        self.assertEqual(table.prune(T0 + 59_999), 1)
        self.assertEqual(table.prune(T0 + 60_000), 1)
        self.assertEqual(table.prune(T0 + 60_001), 0)
        self.assertNotIn(_sample().key, table)

    def test_prune_keeps_recently_active_flows(self) -> None:
        table = FlowTable(idle_timeout=1_000)
        table.ingest(_sample(dst_port=80), T0)
        table.ingest(_sample(dst_port=443), T0 + 900)

        self.assertEqual(table.prune(T0 + 1_500), 1)
        self.assertIsNotNone(table.get(_sample(dst_port=443).key))

    def test_drain_counters_resets_after_reading(self) -> None:
        table = FlowTable()
        for _ in range(4):
            table.ingest(_sample(size=60), T0)

        self.assertEqual(table.drain_counters(), (240, 4))
        self.assertEqual(table.drain_counters(), (0, 0))

    def test_top_talkers_sorted_by_bytes(self) -> None:
        table = FlowTable()
        table.ingest(_sample("10.0.0.1", size=500), T0)
        table.ingest(_sample("10.0.0.2", size=900), T0)
        table.ingest(_sample("10.0.0.3", size=100), T0)

        talkers = table.aggregates().top_talkers
        self.assertEqual([t.ip for t in talkers], ["10.0.0.2", "10.0.0.1", "10.0.0.3"])
        self.assertEqual([t.bytes for t in talkers], [900, 500, 100])

    def test_top_talkers_sum_across_flows_and_are_capped(self) -> None:
        table = FlowTable()
        for index in range(12):
            table.ingest(_sample(f"10.0.1.{index}", size=100 + index), T0)
        table.ingest(_sample("10.0.1.0", dst_port=22, size=1_000), T0)

        talkers = table.aggregates().top_talkers
        self.assertEqual(len(talkers), TOP_TALKER_LIMIT)
        self.assertEqual(talkers[0].ip, "10.0.1.0")
        self.assertEqual(talkers[0].bytes, 1_100)

    def test_published_flows_are_capped_and_sorted(self) -> None:
        table = FlowTable()
        for port in range(1, PUBLISHED_FLOW_LIMIT + 51):
            table.ingest(_sample(dst_port=port, size=port), T0)

        flows = table.aggregates().flows
        self.assertEqual(len(flows), PUBLISHED_FLOW_LIMIT)
        self.assertEqual(flows[0].bytes, PUBLISHED_FLOW_LIMIT + 50)
        self.assertTrue(all(a.bytes >= b.bytes for a, b in zip(flows, flows[1:])))

    def test_unique_destination_counts_ignore_port_zero(self) -> None:
        table = FlowTable()
        table.ingest(_sample(dst_ip="1.1.1.1", dst_port=53, protocol=UDP), T0)
        table.ingest(_sample(dst_ip="1.1.1.1", dst_port=443), T0)
        table.ingest(_sample(dst_ip="9.9.9.9", dst_port=0, protocol="ICMP", src_port=0), T0)

        aggregates = table.aggregates()
        self.assertEqual(aggregates.unique_dst_ips, 2)
        self.assertEqual(aggregates.unique_dst_ports, 2)

    def test_empty_table_has_empty_aggregates(self) -> None:
        aggregates = FlowTable().aggregates()
        self.assertEqual(aggregates.unique_dst_ips, 0)
        self.assertEqual(aggregates.top_talkers, [])
        self.assertEqual(aggregates.flows, [])


class NewPortNoticeTest(unittest.TestCase):
    def setUp(self) -> None:
        self.table = FlowTable()
        self.listener = _RecordingListener()
        self.table.add_port_listener(self.listener)

    def test_first_new_port_is_announced(self) -> None:
        self.table.ingest(_sample(dst_port=8443), T0)

        self.assertEqual(len(self.listener.notices), 1)
        port, key, ts = self.listener.notices[0]
        self.assertEqual(port, 8443)
        self.assertIsInstance(key, FlowKey)
        self.assertEqual(ts, T0)

    def test_notices_are_rate_limited_across_ports(self) -> None:
        self.table.ingest(_sample(dst_port=1), T0)
        self.table.ingest(_sample(dst_port=2), T0 + 5_000)
        self.table.ingest(_sample(dst_port=3), T0 + 10_000)
        self.table.ingest(_sample(dst_port=4), T0 + 10_001)

        self.assertEqual([n[0] for n in self.listener.notices], [1, 4])

    def test_suppressed_port_is_still_marked_seen(self) -> None:
        self.table.ingest(_sample(dst_port=1), T0)
        self.table.ingest(_sample(dst_port=2), T0 + 1)
        self.table.prune(T0 + 120_000)
        self.table.ingest(_sample(dst_port=2), T0 + 120_000)

        self.assertEqual([n[0] for n in self.listener.notices], [1])
        self.assertIn(2, self.table.seen_dst_ports)

    def test_existing_flow_does_not_trigger_notice(self) -> None:
        self.table.ingest(_sample(dst_port=9000), T0)
        self.table.ingest(_sample(dst_port=9000), T0 + 20_000)
        self.assertEqual(len(self.listener.notices), 1)

    def test_port_zero_is_never_announced(self) -> None:
        self.table.ingest(_sample(dst_port=0, src_port=0, protocol="OTHER"), T0)
        self.assertEqual(self.listener.notices, [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
