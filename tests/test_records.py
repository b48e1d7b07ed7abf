from datetime import datetime, timedelta, timezone

import pytest

from nodechart.dataio.live import snapshot_from_live
from nodechart.dataio.records import coerce_number, parse_query_result, parse_task
from nodechart.dataio.timestamps import parse_timestamp

JAN_1_2024_MS = 1_704_067_200_000


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-01-01T00:00:00Z", JAN_1_2024_MS),
        ("2024-01-01T00:00:00.250Z", JAN_1_2024_MS + 250),
        ("2024-01-01T00:00:00.123456789Z", JAN_1_2024_MS + 123),
        ("2024-01-01T08:00:00+08:00", JAN_1_2024_MS),
        (datetime(2024, 1, 1), JAN_1_2024_MS),
        (datetime(2024, 1, 1, 1, tzinfo=timezone(timedelta(hours=1))), JAN_1_2024_MS),
        (JAN_1_2024_MS, JAN_1_2024_MS),
        (float(JAN_1_2024_MS), JAN_1_2024_MS),
        (str(JAN_1_2024_MS), JAN_1_2024_MS),
    ],
)
def test_parse_timestamp(raw, expected) -> None:
    assert parse_timestamp(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "yesterday", True, float("nan"), [1, 2], {}])
def test_parse_timestamp_rejects_garbage(raw) -> None:
    assert parse_timestamp(raw) is None


def test_coerce_number() -> None:
    assert coerce_number("3.5") == 3.5
    assert coerce_number(2) == 2.0
    assert coerce_number(None) is None
    assert coerce_number(False) is None
    assert coerce_number("n/a") is None
    assert coerce_number(float("inf")) is None


def test_parse_task_fields() -> None:
    task = parse_task(
        {
            "id": "7",
            "name": "cn-ping",
            "interval": 30,
            "type": "icmp",
            "loss": 0.02,
            "p50": 20,
            "p99": 60,
            "p99_p50_ratio": 3,
            "total": 120,
        }
    )
    assert task.id == 7
    assert task.key == 7
    assert task.sampling_interval_seconds == 30.0
    assert task.kind == "icmp"
    assert task.aggregates.loss_rate == 0.02
    assert task.aggregates.volatility == 3.0
    assert task.aggregates.total == 120


def test_parse_task_without_id() -> None:
    assert parse_task({"name": "x"}) is None
    assert parse_task({"id": True}) is None


def test_ping_payload() -> None:
    payload = {
        "status": "success",
        "data": {
            "tasks": [{"id": 1, "name": "a", "interval": 60}, {"name": "broken"}],
            "records": [
                {"task_id": 1, "time": "2024-01-01T00:01:00Z", "value": 21.5},
                {"task_id": 1, "time": "2024-01-01T00:00:00Z", "value": -1},
                {"task_id": 1, "time": "not a time", "value": 3},
                {"task_id": "x", "time": "2024-01-01T00:02:00Z", "value": 3},
                {"task_id": 1, "time": "2024-01-01T00:03:00Z", "value": None},
                "junk",
            ],
        },
    }
    result = parse_query_result(payload)
    assert [task.id for task in result.tasks] == [1]
    assert [(s.timestamp_ms, s.value) for s in result.samples] == [
        (JAN_1_2024_MS, -1.0),
        (JAN_1_2024_MS + 60_000, 21.5),
    ]
    assert result.rows == []
    assert not result.empty


def test_load_payload_with_gpu_devices() -> None:
    payload = {
        "records": [
            {
                "client": "node-1",
                "time": "2024-01-01T00:15:00Z",
                "cpu": 12.5,
                "ram": "2048",
                "uuid": "abc",
                "gpu_detailed": "{...}",
            },
            {"client": "node-1", "time": "2024-01-01T00:00:00Z", "cpu": 10},
        ],
        "gpu_devices": {
            "0": {
                "records": [
                    {
                        "time": "2024-01-01T00:15:00Z",
                        "device_index": 0,
                        "utilization": 55,
                        "mem_used": 2,
                        "mem_total": 8,
                        "temperature": 60,
                    },
                    {"time": "2024-01-01T01:00:00Z", "utilization": 1, "mem_total": 0},
                ]
            }
        },
    }
    result = parse_query_result(payload)
    assert [row.timestamp_ms for row in result.rows] == [JAN_1_2024_MS, JAN_1_2024_MS + 900_000]
    first, second = result.rows
    assert dict(first.values) == {"cpu": 10.0}
    assert second.get("cpu") == 12.5
    assert second.get("ram") == 2048.0
    assert second.get("gpu0_usage") == 55.0
    assert second.get("gpu0_memory") == 25.0
    assert second.get("gpu0_temperature") == 60.0
    assert "uuid" not in second.values
    assert "client" not in second.values


def test_unusable_payloads() -> None:
    assert parse_query_result(None).empty
    assert parse_query_result({"records": None}).empty
    assert parse_query_result({"data": []}).empty


def test_live_snapshot() -> None:
    payload = {
        "updated_at": "2024-01-01T00:00:00Z",
        "cpu": {"usage": 42.0},
        "ram": {"used": 2.0, "total": 4.0},
        "disk": {"used": 10.0, "total": 0},
        "network": {"up": 100, "down": 200},
        "connections": {"tcp": 12, "udp": 3},
        "load": {"load1": 0.5},
        "process": 90,
    }
    snapshot = snapshot_from_live("node-1", payload, mem_total=8.0)
    assert snapshot.entity == "node-1"
    assert snapshot.timestamp_ms == JAN_1_2024_MS
    assert snapshot.get("cpu") == 42.0
    assert snapshot.get("ram_percent") == 25.0
    assert snapshot.get("disk_percent") == 0.0
    assert snapshot.get("net_in") == 200.0
    assert snapshot.get("net_out") == 100.0
    assert snapshot.get("swap") is None
    assert snapshot.get("process") == 90.0


def test_live_snapshot_without_timestamp() -> None:
    assert snapshot_from_live("node-1", {"cpu": {"usage": 1}}) is None
