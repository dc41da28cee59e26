import json
import socket
import threading
import urllib.request

import pytest

from taskapi.handlers import TaskHandler
from taskapi.server import create_server
from taskapi.storage import MemoryStorage
from taskapi.stress import (
    StressConfig,
    StressResult,
    http_progressive_stress,
    http_stress,
    long_running_stress,
    main,
    mixed_stress,
    run_http_test,
    storage_stress,
)


@pytest.fixture
def base_url():
    server = create_server(TaskHandler(MemoryStorage()), ("127.0.0.1", 0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def dead_url():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


def _small_config(**overrides):
    values = dict(
        storage_workers=40,
        http_concurrency=8,
        initial_task_count=10,
        mixed_readers=2,
        mixed_writers=2,
        mixed_listers=1,
        mixed_initial_tasks=5,
        long_running_workers=3,
        max_threads=8,
    )
    values.update(overrides)
    return StressConfig(**values)


def test_success_rate_is_percentage():
    result = StressResult(total_requests=4, success_requests=3, failed_requests=1)
    assert result.success_rate() == 75.0


def test_success_rate_without_requests_is_zero():
    assert StressResult().success_rate() == 0.0


def test_storage_stress_all_operations_succeed():
    config = _small_config()
    result = storage_stress(config)
    assert result.total_requests == config.storage_workers
    assert result.success_requests == config.storage_workers
    assert result.failed_requests == 0
    assert result.timed_out is False
    assert result.success_rate() == 100.0
    assert result.max_time >= result.min_time >= 0


def test_storage_stress_without_initial_tasks_fails_reads():
    config = _small_config(initial_task_count=0, storage_workers=10)
    result = storage_stress(config)
    assert result.total_requests == 10
    assert result.failed_requests > 0
    assert result.success_requests + result.failed_requests == result.total_requests


def test_http_stress_against_running_server(base_url):
    config = _small_config()
    result = http_stress(base_url, config)
    assert result is not None
    assert result.total_requests == config.http_concurrency
    assert result.success_requests == config.http_concurrency
    assert result.failed_requests == 0


def test_http_stress_creates_tasks(base_url):
    http_stress(base_url, _small_config(http_concurrency=4))
    with urllib.request.urlopen(base_url + "/tasks", timeout=5) as response:
        listed = json.loads(response.read())
    names = [task["name"] for task in listed["data"]]
    assert names == ["http-task-2"]


def test_http_stress_skips_when_server_is_down(dead_url):
    assert http_stress(dead_url, _small_config()) is None


def test_progressive_stress_skips_when_server_is_down(dead_url):
    assert http_progressive_stress(dead_url) is None


def test_run_http_test_counts_every_request(base_url):
    result = run_http_test(base_url, 6)
    assert result.total_requests == 6
    assert result.success_requests == 6
    assert result.failed_requests == 0


def test_run_http_test_against_dead_server_fails_all(dead_url):
    result = run_http_test(dead_url, 3)
    assert result.total_requests == 3
    assert result.failed_requests == 3
    assert result.success_rate() == 0.0


def test_mixed_stress_completes_without_errors():
    result = mixed_stress(_small_config())
    assert result.total_requests > 0
    assert result.failed_requests == 0
    assert result.success_requests == result.total_requests
    assert result.timed_out is False


def test_long_running_stress_runs_for_duration():
    result = long_running_stress(_small_config(), 0.2)
    assert result.total_requests > 0
    assert result.failed_requests == 0
    assert result.total_time >= 0.2


def test_main_runs_scenarios(dead_url, capsys):
    code = main([
        "--base-url", dead_url,
        "--storage-workers", "10",
        "--initial-tasks", "5",
        "--mixed-readers", "1",
        "--mixed-writers", "1",
        "--mixed-listers", "1",
        "--mixed-initial-tasks", "2",
    ])
    output = capsys.readouterr().out
    assert code == 0
    assert "Storage stress" in output
    assert "skipping HTTP stress" in output