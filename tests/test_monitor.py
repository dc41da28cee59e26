import os
import re
import subprocess
from unittest import mock

from taskapi.monitor import get_connection_count, get_cpu_usage, get_memory_stats


def _completed(stdout):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


def test_cpu_usage_parses_second_line():
    with mock.patch("taskapi.monitor.subprocess.run", return_value=_completed("%CPU\n 12.5\n")) as run:
        assert get_cpu_usage() == 12.5
    assert run.call_args.args[0] == ["ps", "-p", str(os.getpid()), "-o", "pcpu"]


def test_cpu_usage_is_zero_when_command_missing():
    with mock.patch("taskapi.monitor.subprocess.run", side_effect=FileNotFoundError):
        assert get_cpu_usage() == 0.0


def test_cpu_usage_is_zero_when_command_fails():
    error = subprocess.CalledProcessError(1, ["ps"])
    with mock.patch("taskapi.monitor.subprocess.run", side_effect=error):
        assert get_cpu_usage() == 0.0


def test_cpu_usage_is_zero_for_single_line():
    with mock.patch("taskapi.monitor.subprocess.run", return_value=_completed("%CPU")):
        assert get_cpu_usage() == 0.0


def test_cpu_usage_is_zero_for_unparsable_value():
    with mock.patch("taskapi.monitor.subprocess.run", return_value=_completed("%CPU\nabc\n")):
        assert get_cpu_usage() == 0.0


def test_connection_count_counts_established_on_port():
    output = "\n".join(
        [
            "Proto Recv-Q Send-Q Local Address Foreign Address State",
            "tcp 0 0 127.0.0.1:8080 127.0.0.1:50001 ESTABLISHED",
            "tcp 0 0 127.0.0.1:8080 127.0.0.1:50002 ESTABLISHED",
            "tcp 0 0 0.0.0.0:8080 0.0.0.0:* LISTEN",
            "tcp 0 0 127.0.0.1:9090 127.0.0.1:50003 ESTABLISHED",
        ]
    )
    with mock.patch("taskapi.monitor.subprocess.run", return_value=_completed(output)) as run:
        assert get_connection_count() == 2
        assert get_connection_count(9090) == 1
    assert run.call_args.args[0] == ["netstat", "-an"]


def test_connection_count_is_zero_when_command_missing():
    with mock.patch("taskapi.monitor.subprocess.run", side_effect=FileNotFoundError):
        assert get_connection_count() == 0


def test_memory_stats_format():
    stats = get_memory_stats()
    match = re.fullmatch(r"Alloc=(\d+)KB, Sys=(\d+)KB, GC=(\d+), Threads=(\d+)", stats)
    assert match is not None
    assert int(match.group(4)) >= 1