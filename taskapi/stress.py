"""Load and concurrency stress tests for the task storage and HTTP API."""

from __future__ import annotations

import argparse
import gc
import json
import threading
import time
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterator, Optional, Sequence

from taskapi.model import Task
from taskapi.monitor import get_connection_count, get_cpu_usage, get_memory_stats
from taskapi.storage import MemoryStorage, PaginationParams, TaskNotFoundError

DEFAULT_BASE_URL = "http://localhost:8080"
_MAX_HTTP_THREADS = 512
_PROGRESSIVE_START = 100
_PROGRESSIVE_STOP = 5000
_PROGRESSIVE_STEP = 100
_PROGRESSIVE_FAST_FROM = 3100
_PROGRESSIVE_FAST_EXTRA = 50
_REQUIRED_SUCCESS_RATE = 95.0


@dataclass
class StressConfig:
    """Tunable sizes and time limits of the stress scenarios."""

    storage_workers: int = 100000
    http_concurrency: int = 1000
    mixed_readers: int = 70
    mixed_writers: int = 20
    mixed_listers: int = 10
    long_running_workers: int = 50
    initial_task_count: int = 1000
    mixed_initial_tasks: int = 1000
    max_threads: int = 256
    storage_timeout: float = 30.0
    http_timeout: float = 60.0
    mixed_timeout: float = 45.0
    request_timeout: float = 10.0
    progress_interval: float = 5.0
    long_progress_interval: float = 15.0


@dataclass
class StressResult:
    """Counts and timings gathered by one stress scenario; times in seconds."""

    total_requests: int = 0
    success_requests: int = 0
    failed_requests: int = 0
    timeout_requests: int = 0
    average_time: float = 0.0
    max_time: float = 0.0
    min_time: float = 0.0
    total_time: float = 0.0
    timed_out: bool = False

    def success_rate(self) -> float:
        """Share of successful requests in percent; 0.0 when nothing ran."""
        if self.total_requests == 0:
            return 0.0
        return self.success_requests / self.total_requests * 100


class _Tally:
    """Thread-safe collector of outcomes and durations."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total = 0
        self.success = 0
        self.failed = 0
        self.timeouts = 0
        self.max_time = 0.0
        self.min_time = 0.0

    def begin(self) -> None:
        with self._lock:
            self.total += 1

    def finish(self, ok: bool, elapsed: Optional[float] = None, timed_out: bool = False) -> int:
        """Record an outcome and return the number of failures so far."""
        with self._lock:
            if ok:
                self.success += 1
            else:
                self.failed += 1
                if timed_out:
                    self.timeouts += 1
            if elapsed is not None:
                self.max_time = max(self.max_time, elapsed)
                if self.min_time == 0 or elapsed < self.min_time:
                    self.min_time = elapsed
            return self.failed

    def snapshot(self) -> tuple[int, int]:
        with self._lock:
            return self.total, self.failed

    def result(self, total_time: float, timed_out: bool = False) -> StressResult:
        with self._lock:
            timeouts = self.timeouts
            if timed_out:
                timeouts += self.total - self.success - self.failed
            return StressResult(
                total_requests=self.total,
                success_requests=self.success,
                failed_requests=self.failed,
                timeout_requests=timeouts,
                average_time=total_time / self.total if self.total else 0.0,
                max_time=self.max_time,
                min_time=self.min_time,
                total_time=total_time,
                timed_out=timed_out,
            )


def _format_duration(seconds: float) -> str:
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.3f}s"


def _run_all(
    jobs: Sequence[Callable[[], None]], threads: int, timeout: Optional[float]
) -> tuple[float, bool]:
    """Run jobs on a pool; return elapsed seconds and whether all finished in time."""
    started = time.perf_counter()
    pool = ThreadPoolExecutor(max_workers=max(1, min(len(jobs), threads)))
    futures = [pool.submit(job) for job in jobs]
    _, pending = wait(futures, timeout=timeout)
    pool.shutdown(wait=not pending, cancel_futures=True)
    return time.perf_counter() - started, not pending


@contextmanager
def _progress(interval: float, report: Callable[[], None]) -> Iterator[None]:
    stop = threading.Event()

    def loop() -> None:
        while not stop.wait(interval):
            report()

    thread = threading.Thread(target=loop, daemon=True)
    thread.start()
    try:
        yield
    finally:
        stop.set()
        thread.join()


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, TimeoutError) or isinstance(
        getattr(exc, "reason", None), TimeoutError
    )


def _request(method: str, url: str, payload: Optional[bytes], timeout: float) -> int:
    """Send one request and return its status code; transport errors propagate."""
    headers = {"Content-Type": "application/json"} if payload is not None else {}
    request = urllib.request.Request(url, data=payload, method=method, headers=headers)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            response.read()
            return response.status
    except urllib.error.HTTPError as exc:
        with exc:
            return exc.code


def _server_unavailable(base_url: str) -> Optional[str]:
    """Return why the API cannot be reached, or None when it answers."""
    try:
        _request("GET", base_url + "/health", None, 1.0)
    except (OSError, ValueError) as exc:
        return str(exc)
    return None


def _task_payload(name: str) -> bytes:
    return json.dumps(Task(name=name, status=0).to_dict()).encode("utf-8")


def _http_call(
    base_url: str, kind: str, number: int, prefix: str, timeout: float
) -> int:
    if kind == "list":
        return _request("GET", base_url + "/tasks", None, timeout)
    if kind == "create":
        payload = _task_payload(f"{prefix}-{number}")
        return _request("POST", base_url + "/tasks", payload, timeout)
    return _request("GET", base_url + "/tasks/test-id", None, timeout)


def _http_job(
    tally: _Tally,
    base_url: str,
    kind: str,
    number: int,
    prefix: str,
    timeout: float,
    log: Callable[[str, int], None],
) -> None:
    started = time.perf_counter()
    tally.begin()
    try:
        status = _http_call(base_url, kind, number, prefix, timeout)
    except (OSError, ValueError) as exc:
        failed = tally.finish(False, time.perf_counter() - started, _is_timeout(exc))
        log(f"error: {exc}", failed)
        return
    if status < 500:
        tally.finish(True, time.perf_counter() - started)
    else:
        failed = tally.finish(False, time.perf_counter() - started)
        log(f"HTTP error: status {status}", failed)


def _print_result(title: str, result: StressResult, with_timeouts: bool = False) -> None:
    print(f"OK {title} finished:")
    print(f"   total requests: {result.total_requests}")
    print(f"   succeeded: {result.success_requests}")
    print(f"   failed: {result.failed_requests}")
    if with_timeouts:
        print(f"   timed out: {result.timeout_requests}")
    print(f"   total time: {_format_duration(result.total_time)}")
    print(f"   average time: {_format_duration(result.average_time)}")
    print(f"   max time: {_format_duration(result.max_time)}")
    print(f"   min time: {_format_duration(result.min_time)}")


def storage_stress(config: Optional[StressConfig] = None) -> StressResult:
    """Hammer an in-memory store with concurrent reads, creates and lists."""
    config = config or StressConfig()
    print(f"Scenario: {config.storage_workers} concurrent workers reading and writing storage")

    store = MemoryStorage()
    task_ids = []
    for number in range(config.initial_task_count):
        task = Task(name=f"task-{number}", status=number % 2)
        store.create(task)
        task_ids.append(task.id)

    tally = _Tally()

    def operation(number: int) -> None:
        started = time.perf_counter()
        tally.begin()
        kind = number % 5
        ok = True
        try:
            if kind < 3:
                if not task_ids:
                    raise TaskNotFoundError()
                store.get(task_ids[number % len(task_ids)])
            elif kind == 3:
                store.create(Task(name=f"new-task-{number}", status=0))
            else:
                ok = store.list(PaginationParams.for_page(1)).pagination.total >= 0
        except Exception:
            ok = False
        tally.finish(ok, time.perf_counter() - started)

    jobs = [partial(operation, number) for number in range(config.storage_workers)]
    elapsed, finished = _run_all(jobs, config.max_threads, config.storage_timeout)
    result = tally.result(elapsed, timed_out=not finished)

    if finished:
        _print_result("storage stress", result)
    else:
        print(f"FAIL storage stress timed out ({config.storage_timeout:g}s)!")
        done = result.success_requests + result.failed_requests
        print(f"   completed requests: {done}/{result.total_requests}")
    return result


def http_stress(
    base_url: str = DEFAULT_BASE_URL, config: Optional[StressConfig] = None
) -> Optional[StressResult]:
    """Fire concurrent HTTP requests at a running API; None if it is not reachable."""
    config = config or StressConfig()
    print(f"Scenario: {config.http_concurrency} concurrent HTTP requests")

    reason = _server_unavailable(base_url)
    if reason is not None:
        print(f"FAIL API server is not running ({reason}), skipping HTTP stress")
        return None

    tally = _Tally()
    kinds = ("list", "list", "create", "get")

    def job(number: int) -> None:
        def log(message: str, _failed: int) -> None:
            if number < 10:
                print(f"   request {number}: {message}")

        _http_job(
            tally, base_url, kinds[number % 4], number, "http-task",
            config.request_timeout, log,
        )

    jobs = [partial(job, number) for number in range(config.http_concurrency)]
    threads = min(config.http_concurrency, _MAX_HTTP_THREADS)
    elapsed, finished = _run_all(jobs, threads, config.http_timeout)
    result = tally.result(elapsed, timed_out=not finished)

    if finished:
        _print_result("HTTP stress", result, with_timeouts=True)
    else:
        print(f"FAIL HTTP stress timed out ({config.http_timeout:g}s)!")
        done = result.success_requests + result.failed_requests
        print(f"   completed requests: {done}/{result.total_requests}")
    return result


def run_http_test(base_url: str, concurrency: int) -> StressResult:
    """Send one batch of concurrent list, create and get requests."""
    tally = _Tally()
    kinds = ("list", "create", "get")

    def log(message: str, failed: int) -> None:
        if concurrency >= 200 and failed <= 5:
            print(f"   [concurrency {concurrency}] {message}")

    jobs = [
        partial(_http_job, tally, base_url, kinds[number % 3], number, "test-task", 10.0, log)
        for number in range(concurrency)
    ]
    elapsed, _ = _run_all(jobs, min(concurrency, _MAX_HTTP_THREADS), None)
    return tally.result(elapsed)


def http_progressive_stress(
    base_url: str = DEFAULT_BASE_URL,
) -> Optional[list[tuple[int, StressResult]]]:
    """Raise concurrency step by step until fewer than 95% of requests succeed.

    Returns each concurrency level with its result, or None when the API
    is not reachable.
    """
    print("Scenario: raise concurrency until the success rate drops below 95%")

    reason = _server_unavailable(base_url)
    if reason is not None:
        print(f"FAIL API server is not running ({reason}), skipping progressive stress")
        return None

    print("System resources:")
    print(f"  threads: {threading.active_count()}")
    print(f"  memory: {get_memory_stats()}")

    print("Starting progressive stress...")
    print(f"{'conc':<8} {'total':<8} {'ok':<8} {'failed':<8} {'rate':<10} {'average':<12}")
    print("-" * 63)

    levels: list[tuple[int, StressResult]] = []
    concurrency = _PROGRESSIVE_START
    while concurrency <= _PROGRESSIVE_STOP:
        result = run_http_test(base_url, concurrency)
        levels.append((concurrency, result))
        rate = result.success_rate()

        resources = (
            f" [CPU: {get_cpu_usage():.1f}%, Conn: {get_connection_count()}, "
            f"{get_memory_stats()}]"
        )
        print(
            f"{concurrency:<8d} {result.total_requests:<8d} {result.success_requests:<8d} "
            f"{result.failed_requests:<8d} {rate:<10.2f}% "
            f"{_format_duration(result.average_time):<12}{resources}"
        )

        samples = []
        for _ in range(3):
            samples.append(get_cpu_usage())
            time.sleep(0.1)
        collected = gc.collect()
        print(
            f"  detail: CPU samples {samples[0]:.1f}/{samples[1]:.1f}/{samples[2]:.1f}%, "
            f"GC collected {collected} objects, {get_memory_stats()}"
        )

        if rate < _REQUIRED_SUCCESS_RATE:
            print("\nPerformance bottleneck found!")
            print(f"   highest stable concurrency: {concurrency - 10}")
            print(f"   success rate fell to {rate:.2f}% at concurrency {concurrency}")
            break

        if rate == 100.0 and concurrency >= _PROGRESSIVE_FAST_FROM:
            concurrency += _PROGRESSIVE_FAST_EXTRA

        time.sleep(0.1)
        concurrency += _PROGRESSIVE_STEP
    return levels


def mixed_stress(config: Optional[StressConfig] = None) -> StressResult:
    """Run readers, writers and listers against one store at the same time."""
    config = config or StressConfig()
    print("Scenario: mixed reads and writes resembling real use")

    store = MemoryStorage()
    task_ids = []
    for number in range(config.mixed_initial_tasks):
        task = Task(name=f"initial-task-{number}", status=0)
        store.create(task)
        task_ids.append(task.id)

    tally = _Tally()

    def reader() -> None:
        for step in range(100):
            tally.begin()
            try:
                if not task_ids:
                    raise TaskNotFoundError()
                store.get(task_ids[step % len(task_ids)])
                tally.finish(True)
            except Exception:
                tally.finish(False)
            time.sleep(0.001)

    def writer(worker: int) -> None:
        for step in range(50):
            tally.begin()
            try:
                store.create(Task(name=f"writer-{worker}-task-{step}", status=0))
                tally.finish(True)
            except Exception:
                tally.finish(False)
            time.sleep(0.002)

    def lister() -> None:
        for _ in range(20):
            tally.begin()
            try:
                listed = store.list(PaginationParams.for_page(1))
                tally.finish(listed.pagination.total >= 0)
            except Exception:
                tally.finish(False)
            time.sleep(0.005)

    jobs: list[Callable[[], None]] = []
    jobs.extend(reader for _ in range(config.mixed_readers))
    jobs.extend(partial(writer, worker) for worker in range(config.mixed_writers))
    jobs.extend(lister for _ in range(config.mixed_listers))

    def report() -> None:
        operations, errors = tally.snapshot()
        print(f"   progress: {operations} operations, {errors} errors")

    with _progress(config.progress_interval, report):
        elapsed, finished = _run_all(jobs, len(jobs), config.mixed_timeout)
    result = tally.result(elapsed, timed_out=not finished)

    if finished:
        print("OK mixed stress finished:")
        print(f"   total operations: {result.total_requests}")
        print(f"   errors: {result.failed_requests}")
        print(f"   success rate: {result.success_rate():.2f}%")
        print(f"   total time: {_format_duration(elapsed)}")
        throughput = result.total_requests / elapsed if elapsed else 0.0
        print(f"   throughput: {throughput:.2f} ops/sec")
    else:
        print(f"FAIL mixed stress timed out ({config.mixed_timeout:g}s)!")
        print(f"   completed operations: {result.total_requests}")
        print(f"   errors: {result.failed_requests}")
    return result


def long_running_stress(
    config: Optional[StressConfig] = None, duration: float = 120.0
) -> StressResult:
    """Keep workers creating tasks for the given number of seconds."""
    config = config or StressConfig()
    print(f"Scenario: long-running stress ({duration:g}s)")

    store = MemoryStorage()
    tally = _Tally()
    stop = threading.Event()

    def worker(number: int) -> None:
        while not stop.is_set():
            tally.begin()
            try:
                store.create(Task(name=f"long-task-{number}-{time.time_ns()}", status=0))
                tally.finish(True)
            except Exception:
                tally.finish(False)
            stop.wait((number % 10) / 1000)

    def report() -> None:
        operations, errors = tally.snapshot()
        print(f"   long-running progress: {operations} operations, {errors} errors")

    threads = [
        threading.Thread(target=worker, args=(number,), daemon=True)
        for number in range(config.long_running_workers)
    ]
    started = time.perf_counter()
    with _progress(config.long_progress_interval, report):
        for thread in threads:
            thread.start()
        time.sleep(duration)
        stop.set()
        for thread in threads:
            thread.join()
    result = tally.result(time.perf_counter() - started)

    print("OK long-running stress finished:")
    print(f"   total operations: {result.total_requests}")
    print(f"   errors: {result.failed_requests}")
    print(f"   success rate: {result.success_rate():.2f}%")
    qps = result.total_requests / duration if duration > 0 else 0.0
    print(f"   average QPS: {qps:.2f}")
    if result.failed_requests > 0:
        print(f"WARNING {result.failed_requests} errors found, check concurrency safety")
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the stress scenarios one after another."""
    defaults = StressConfig()
    parser = argparse.ArgumentParser(description="Stress test the task storage and API.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--storage-workers", type=int, default=defaults.storage_workers)
    parser.add_argument("--http-concurrency", type=int, default=defaults.http_concurrency)
    parser.add_argument("--initial-tasks", type=int, default=defaults.initial_task_count)
    parser.add_argument("--mixed-readers", type=int, default=defaults.mixed_readers)
    parser.add_argument("--mixed-writers", type=int, default=defaults.mixed_writers)
    parser.add_argument("--mixed-listers", type=int, default=defaults.mixed_listers)
    parser.add_argument("--mixed-initial-tasks", type=int, default=defaults.mixed_initial_tasks)
    parser.add_argument("--long-running", action="store_true",
                        help="also run the long-running scenario")
    parser.add_argument("--long-workers", type=int, default=defaults.long_running_workers)
    parser.add_argument("--long-duration", type=float, default=120.0)
    args = parser.parse_args(argv)

    config = StressConfig(
        storage_workers=args.storage_workers,
        http_concurrency=args.http_concurrency,
        initial_task_count=args.initial_tasks,
        mixed_readers=args.mixed_readers,
        mixed_writers=args.mixed_writers,
        mixed_listers=args.mixed_listers,
        mixed_initial_tasks=args.mixed_initial_tasks,
        long_running_workers=args.long_workers,
    )

    print("=== Task API stress test ===")
    print("1. Storage stress")
    storage_stress(config)
    print("\n2. HTTP API stress")
    http_stress(args.base_url, config)
    print("\n2.1 HTTP API progressive stress")
    http_progressive_stress(args.base_url)
    print("\n3. Mixed read/write stress")
    mixed_stress(config)
    if args.long_running:
        print("\n4. Long-running stress")
        long_running_stress(config, args.long_duration)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())