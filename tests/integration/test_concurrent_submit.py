"""
Integration tests for submission racing registrar installation.

Contributor units run on worker threads while another thread installs the
registrar. Whatever the interleaving, every contribution must end up in the
index exactly once and the pending buffer must be empty afterwards.
"""
import threading

import pytest

from impl_registry.core import (
    Contribution,
    ContributorUnit,
    ImplementorRegistry,
    SubmitPath,
)
from impl_registry.core.telemetry import TelemetryRecorder

WORKERS = 8
UNITS_PER_WORKER = 50


def make_units(worker: int) -> list[ContributorUnit]:
    return [
        ContributorUnit(
            Contribution.from_mapping(
                f"cap{i % 5}::Trait",
                {f"crate_{worker}_{i}": [f"impl Trait for T{worker}_{i}"]},
            ),
            source=f"w{worker}/{i}",
        )
        for i in range(UNITS_PER_WORKER)
    ]


@pytest.mark.parametrize("install_after", [0, 10, 100, 399])
def test_no_contribution_lost_under_threads(install_after):
    """Test concurrent submits and one install lose and duplicate nothing."""
    recorder = TelemetryRecorder(collect_stats=True)
    registry = ImplementorRegistry(recorder=recorder)
    submitted = threading.Semaphore(0)
    start = threading.Barrier(WORKERS + 1)
    paths: list[SubmitPath] = []
    paths_lock = threading.Lock()

    def worker(n: int):
        start.wait()
        for contributor in make_units(n):
            path = contributor.submit(registry)
            with paths_lock:
                paths.append(path)
            submitted.release()

    def installer():
        start.wait()
        for _ in range(install_after):
            submitted.acquire()
        registry.install()

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(WORKERS)]
    threads.append(threading.Thread(target=installer))
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert registry.installed
    assert registry.pending_implementors == []

    index = registry.to_dict()
    total_units = sum(len(units) for units in index.values())
    assert total_units == WORKERS * UNITS_PER_WORKER

    for n in range(WORKERS):
        for i in range(UNITS_PER_WORKER):
            assert index[f"cap{i % 5}::Trait"][f"crate_{n}_{i}"] == [f"impl Trait for T{n}_{i}"]

    deferred = paths.count(SubmitPath.DEFERRED)
    stats = recorder.get_stats()
    assert deferred >= install_after
    assert stats.contributions_buffered == deferred
    assert stats.contributions_drained == deferred


def test_concurrent_duplicate_submits_merge_once():
    """Test the same unit submitted from many threads leaves one entry."""
    registry = ImplementorRegistry(recorder=TelemetryRecorder())
    registry.install()
    contributor = ContributorUnit(
        Contribution.from_mapping("core::hash::Hasher", {"sirpent": ["D1"]})
    )

    threads = [threading.Thread(target=contributor.submit, args=(registry,)) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert registry.to_dict() == {"core::hash::Hasher": {"sirpent": ["D1"]}}
