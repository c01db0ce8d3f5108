"""
Tests for the thread-pool dispatch, thresholds, readers-writer lock and lazy values.
"""

import threading
import time

import pytest

from QMS.System.multithreading import (
    LazyState, LazyValue, MultiThreadPolicy, ReadWriteLock, parallel_map,
    should_multithread_dictionary, should_multithread_matrix_creation, should_multithread_rule_application,
)
from QMS.errors import QMSLogicError

def test_parallel_map_preserves_order():
    ''' Test that parallel_map returns results in input order. '''
    items = list(range(103))
    assert parallel_map(lambda x: x * x, items, multithread=True, max_workers=4) == [x * x for x in items]

def test_parallel_map_single_thread_path():
    ''' Test that disabled multithreading runs in the calling thread. '''
    me      = threading.get_ident()
    seen    = parallel_map(lambda _: threading.get_ident(), [1, 2, 3], multithread=False)
    assert seen == [me, me, me]

def test_parallel_map_propagates_exceptions():
    ''' Test that an exception raised in a worker reaches the caller. '''
    def _kernel(x):
        if x == 7:
            raise ValueError("boom")
        return x

    with pytest.raises(ValueError, match="boom"):
        parallel_map(_kernel, list(range(20)), multithread=True, max_workers=3)

@pytest.mark.parametrize(
    "policy, elements, expected",
    [
        (MultiThreadPolicy.Never, 10**6, False),
        (MultiThreadPolicy.Always, 1, True),
        (MultiThreadPolicy.Optional, 16, False),
    ],
)
def test_matrix_creation_threshold(policy, elements, expected):
    ''' Test the matrix-creation decision for fixed policies and small work. '''
    assert should_multithread_matrix_creation(policy, elements) is expected

def test_optional_policy_depends_on_workers(restore_settings):
    ''' Test that the optional policy parallelises large work only with several workers. '''
    from QMS.qms_globals import set_settings

    set_settings(max_workers=4)
    assert should_multithread_matrix_creation("optional", 256)
    assert should_multithread_rule_application("optional", 256, 4)
    assert not should_multithread_rule_application("optional", 256, 3)
    assert should_multithread_dictionary("optional", 4096)
    assert not should_multithread_dictionary("optional", 4095)

    set_settings(max_workers=1)
    assert not should_multithread_matrix_creation("optional", 10**6)

def test_write_lock_reentrant_and_readable():
    ''' Test that the writing thread may re-acquire the lock and read under it. '''
    lock = ReadWriteLock()
    with lock.write():
        with lock.write():
            with lock.read():
                pass
    # Released completely: another thread can now write
    done = []
    worker = threading.Thread(target=lambda: (lock.acquire_write(), done.append(True), lock.release_write()))
    worker.start()
    worker.join(timeout=5)
    assert done == [True]

def test_writer_waits_for_readers():
    ''' Test that a writer blocks until the active reader leaves. '''
    lock    = ReadWriteLock()
    order   = []
    lock.acquire_read()

    def _writer():
        with lock.write():
            order.append("write")

    worker = threading.Thread(target=_writer)
    worker.start()
    time.sleep(0.05)
    order.append("read done")
    lock.release_read()
    worker.join(timeout=5)
    assert order == ["read done", "write"]

def test_nested_read_passes_queued_writer():
    ''' Test that a thread holding the read lock re-enters it while a writer is waiting. '''
    # Arrange
    lock    = ReadWriteLock()
    order   = []

    def _writer():
        with lock.write():
            order.append("write")

    writer = threading.Thread(target=_writer, daemon=True)

    def _reader():
        with lock.read():
            writer.start()
            time.sleep(0.1)
            with lock.read():
                order.append("nested read")
            order.append("read done")

    reader = threading.Thread(target=_reader, daemon=True)

    # Act
    reader.start()
    reader.join(timeout=5)
    writer.join(timeout=5)

    # Assert
    assert not reader.is_alive()
    assert order == ["nested read", "read done", "write"]

def test_release_read_without_holding():
    ''' Test that releasing a read lock the thread does not hold is an internal error. '''
    lock = ReadWriteLock()
    with pytest.raises(QMSLogicError):
        lock.release_read()

def test_lazy_value_builds_once_under_contention():
    ''' Test that concurrent readers trigger a single build and see the same value. '''
    # Arrange
    calls = []

    def _build():
        calls.append(1)
        time.sleep(0.05)
        return object()

    lazy    = LazyValue(_build)
    results = []
    threads = [threading.Thread(target=lambda: results.append(lazy.get())) for _ in range(8)]

    # Act
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    # Assert
    assert len(calls) == 1
    assert len(results) == 8
    assert all(result is results[0] for result in results)
    assert lazy.state is LazyState.Ready

def test_lazy_value_failure_and_reset():
    ''' Test that a failed build leaves the value empty and reset forces a rebuild. '''
    attempts = []

    def _build():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("first build fails")
        return len(attempts)

    lazy = LazyValue(_build)
    with pytest.raises(RuntimeError):
        lazy.get()
    assert lazy.state is LazyState.Empty
    assert lazy.get() == 2
    lazy.reset()
    assert not lazy.ready
    assert lazy.get() == 3

# ----------------------------------------------------------------------------------------------------
#! End of test_multithreading.py
# ----------------------------------------------------------------------------------------------------
