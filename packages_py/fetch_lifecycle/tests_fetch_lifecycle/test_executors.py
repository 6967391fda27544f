"""
Tests for executor helpers
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from fetch_lifecycle import WithinThreadExecutor, create_executor


class TestWithinThreadExecutor:
    """Tests for WithinThreadExecutor"""

    def test_runs_in_calling_thread(self):
        """Should run the callable before submit returns"""
        executor = WithinThreadExecutor()
        caller = threading.current_thread()

        future = executor.submit(threading.current_thread)

        assert future.done()
        assert future.result() is caller

    def test_passes_arguments(self):
        """Should forward positional and keyword arguments"""
        executor = WithinThreadExecutor()

        future = executor.submit(lambda a, b=0: a + b, 2, b=3)

        assert future.result() == 5

    def test_captures_exception(self):
        """Should put the raised exception on the future"""
        executor = WithinThreadExecutor()

        def fail():
            raise ValueError("nope")

        future = executor.submit(fail)

        with pytest.raises(ValueError, match="nope"):
            future.result()

    def test_rejects_after_shutdown(self):
        """Should refuse new work after shutdown"""
        executor = WithinThreadExecutor()
        executor.shutdown()

        with pytest.raises(RuntimeError):
            executor.submit(lambda: None)


class TestCreateExecutor:
    """Tests for create_executor"""

    def test_within_thread(self):
        """Should return a WithinThreadExecutor when requested"""
        executor = create_executor(4, "commands", within_thread=True)
        assert isinstance(executor, WithinThreadExecutor)

    def test_thread_pool(self):
        """Should return a thread pool otherwise"""
        executor = create_executor(2, "io")
        try:
            assert isinstance(executor, ThreadPoolExecutor)
            assert executor.submit(lambda: 42).result(timeout=2) == 42
        finally:
            executor.shutdown()

    def test_invalid_thread_count(self):
        """Should reject a thread count below one"""
        with pytest.raises(ValueError):
            create_executor(0, "io")
