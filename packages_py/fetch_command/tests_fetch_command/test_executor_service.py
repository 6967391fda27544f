"""
Tests for TransformingCommandExecutorService

Coverage includes:
- End-to-end command execution over MockTransport
- Retry, resubmit and error paths
- Pool creation and replacement per endpoint
- Shutdown behavior
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from fetch_command import DEFAULT_RESUBMIT_LIMIT, HttpCommand
from fetch_lifecycle import LifeCycleStateError, LifeCycleStatus


class RetryTimes:
    """Retry handler that allows a fixed number of retries"""

    def __init__(self, times: int) -> None:
        self.times = times
        self.calls = 0

    def should_retry_request(self, command, response):
        self.calls += 1
        return command.increment_failure_count() <= self.times


def get(url: str = "https://api.example.com/items") -> HttpCommand:
    return HttpCommand(httpx.Request("GET", url))


@pytest.fixture
def small_io_executor():
    """Room for the service loop and one pool loop only"""
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="small-io")
    yield executor
    executor.shutdown(wait=True)


class TestTransformingCommandExecutorService:
    """Tests for TransformingCommandExecutorService"""

    class TestSubmit:
        """Tests for submit"""

        def test_returns_response(self, make_service):
            """Should complete the future with the response"""
            service = make_service(lambda request: httpx.Response(200, text="ok"))

            response = service.submit(get()).result(timeout=5)

            assert response.status_code == 200
            assert response.text == "ok"

        def test_applies_transformer(self, make_service):
            """Should complete the future with the transformed value"""
            service = make_service(lambda request: httpx.Response(200, json={"name": "a"}))

            result = service.submit(get(), lambda r: r.json()["name"]).result(timeout=5)

            assert result == "a"

        def test_many_concurrent_commands(self, make_service):
            """Should run more commands than there are connections"""
            service = make_service(lambda request: httpx.Response(200, text=request.url.path))

            futures = [service.submit(get(f"https://api.example.com/{i}")) for i in range(20)]

            paths = sorted(f.result(timeout=10).text for f in futures)
            assert paths == sorted(f"/{i}" for i in range(20))

        def test_submit_after_shutdown(self, make_service):
            """Should refuse commands once shut down"""
            service = make_service(lambda request: httpx.Response(200))
            service.shutdown(wait_seconds=2)

            with pytest.raises(LifeCycleStateError):
                service.submit(get())

    class TestErrors:
        """Tests for non-2xx responses and transport failures"""

        def test_error_handler_result(self, make_service):
            """Should fail with the error handler's exception"""
            service = make_service(lambda request: httpx.Response(404))

            future = service.submit(get())

            error = future.exception(timeout=5)
            assert str(error) == "status 404"
            assert error.status_code == 404

        def test_retries_then_succeeds(self, make_service):
            """Should requeue while the retry handler allows it"""
            calls = []

            def handler(request):
                calls.append(request)
                return httpx.Response(503) if len(calls) < 3 else httpx.Response(200)

            retry = RetryTimes(5)
            service = make_service(handler, retry_handler=retry)

            response = service.submit(get()).result(timeout=5)

            assert response.status_code == 200
            assert len(calls) == 3
            assert retry.calls == 2

        def test_retry_limit_reached(self, make_service):
            """Should fail once the retry handler gives up"""
            service = make_service(lambda request: httpx.Response(500), retry_handler=RetryTimes(2))

            error = service.submit(get()).exception(timeout=5)

            assert error.status_code == 500

        def test_resubmits_after_network_error(self, make_service):
            """Should retry on a fresh connection after a connect failure"""
            calls = []
            lock = threading.Lock()

            def handler(request):
                with lock:
                    calls.append(request)
                    first = len(calls) == 1
                if first:
                    raise httpx.ConnectError("refused", request=request)
                return httpx.Response(200)

            service = make_service(handler)

            response = service.submit(get()).result(timeout=5)

            assert response.status_code == 200
            assert len(calls) == 2

        def test_host_that_keeps_failing(self, make_service):
            """Should fail the command once resubmits run out"""
            calls = []
            lock = threading.Lock()

            def handler(request):
                with lock:
                    calls.append(request)
                raise httpx.ConnectError("refused", request=request)

            service = make_service(handler)

            error = service.submit(get()).exception(timeout=5)

            assert isinstance(error, httpx.ConnectError)
            assert len(calls) == DEFAULT_RESUBMIT_LIMIT + 1
            assert service.status == LifeCycleStatus.ACTIVE

        def test_dead_pool_is_replaced(self, make_service):
            """Should start a new pool after a fatal error killed the old one"""
            calls = []

            def handler(request):
                calls.append(request)
                if len(calls) == 1:
                    raise ValueError("transport bug")
                return httpx.Response(200)

            service = make_service(handler)

            first = service.submit(get())
            assert isinstance(first.exception(timeout=5), ValueError)
            dead_pool = service.pools[0]
            assert dead_pool.wait_for(LifeCycleStatus.SHUT_DOWN, 2)

            response = service.submit(get()).result(timeout=5)

            assert response.status_code == 200
            assert service.pools[0] is not dead_pool

    class TestPools:
        """Tests for per-endpoint pools"""

        def test_one_pool_per_endpoint(self, make_service):
            """Should create a pool for each scheme, host and port"""
            service = make_service(lambda request: httpx.Response(200))

            service.submit(get("https://a.example.com/x")).result(timeout=5)
            service.submit(get("https://a.example.com/y")).result(timeout=5)
            service.submit(get("https://b.example.com/x")).result(timeout=5)

            hosts = sorted(pool.endpoint.host for pool in service.pools)
            assert hosts == ["a.example.com", "b.example.com"]

        def test_more_endpoints_than_io_threads(self, small_io_executor, make_service):
            """Should serve endpoints whose pool loops are still waiting for a thread"""
            service = make_service(
                lambda request: httpx.Response(200, text=request.url.host),
                executor=small_io_executor,
            )
            hosts = [f"h{i}.example.com" for i in range(4)]

            for host in hosts:
                response = service.submit(get(f"https://{host}/")).result(timeout=5)
                assert response.text == host

            assert len(service.pools) == 4
            assert service.shutdown(wait_seconds=5)

        def test_pools_depend_on_service(self, make_service):
            """Should shut pools down with the service"""
            service = make_service(lambda request: httpx.Response(200))
            service.submit(get()).result(timeout=5)
            pool = service.pools[0]

            assert service.shutdown(wait_seconds=2)

            assert pool.wait_for(LifeCycleStatus.SHUT_DOWN, 2)
            assert service.pools == []

    class TestShutdown:
        """Tests for shutdown"""

        def test_fails_queued_commands(self, make_service):
            """Should fail commands still waiting when the service stops"""
            release = threading.Event()

            def handler(request):
                release.wait(2)
                return httpx.Response(200)

            service = make_service(handler)
            futures = [service.submit(get()) for _ in range(10)]

            service.shutdown(wait_seconds=0)
            release.set()
            service.wait_for(LifeCycleStatus.SHUT_DOWN, 5)

            outcomes = [f.exception(timeout=5) for f in futures]
            assert any(isinstance(e, LifeCycleStateError) for e in outcomes)
            assert service.status == LifeCycleStatus.SHUT_DOWN
