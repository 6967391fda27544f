"""
Tests for fetch_retry HTTP retry handlers.

Test coverage includes:
- Decision/Branch coverage: replayable, limit and Location checks
- Boundary value testing: the retry and redirect limits
- State transition testing: once past the limit, always False
"""

import httpx
import pytest

from fetch_command import HttpCommand
from fetch_retry.handlers import (
    BackoffLimitedRetryHandler,
    DelegatingRetryHandler,
    RedirectionRetryHandler,
    create_retry_handler,
)
from fetch_retry.types import RetryConfig


def make_command(method="GET", url="https://bucket.s3.amazonaws.com/key", content=None):
    return HttpCommand(httpx.Request(method, url, content=content))


def streamed():
    yield b"data"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def backoff(sleeps):
    return BackoffLimitedRetryHandler(RetryConfig(max_retries=3), sleep=sleeps.append)


class TestBackoffLimitedRetryHandler:
    """Tests for BackoffLimitedRetryHandler."""

    def test_retries_until_limit(self, backoff):
        """Should allow exactly max_retries retries."""
        command = make_command()
        response = httpx.Response(500)

        answers = [backoff.should_retry_request(command, response) for _ in range(4)]

        assert answers == [True, True, True, False]
        assert command.failure_count == 4

    def test_stays_false_after_limit(self, backoff):
        """Should keep refusing once the limit is passed."""
        command = make_command()
        response = httpx.Response(503)
        for _ in range(4):
            backoff.should_retry_request(command, response)

        assert not any(backoff.should_retry_request(command, response) for _ in range(3))

    def test_quadratic_delays(self, backoff, sleeps):
        """Should sleep base * failures squared, capped."""
        command = make_command()
        for _ in range(3):
            backoff.should_retry_request(command, httpx.Response(500))

        assert sleeps == pytest.approx([0.05, 0.2, 0.45])

    def test_not_replayable(self, backoff, sleeps):
        """Should refuse a command with a streamed body without counting it."""
        command = make_command("PUT", content=streamed())

        assert backoff.should_retry_request(command, httpx.Response(500)) is False
        assert command.failure_count == 0
        assert sleeps == []

    def test_respects_retry_after_on_429(self, sleeps):
        """Should wait at least Retry-After, capped by max delay."""
        handler = BackoffLimitedRetryHandler(
            RetryConfig(max_delay_seconds=2.0), sleep=sleeps.append
        )
        response = httpx.Response(429, headers={"Retry-After": "1"})

        handler.should_retry_request(make_command(), response)

        assert sleeps == [1.0]

    def test_retry_after_capped(self, sleeps):
        """Should not wait longer than max delay for a large Retry-After."""
        handler = BackoffLimitedRetryHandler(sleep=sleeps.append)
        response = httpx.Response(429, headers={"Retry-After": "120"})

        handler.should_retry_request(make_command(), response)

        assert sleeps == [0.5]

    def test_resubmit_until_limit(self, backoff, sleeps):
        """Should allow max_retries resubmits after transport errors, backing off each time."""
        command = make_command()
        error = httpx.ConnectError("refused")

        answers = [backoff.should_resubmit(command, error) for _ in range(5)]

        assert answers == [True, True, True, False, False]
        assert command.failure_count == 5
        assert sleeps == pytest.approx([0.05, 0.2, 0.45])

    def test_resubmits_share_budget_with_retries(self, backoff):
        """Should count transport errors and server errors against one limit."""
        command = make_command()
        backoff.should_retry_request(command, httpx.Response(503))
        backoff.should_resubmit(command, httpx.ReadTimeout("slow"))
        backoff.should_retry_request(command, httpx.Response(503))

        assert backoff.should_resubmit(command, httpx.ReadTimeout("slow")) is False


class TestRedirectionRetryHandler:
    """Tests for RedirectionRetryHandler."""

    @pytest.fixture
    def redirection(self, backoff):
        return RedirectionRetryHandler(backoff, RetryConfig(max_redirects=2))

    def test_follows_redirect_to_other_host(self, redirection):
        """Should point the command at the Location host, keeping the path."""
        command = make_command(url="https://bucket.s3.amazonaws.com/key?acl")
        response = httpx.Response(
            307, headers={"Location": "https://bucket.s3-eu-west-1.amazonaws.com/other"}
        )

        assert redirection.should_retry_request(command, response) is True

        url = command.current_request.url
        assert url.host == "bucket.s3-eu-west-1.amazonaws.com"
        assert url.path == "/key"
        assert command.current_request.headers["host"] == "bucket.s3-eu-west-1.amazonaws.com"
        assert command.redirect_count == 1

    def test_follows_port_and_scheme(self, redirection):
        """Should change scheme and port along with the host."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(302, headers={"Location": "http://b.example.com:8080/x"})

        redirection.should_retry_request(command, response)

        assert str(command.current_request.url) == "http://b.example.com:8080/x"

    def test_same_host_delegates_to_backoff(self, redirection, sleeps):
        """Should back off when redirected to the same host."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(307, headers={"Location": "/x"})

        assert redirection.should_retry_request(command, response) is True

        assert command.failure_count == 1
        assert sleeps == pytest.approx([0.05])
        assert command.current_request.url.host == "a.example.com"

    def test_follows_scheme_change_on_same_host(self, redirection, sleeps):
        """Should follow http to https on one host instead of backing off."""
        command = make_command(url="http://a.example.com/x?y=1")
        response = httpx.Response(301, headers={"Location": "https://a.example.com/x?y=1"})

        assert redirection.should_retry_request(command, response) is True

        assert str(command.current_request.url) == "https://a.example.com/x?y=1"
        assert command.failure_count == 0
        assert sleeps == []

    def test_follows_port_change_on_same_host(self, redirection, sleeps):
        """Should follow a redirect to another port on one host."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(307, headers={"Location": "https://a.example.com:8443/x"})

        assert redirection.should_retry_request(command, response) is True

        assert command.current_request.url.port == 8443
        assert sleeps == []

    def test_explicit_default_port_is_same_origin(self, redirection, sleeps):
        """Should treat an explicit default port as the same endpoint."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(307, headers={"Location": "https://a.example.com:443/x"})

        assert redirection.should_retry_request(command, response) is True

        assert command.failure_count == 1
        assert sleeps == pytest.approx([0.05])

    def test_unsupported_location_scheme(self, redirection):
        """Should not follow a redirect to a scheme it cannot pool."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(302, headers={"Location": "ftp://files.example.com/x"})

        assert redirection.should_retry_request(command, response) is False
        assert command.current_request.url.host == "a.example.com"

    def test_relative_location_resolved(self, redirection):
        """Should resolve a relative Location against the request URL."""
        command = make_command(url="https://a.example.com/dir/x")
        response = httpx.Response(301, headers={"Location": "//b.example.com/y"})

        redirection.should_retry_request(command, response)

        assert command.current_request.url.host == "b.example.com"

    def test_missing_location(self, redirection):
        """Should not retry without a Location header."""
        assert redirection.should_retry_request(make_command(), httpx.Response(302)) is False

    def test_redirect_limit(self, redirection):
        """Should stop after max_redirects and stay stopped."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(302, headers={"Location": "https://b.example.com/x"})

        answers = [redirection.should_retry_request(command, response) for _ in range(4)]

        assert answers == [True, True, False, False]

    def test_not_replayable(self, redirection):
        """Should not follow a redirect for a streamed body."""
        command = make_command("PUT", content=streamed())
        response = httpx.Response(307, headers={"Location": "https://b.example.com/x"})

        assert redirection.should_retry_request(command, response) is False

    def test_see_other_switches_post_to_get(self, redirection):
        """Should turn a POST into a GET on 303."""
        command = make_command("POST", url="https://a.example.com/form", content=b"a=1")
        response = httpx.Response(303, headers={"Location": "https://b.example.com/result"})

        redirection.should_retry_request(command, response)

        assert command.current_request.method == "GET"
        assert command.current_request.content == b""

    def test_see_other_keeps_head(self, redirection):
        """Should keep HEAD on 303."""
        command = make_command("HEAD", url="https://a.example.com/x")
        response = httpx.Response(303, headers={"Location": "https://b.example.com/x"})

        redirection.should_retry_request(command, response)

        assert command.current_request.method == "HEAD"


class TestDelegatingRetryHandler:
    """Tests for DelegatingRetryHandler."""

    @pytest.fixture
    def delegating(self, backoff):
        redirection = RedirectionRetryHandler(backoff)
        return DelegatingRetryHandler(redirection, backoff)

    def test_redirects_go_to_redirection(self, delegating):
        """Should follow 3xx responses."""
        command = make_command(url="https://a.example.com/x")
        response = httpx.Response(301, headers={"Location": "https://b.example.com/x"})

        assert delegating.should_retry_request(command, response) is True
        assert command.redirect_count == 1

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_server_errors_go_to_backoff(self, delegating, status):
        """Should back off on throttling and server errors."""
        command = make_command()

        assert delegating.should_retry_request(command, httpx.Response(status)) is True
        assert command.failure_count == 1

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409])
    def test_client_errors_not_retried(self, delegating, status):
        """Should not retry client errors."""
        command = make_command()

        assert delegating.should_retry_request(command, httpx.Response(status)) is False
        assert command.failure_count == 0


class TestCreateRetryHandler:
    """Tests for create_retry_handler."""

    def test_wires_handlers_from_config(self, sleeps):
        """Should share one config across the handlers."""
        handler = create_retry_handler(RetryConfig(max_retries=1), sleep=sleeps.append)
        command = make_command()

        assert handler.should_retry_request(command, httpx.Response(500)) is True
        assert handler.should_retry_request(command, httpx.Response(500)) is False

    def test_exposes_backoff_handler(self, sleeps):
        """Should expose the backoff handler used for resubmits."""
        handler = create_retry_handler(RetryConfig(max_retries=1), sleep=sleeps.append)
        command = make_command()

        assert isinstance(handler.backoff_handler, BackoffLimitedRetryHandler)
        assert handler.backoff_handler.should_resubmit(command, httpx.ConnectError("refused")) is True
        assert handler.should_retry_request(command, httpx.Response(500)) is False
        assert sleeps == pytest.approx([0.05])
