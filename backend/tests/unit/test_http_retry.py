"""Tests for the retrying HTTP transport."""

import asyncio
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from integrations.http_retry import (
    RetryableFault,
    RetryableResponse,
    Success,
    TerminalFault,
    TerminalResponse,
    classify_exception,
    classify_response,
    compute_backoff_ms,
    fetch_with_retry,
    parse_retry_after,
)

URL = "https://api.example.com/data"


def make_client(responses):
    """AsyncClient whose transport plays back ``responses`` in order.

    Items may be ints (status codes), ``httpx.Response`` objects or
    exceptions to raise.
    """
    calls = []
    queue = list(responses)

    def handler(request):
        calls.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"status": item})
        return item

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), calls


@pytest.fixture
def mock_sleep():
    with patch("integrations.http_retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestClassify:
    @pytest.mark.parametrize("status", [200, 201, 204, 304])
    def test_success(self, status):
        assert isinstance(classify_response(httpx.Response(status)), Success)

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_status(self, status):
        assert isinstance(classify_response(httpx.Response(status)), RetryableResponse)

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_terminal_status(self, status):
        assert isinstance(classify_response(httpx.Response(status)), TerminalResponse)

    def test_timeouts_and_resets_are_retryable(self):
        assert isinstance(classify_exception(asyncio.TimeoutError()), RetryableFault)
        assert isinstance(classify_exception(httpx.ReadTimeout("slow")), RetryableFault)
        assert isinstance(classify_exception(httpx.ConnectError("reset")), RetryableFault)

    def test_other_exceptions_are_terminal(self):
        assert isinstance(classify_exception(ValueError("bad")), TerminalFault)
        assert isinstance(classify_exception(httpx.UnsupportedProtocol("ftp")), TerminalFault)


class TestParseRetryAfter:
    def test_seconds(self):
        assert parse_retry_after("2") == 2000

    def test_fractional_seconds(self):
        assert parse_retry_after("0.5") == 500

    def test_http_date(self):
        now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after("Mon, 15 Jan 2024 12:00:05 GMT", now=now) == 5000

    def test_http_date_in_past_is_zero(self):
        now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after("Mon, 15 Jan 2024 11:00:00 GMT", now=now) == 0

    @pytest.mark.parametrize("value", [None, "", "   ", "soon", "-3"])
    def test_unusable_values(self, value):
        assert parse_retry_after(value) is None


class TestComputeBackoff:
    def test_grows_exponentially_with_jitter(self):
        with patch("integrations.http_retry.random.uniform", return_value=0):
            assert compute_backoff_ms(0, 100) == 100
            assert compute_backoff_ms(1, 100) == 200
            assert compute_backoff_ms(3, 100) == 800

    def test_jitter_is_bounded_by_base(self):
        for attempt in range(4):
            delay = compute_backoff_ms(attempt, 100)
            floor = 100 * 2 ** attempt
            assert floor <= delay <= floor + 100


class TestFetchWithRetry:
    @pytest.mark.asyncio
    async def test_success_makes_one_call(self, mock_sleep):
        client, calls = make_client([200])
        async with client:
            response = await fetch_with_retry("GET", URL, client=client)

        assert response.status_code == 200
        assert len(calls) == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_error_is_returned_without_retry(self, mock_sleep):
        client, calls = make_client([400])
        async with client:
            response = await fetch_with_retry("GET", URL, client=client)

        assert response.status_code == 400
        assert len(calls) == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limited_then_success(self, mock_sleep):
        client, calls = make_client([429, 200])
        async with client:
            response = await fetch_with_retry("GET", URL, client=client)

        assert response.status_code == 200
        assert len(calls) == 2
        assert mock_sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_exhaustion_returns_last_response(self, mock_sleep):
        client, calls = make_client([500, 502, 503])
        async with client:
            response = await fetch_with_retry("GET", URL, client=client, max_retries=2)

        assert response.status_code == 503
        assert len(calls) == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_zero_retries_makes_single_attempt(self, mock_sleep):
        client, calls = make_client([500])
        async with client:
            response = await fetch_with_retry("GET", URL, client=client, max_retries=0)

        assert response.status_code == 500
        assert len(calls) == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_after_header_overrides_backoff(self, mock_sleep):
        client, _ = make_client([httpx.Response(429, headers={"Retry-After": "2"}), 200])
        async with client:
            await fetch_with_retry("GET", URL, client=client, base_delay_ms=10)

        mock_sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_backoff_used_without_retry_after(self, mock_sleep):
        client, _ = make_client([503, 503, 200])
        with patch("integrations.http_retry.random.uniform", return_value=0):
            async with client:
                await fetch_with_retry("GET", URL, client=client, base_delay_ms=100)

        assert [c.args[0] for c in mock_sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_network_fault_then_success(self, mock_sleep):
        client, calls = make_client([httpx.ConnectError("connection reset"), 200])
        async with client:
            response = await fetch_with_retry("GET", URL, client=client)

        assert response.status_code == 200
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_exhausted_fault_is_reraised(self, mock_sleep):
        client, calls = make_client([httpx.ReadTimeout("slow")] * 3)
        async with client:
            with pytest.raises(httpx.ReadTimeout):
                await fetch_with_retry("GET", URL, client=client, max_retries=2)

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_terminal_fault_raises_immediately(self, mock_sleep):
        client, calls = make_client([ValueError("broken request")])
        async with client:
            with pytest.raises(ValueError, match="broken request"):
                await fetch_with_retry("GET", URL, client=client)

        assert len(calls) == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_per_attempt_deadline(self, mock_sleep):
        """An attempt that exceeds its deadline is retried."""
        client = AsyncMock()
        ok = httpx.Response(200)
        state = {"calls": 0}

        async def request(method, url, **kwargs):
            state["calls"] += 1
            if state["calls"] == 1:
                await asyncio.Event().wait()  # never completes
            return ok

        client.request = request
        response = await fetch_with_retry("GET", URL, client=client, timeout_ms=20)

        assert response is ok
        assert state["calls"] == 2

    @pytest.mark.asyncio
    async def test_passes_request_kwargs(self, mock_sleep):
        client, calls = make_client([200])
        async with client:
            await fetch_with_retry(
                "POST", URL, client=client, json={"a": 1}, headers={"X-Test": "yes"}
            )

        assert calls[0].method == "POST"
        assert calls[0].headers["X-Test"] == "yes"
        assert calls[0].content == b'{"a":1}' or calls[0].content == b'{"a": 1}'

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, mock_sleep, caplog):
        client, _ = make_client([500, 200])
        with caplog.at_level(logging.WARNING, logger="integrations.http_retry"):
            async with client:
                await fetch_with_retry("GET", URL, client=client, label="SimpleFIN")

        assert "SimpleFIN: HTTP 500, retrying in" in caplog.text
        assert "(attempt 1/4)" in caplog.text

    @pytest.mark.asyncio
    async def test_attempt_timeout_reaches_httpx(self, mock_sleep):
        """httpx's 5s default must not undercut a longer per-attempt deadline."""
        client, calls = make_client([200])
        async with client:
            await fetch_with_retry("GET", URL, client=client, timeout_ms=9000)

        assert calls[0].extensions["timeout"] == {
            "connect": 9.0,
            "read": 9.0,
            "write": 9.0,
            "pool": 9.0,
        }

    @pytest.mark.asyncio
    async def test_owned_client_uses_attempt_timeout(self, mock_sleep):
        real_client = httpx.AsyncClient
        created = []
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        def factory(**kwargs):
            created.append(kwargs)
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        with patch("integrations.http_retry.httpx.AsyncClient", side_effect=factory):
            response = await fetch_with_retry("GET", URL, timeout_ms=12000)

        assert response.status_code == 200
        assert created == [{"timeout": 12.0}]
        assert calls[0].extensions["timeout"]["read"] == 12.0

    @pytest.mark.asyncio
    async def test_slow_server_within_deadline(self):
        """A real server that answers late but inside the deadline succeeds."""

        async def handle(reader, writer):
            await reader.readuntil(b"\r\n\r\n")
            await asyncio.sleep(0.3)
            writer.write(
                b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\nConnection: close\r\n\r\nok"
            )
            await writer.drain()
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server, httpx.AsyncClient(trust_env=False) as client:
            response = await fetch_with_retry(
                "GET",
                f"http://127.0.0.1:{port}/",
                client=client,
                max_retries=0,
                timeout_ms=2000,
            )

        assert response.status_code == 200
        assert response.text == "ok"
