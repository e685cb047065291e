"""Tests for the LlamaParse document converter."""

import json
from collections.abc import Callable

import httpx
import pytest

from ocw_pipeline.conversion.llamaparse import DocumentConverter, extract_markdown
from ocw_pipeline.conversion.rate_limiter import SlidingWindowRateLimiter
from ocw_pipeline.errors import ConversionFailedError, ConversionTimeoutError

BASE_URL = "https://llama.example.com/api/v2/parse"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


def _completed(*pages: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "job": {"id": "job-1", "status": "COMPLETED"},
            "markdown": {"pages": [{"markdown": p} for p in pages]},
        },
    )


def _not_ready() -> httpx.Response:
    return httpx.Response(400, json={"detail": "Job not completed yet"})


def _converter(
    upload: Handler,
    polls: list[httpx.Response],
    *,
    clock: FakeClock | None = None,
    requests: list[httpx.Request] | None = None,
) -> tuple[DocumentConverter, SlidingWindowRateLimiter]:
    clock = clock or FakeClock()
    responses = iter(polls)

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if request.method == "POST":
            return upload(request)
        return next(responses)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    limiter = SlidingWindowRateLimiter(20, 60, clock=clock, sleep=clock.sleep)
    converter = DocumentConverter(
        client,
        limiter,
        api_key="llx-test",
        base_url=BASE_URL + "/",
        poll_interval=5.0,
        timeout=30.0,
        clock=clock,
        sleep=clock.sleep,
    )
    return converter, limiter


def _accepted(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"id": "job-1"})


class TestExtractMarkdown:
    def test_pages_joined(self) -> None:
        payload = {"markdown": {"pages": [{"markdown": "# P1"}, {"markdown": "P2"}]}}
        assert extract_markdown(payload) == "# P1\n\nP2"

    def test_plain_string(self) -> None:
        assert extract_markdown({"markdown": "text"}) == "text"

    def test_missing(self) -> None:
        assert extract_markdown({}) == ""
        assert extract_markdown({"markdown": {"pages": None}}) == ""


class TestDocumentConverter:
    async def test_convert_polls_until_completed(self) -> None:
        requests: list[httpx.Request] = []
        converter, limiter = _converter(
            _accepted,
            [_not_ready(), _not_ready(), _completed("Problem 1", "Problem 2")],
            requests=requests,
        )

        markdown = await converter.convert(b"%PDF-1.4", "ps1.pdf")

        assert markdown == "Problem 1\n\nProblem 2"
        assert limiter.in_window == 1
        upload = requests[0]
        assert str(upload.url) == f"{BASE_URL}/upload"
        assert upload.headers["Authorization"] == "Bearer llx-test"
        assert b"ps1.pdf" in upload.content
        assert b'"tier": "cost_effective"' in upload.content
        status = requests[1]
        assert status.url.path.endswith("/job-1")
        assert status.url.params["expand"] == "markdown"
        assert len(requests) == 4

    async def test_empty_markdown_returned(self) -> None:
        converter, _ = _converter(_accepted, [_completed()])
        assert await converter.convert(b"%PDF", "blank.pdf") == ""

    @pytest.mark.parametrize("status", ["ERROR", "FAILED"])
    async def test_terminal_failure(self, status: str) -> None:
        failed = httpx.Response(200, json={"job": {"id": "job-1", "status": status}})
        converter, _ = _converter(_accepted, [failed])
        with pytest.raises(ConversionFailedError, match="job-1"):
            await converter.convert(b"%PDF", "ps1.pdf")

    async def test_timeout(self) -> None:
        clock = FakeClock()
        converter, _ = _converter(_accepted, [_not_ready()] * 10, clock=clock)
        with pytest.raises(ConversionTimeoutError) as exc_info:
            await converter.convert(b"%PDF", "ps1.pdf")
        assert exc_info.value.job_id == "job-1"
        assert clock.now >= 30.0

    async def test_other_400_rejected(self) -> None:
        bad = httpx.Response(400, json={"detail": "Unsupported file"})
        converter, _ = _converter(_accepted, [bad])
        with pytest.raises(ConversionFailedError, match="Unsupported file"):
            await converter.convert(b"%PDF", "ps1.pdf")

    async def test_server_error_on_poll(self) -> None:
        converter, _ = _converter(_accepted, [httpx.Response(502, text="bad gateway")])
        with pytest.raises(ConversionFailedError, match="502"):
            await converter.convert(b"%PDF", "ps1.pdf")

    async def test_non_json_status_body(self) -> None:
        converter, _ = _converter(_accepted, [httpx.Response(200, text="<html>")])
        with pytest.raises(ConversionFailedError, match="non-JSON"):
            await converter.convert(b"%PDF", "ps1.pdf")

    async def test_upload_rejected(self) -> None:
        def rejected(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="invalid key")

        converter, _ = _converter(rejected, [])
        with pytest.raises(ConversionFailedError, match="401"):
            await converter.upload(b"%PDF", "ps1.pdf")

    async def test_upload_without_job_id(self) -> None:
        def no_id(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps({"status": "ok"}))

        converter, _ = _converter(no_id, [])
        with pytest.raises(ConversionFailedError, match="no job id"):
            await converter.upload(b"%PDF", "ps1.pdf")

    async def test_upload_transport_error(self) -> None:
        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        converter, _ = _converter(broken, [])
        with pytest.raises(ConversionFailedError, match="refused"):
            await converter.upload(b"%PDF", "ps1.pdf")

    async def test_uploads_share_limiter(self) -> None:
        converter, limiter = _converter(_accepted, [])
        for n in range(3):
            await converter.upload(b"%PDF", f"ps{n}.pdf")
        assert limiter.in_window == 3
