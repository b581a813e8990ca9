"""
Property-based tests for the GitHub HTTP transport.

Covers retry logic, backoff timing and error response parsing.
"""

import asyncio
import json

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from backporter.exceptions import (
    AuthorizationError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from backporter.transport import AsyncHTTPTransport, RetryConfig

# Strategies for generating test data
backoff_factor_strategy = st.floats(min_value=1.1, max_value=5.0)
attempt_strategy = st.integers(min_value=0, max_value=5)
jitter_strategy = st.floats(min_value=0.0, max_value=0.5)
retry_after_strategy = st.integers(min_value=1, max_value=120)


def _transport(
    config: RetryConfig | None = None,
    handler=None,
) -> AsyncHTTPTransport:
    return AsyncHTTPTransport(
        base_url="https://api.github.com",
        token="ghp_test",
        retry_config=config,
        transport=httpx.MockTransport(handler) if handler else None,
    )


def _response(status_code: int, body=None, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=body,
        headers=headers,
        request=httpx.Request("GET", "https://api.github.com/repos/o/r"),
    )


@given(
    backoff_factor=backoff_factor_strategy,
    attempt=attempt_strategy,
    jitter=jitter_strategy,
)
@settings(max_examples=100)
def test_exponential_backoff_timing(backoff_factor: float, attempt: int, jitter: float) -> None:
    """
    Property 1: Exponential backoff timing

    For any retry attempt without a Retry-After header, the wait time SHALL be
    backoff_factor ** attempt within the jitter range, capped at max_backoff.
    """
    config = RetryConfig(backoff_factor=backoff_factor, jitter=jitter, max_backoff=60.0)
    transport = _transport(config)

    actual = transport._get_backoff_time(attempt, None)

    base_wait = backoff_factor ** attempt
    jitter_range = base_wait * jitter
    lower = min(base_wait - jitter_range, config.max_backoff)
    upper = min(base_wait + jitter_range, config.max_backoff)
    assert lower - 1e-9 <= actual <= upper + 1e-9, (
        f"Backoff {actual} outside [{lower}, {upper}] for attempt {attempt}"
    )


@given(retry_after=retry_after_strategy, attempt=attempt_strategy)
@settings(max_examples=100)
def test_retry_after_header_respected(retry_after: int, attempt: int) -> None:
    """
    Property 2: Retry-After is respected

    For any Retry-After header value, the wait time SHALL be that value,
    capped at max_backoff.
    """
    config = RetryConfig(max_backoff=60.0)
    transport = _transport(config)

    actual = transport._get_backoff_time(attempt, str(retry_after))

    assert actual == min(float(retry_after), 60.0)


def test_invalid_retry_after_falls_back_to_backoff() -> None:
    """An unparseable Retry-After header uses exponential backoff."""
    transport = _transport(RetryConfig(backoff_factor=2.0, jitter=0.0))

    assert transport._get_backoff_time(2, "Wed, 21 Oct 2015 07:28:00 GMT") == 4.0


@given(
    status_code=st.sampled_from([429, 500, 502, 503]),
    attempt=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=100)
def test_retryable_status_codes(status_code: int, attempt: int) -> None:
    """
    Property 3: Retryable status codes

    For any retryable status code below max_retries, the request SHALL be
    retried.
    """
    transport = _transport(RetryConfig(max_retries=3))

    assert transport._should_retry(status_code, attempt)


@given(
    status_code=st.sampled_from([400, 401, 403, 404, 409, 422]),
    attempt=st.integers(min_value=0, max_value=2),
)
@settings(max_examples=100)
def test_client_errors_are_not_retried(status_code: int, attempt: int) -> None:
    """
    Property 3: Retryable status codes

    For any client error status code, the request SHALL NOT be retried.
    """
    transport = _transport(RetryConfig(max_retries=3))

    assert not transport._should_retry(status_code, attempt)


def test_max_retries_exceeded() -> None:
    """Test that retries stop after max_retries is reached."""
    transport = _transport(RetryConfig(max_retries=2))

    assert not transport._should_retry(500, 2), "Should not retry at max_retries"
    assert not transport._should_retry(500, 3), "Should not retry beyond max_retries"
    assert transport._should_retry(500, 0), "Should retry at attempt 0"
    assert transport._should_retry(500, 1), "Should retry at attempt 1"


def test_backoff_respects_max_backoff() -> None:
    """Test that backoff time is capped at max_backoff."""
    config = RetryConfig(backoff_factor=10.0, max_backoff=5.0, jitter=0.0)
    transport = _transport(config)

    actual = transport._get_backoff_time(3, None)

    assert actual == 5.0, f"Expected max_backoff 5.0, got {actual}"


# Status code to exception type mapping for property test
STATUS_CODE_TO_EXCEPTION = {
    401: "AuthenticationError",
    403: "AuthorizationError",
    404: "NotFoundError",
    409: "ConflictError",
    429: "RateLimitedError",
    500: "ServerError",
    502: "ServerError",
    503: "ServerError",
    400: "ValidationError",
    422: "ValidationError",
}


@given(
    status_code=st.sampled_from(list(STATUS_CODE_TO_EXCEPTION)),
    error_message=st.text(min_size=1, max_size=200),
    request_id=st.text(
        min_size=1,
        max_size=50,
        alphabet=st.sampled_from("ABCDEF0123456789:"),
    ),
    retry_after=st.integers(min_value=1, max_value=3600),
)
@settings(max_examples=100)
def test_property_error_response_parsing(
    status_code: int,
    error_message: str,
    request_id: str,
    retry_after: int,
) -> None:
    """
    Property 4: Error response parsing

    For any error response from GitHub, the transport SHALL parse it into a
    typed exception carrying the message, status code and request id, and
    for rate limit errors the Retry-After seconds.
    """
    transport = _transport()
    response = _response(
        status_code,
        body={"message": error_message, "documentation_url": "https://docs.github.com"},
        headers={"X-GitHub-Request-Id": request_id, "Retry-After": str(retry_after)},
    )

    error = transport._parse_error_response(response)

    expected_type = STATUS_CODE_TO_EXCEPTION[status_code]
    assert type(error).__name__ == expected_type, (
        f"Expected {expected_type} for status {status_code}, got {type(error).__name__}"
    )
    assert error.message == error_message
    assert error.status_code == status_code
    assert error.request_id == request_id

    if status_code == 429:
        assert isinstance(error, RateLimitedError)
        assert error.retry_after == retry_after


def test_error_details_are_appended_to_message() -> None:
    """Messages from the errors list are joined onto the main message."""
    transport = _transport()
    response = _response(
        422,
        body={
            "message": "Validation Failed",
            "errors": [
                {"resource": "PullRequest", "code": "custom", "message": "A pull request already exists for o:b."},
                {"resource": "PullRequest", "code": "missing"},
            ],
        },
    )

    error = transport._parse_error_response(response)

    assert isinstance(error, ValidationError)
    assert error.code == "VALIDATION_FAILED"
    assert error.message == "Validation Failed: A pull request already exists for o:b."


def test_exhausted_rate_limit_on_403_is_rate_limited() -> None:
    """A 403 with no remaining rate limit is a rate limit, not a permission error."""
    transport = _transport()

    limited = transport._parse_error_response(
        _response(403, {"message": "API rate limit exceeded"}, {"X-RateLimit-Remaining": "0"})
    )
    forbidden = transport._parse_error_response(
        _response(403, {"message": "Resource not accessible by integration"})
    )

    assert isinstance(limited, RateLimitedError)
    assert limited.retry_after == 60
    assert isinstance(forbidden, AuthorizationError)
    assert forbidden.code == "FORBIDDEN"


def test_non_json_error_body() -> None:
    """An error without a JSON body still maps to a typed exception."""
    transport = _transport()
    response = httpx.Response(
        502, text="<html>Bad Gateway</html>", request=httpx.Request("GET", "https://api.github.com/")
    )

    error = transport._parse_error_response(response)

    assert isinstance(error, ServerError)
    assert error.message == "HTTP 502"


def test_request_sends_token_and_parses_json() -> None:
    """Requests carry the bearer token and GitHub headers."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"number": 1})

    async def run() -> object:
        async with _transport(handler=handler) as transport:
            return await transport.request("POST", "/repos/o/r/issues/1/comments", body={"body": "hi"})

    data = asyncio.run(run())

    assert data == {"number": 1}
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer ghp_test"
    assert request.headers["Accept"] == "application/vnd.github+json"
    assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"
    assert json.loads(request.content) == {"body": "hi"}


def test_no_content_response_returns_none() -> None:
    async def run() -> object:
        transport = _transport(handler=lambda request: httpx.Response(204))
        try:
            return await transport.request("DELETE", "/repos/o/r/issues/1/labels/x")
        finally:
            await transport.close()

    assert asyncio.run(run()) is None


def test_retries_server_errors_until_success() -> None:
    """Retryable responses are retried and the final success is returned."""
    statuses = iter([502, 503, 200])
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        calls.append(status)
        return httpx.Response(status, json={"ok": status == 200})

    async def run() -> object:
        # max_backoff=0 keeps the retries from sleeping
        transport = _transport(RetryConfig(max_retries=3, max_backoff=0.0), handler)
        try:
            return await transport.request("GET", "/repos/o/r")
        finally:
            await transport.close()

    data = asyncio.run(run())

    assert data == {"ok": True}
    assert calls == [502, 503, 200]


def test_gives_up_after_max_retries() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"message": "Service Unavailable"})

    async def run() -> object:
        transport = _transport(RetryConfig(max_retries=2, max_backoff=0.0), handler)
        try:
            return await transport.request("GET", "/repos/o/r")
        finally:
            await transport.close()

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.status_code == 503
    assert len(calls) == 3


def test_non_retryable_error_is_raised_immediately() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"message": "Not Found"})

    async def run() -> object:
        transport = _transport(RetryConfig(max_retries=3), handler)
        try:
            return await transport.request("GET", "/repos/o/r/pulls/999")
        finally:
            await transport.close()

    with pytest.raises(NotFoundError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.message == "Not Found"
    assert len(calls) == 1


def test_connection_errors_become_server_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run() -> object:
        transport = _transport(RetryConfig(max_retries=0), handler)
        try:
            return await transport.request("GET", "/repos/o/r")
        finally:
            await transport.close()

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.code == "CONNECTION_ERROR"


def test_graphql_errors_raise_validation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"data": None, "errors": [{"message": "Pull request is in clean status"}]},
        )

    async def run() -> object:
        transport = _transport(handler=handler)
        try:
            return await transport.graphql("mutation { x }", {"id": "PR_1"})
        finally:
            await transport.close()

    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.code == "GRAPHQL_ERROR"
    assert exc_info.value.message == "Pull request is in clean status"


def test_graphql_returns_data() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"viewer": {"login": "octocat"}}})

    async def run() -> object:
        transport = _transport(handler=handler)
        try:
            return await transport.graphql("query { viewer { login } }")
        finally:
            await transport.close()

    assert asyncio.run(run()) == {"viewer": {"login": "octocat"}}
    assert seen == [{"query": "query { viewer { login } }", "variables": {}}]
