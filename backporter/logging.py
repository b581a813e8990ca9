"""
backporter logging utilities.

Provides configurable logging for the orchestrator, the GitHub HTTP transport
and git invocations. Ensures tokens never reach the log output.
"""

import logging
import re
from typing import Any

_root_logger = logging.getLogger("backporter")
_http_logger = logging.getLogger("backporter.http")
_git_logger = logging.getLogger("backporter.git")

# Patterns for sensitive data that should be masked
_SENSITIVE_PATTERNS = [
    # GitHub tokens: classic PAT, fine-grained PAT, app installation, OAuth
    (re.compile(r"github_pat_[A-Za-z0-9_]{20,}"), "[TOKEN_REDACTED]"),
    (re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,}"), "[TOKEN_REDACTED]"),
    # Authorization headers
    (re.compile(r"(Bearer|token)\s+[A-Za-z0-9_\-\.]{8,}", re.IGNORECASE), r"\1 [REDACTED]"),
    # Credentials embedded in remote URLs
    (re.compile(r"(https?://)[^/@\s:]+(:[^/@\s]+)?@"), r"\1[REDACTED]@"),
    # Secret/token patterns
    (re.compile(r"(secret|token|password|api_key)['\"]?\s*[:=]\s*['\"][^'\"]+['\"]", re.IGNORECASE), r"\1: [REDACTED]"),
]

_DEFAULT_SENSITIVE_KEYS = {"authorization", "token", "secret", "password", "api_key"}


def configure_logging(
    level: int = logging.INFO,
    http_level: int | None = None,
    git_level: int | None = None,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure backporter logging.

    Args:
        level: Default log level for all backporter loggers (default: INFO)
        http_level: Log level for GitHub request/response logging (default: same as level)
        git_level: Log level for git invocations (default: same as level)
        handler: Custom handler to use (default: StreamHandler to stderr)
        format_string: Custom format string (default: includes timestamp, level, logger name)

    Example:
        ```python
        import logging
        from backporter.logging import configure_logging

        # Show every GitHub request while debugging a workflow
        configure_logging(level=logging.INFO, http_level=logging.DEBUG)
        ```
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string)

    if handler is None:
        handler = logging.StreamHandler()

    handler.setFormatter(formatter)

    _root_logger.setLevel(level)
    _root_logger.addHandler(handler)

    _http_logger.setLevel(http_level if http_level is not None else level)
    _git_logger.setLevel(git_level if git_level is not None else level)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a backporter logger.

    Args:
        name: Logger name suffix (e.g., "http", "git", "dashboard"). If None,
            returns the main backporter logger.

    Returns:
        Logger instance
    """
    if name is None:
        return _root_logger
    return logging.getLogger(f"backporter.{name}")


def mask_sensitive_data(text: str) -> str:
    """
    Mask sensitive data in a string.

    Replaces GitHub tokens, authorization headers and credentials embedded in
    URLs with redacted placeholders.

    Args:
        text: Text that may contain sensitive data

    Returns:
        Text with sensitive data masked
    """
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def safe_log_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """
    Create a copy of a dictionary with sensitive values masked.

    Args:
        data: Dictionary that may contain sensitive values
        sensitive_keys: Set of keys to mask (default: authorization, token, secret, password, api_key)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if sensitive_keys is None:
        sensitive_keys = _DEFAULT_SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower()
        if key_lower in sensitive_keys or any(sk in key_lower for sk in sensitive_keys):
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = safe_log_dict(value, sensitive_keys)
        elif isinstance(value, list):
            result[key] = [
                safe_log_dict(item, sensitive_keys) if isinstance(item, dict) else item
                for item in value
            ]
        elif isinstance(value, str):
            result[key] = mask_sensitive_data(value)
        else:
            result[key] = value

    return result


def log_http_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
) -> None:
    """
    Log a GitHub API request at DEBUG level with sensitive data masked.

    Args:
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        headers: Request headers (optional)
        body: Request body (optional)
    """
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"{method} {url}"]

    if headers:
        log_parts.append(f"headers={safe_log_dict(headers)}")

    if body:
        log_parts.append(f"body={safe_log_dict(body)}")

    _http_logger.debug(" | ".join(log_parts))


def log_http_response(
    status_code: int,
    url: str,
    body: Any = None,
    elapsed_ms: float | None = None,
) -> None:
    """
    Log a GitHub API response at DEBUG level with sensitive data masked.

    Args:
        status_code: HTTP status code
        url: Request URL
        body: Response body (optional)
        elapsed_ms: Request duration in milliseconds (optional)
    """
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"Response {status_code} from {url}"]

    if elapsed_ms is not None:
        log_parts.append(f"elapsed={elapsed_ms:.2f}ms")

    if isinstance(body, dict) and body:
        log_parts.append(f"body={safe_log_dict(body)}")
    elif isinstance(body, list):
        log_parts.append(f"items={len(body)}")

    _http_logger.debug(" | ".join(log_parts))


def log_git_command(args: list[str], exit_code: int, output: str | None = None) -> None:
    """
    Log a finished git invocation.

    Non-zero exits are logged at WARNING so that they show up in the action
    log without debug logging; the caller decides whether it is fatal.

    Args:
        args: Arguments passed to git (without the leading "git")
        exit_code: Exit status of the process
        output: Captured stderr/stdout (optional)
    """
    command = mask_sensitive_data(" ".join(["git", *args]))
    level = logging.DEBUG if exit_code == 0 else logging.WARNING
    if not _git_logger.isEnabledFor(level):
        return

    message = f"{command} exited with {exit_code}"
    if output:
        message += f"\n{mask_sensitive_data(output.rstrip())}"
    _git_logger.log(level, message)


# Export public API
__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "safe_log_dict",
    "log_http_request",
    "log_http_response",
    "log_git_command",
]
