"""backporter exception classes."""


class BackporterError(Exception):
    """Base exception for all backporter errors."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ConfigurationError(BackporterError):
    """Raised when the action configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class GitHubError(BackporterError):
    """Base exception for failed GitHub API requests."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.request_id = request_id
        super().__init__(code, message)


class AuthenticationError(GitHubError):
    """Raised when the token is missing or rejected (401)."""

    pass


class AuthorizationError(GitHubError):
    """Raised when the token lacks a permission (403)."""

    pass


class NotFoundError(GitHubError):
    """Raised when a resource is not found (404)."""

    pass


class ConflictError(GitHubError):
    """Raised on conflicts (409)."""

    pass


class RateLimitedError(GitHubError):
    """Raised when rate limited."""

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: int,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, status_code, request_id)
        self.retry_after = retry_after


class ValidationError(GitHubError):
    """Raised on validation errors (422 and other client errors)."""

    pass


class ServerError(GitHubError):
    """Raised on server errors (5xx) and connection failures."""

    pass


class GitError(BackporterError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(self, message: str, command: str = "", exit_code: int | None = None) -> None:
        self.command = command
        self.exit_code = exit_code
        super().__init__("GIT_ERROR", message)

    def __str__(self) -> str:
        return self.message


class GitRefNotFoundError(GitError):
    """Raised when a ref cannot be found on the remote."""

    def __init__(self, ref: str, command: str = "", exit_code: int | None = None) -> None:
        self.ref = ref
        super().__init__(
            f"Expected to fetch '{ref}', but couldn't find it", command, exit_code
        )
