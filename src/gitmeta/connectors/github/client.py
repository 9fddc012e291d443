"""GitHub REST API client.

Provides an async httpx-based client for the GitHub REST API (v2022-11-28):
one authenticated GET with typed failures, page-number pagination, and
token validation against ``/rate_limit``.

Requests are issued one at a time; there is no retry or backoff. A 403 is
reported as RateLimitExceeded and every other failure as RequestFailure, and
both propagate to the caller unchanged.

Reference: https://docs.github.com/en/rest
Rate limits: https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from gitmeta import metrics
from gitmeta.config import DEFAULT_API_URL, DEFAULT_USER_AGENT, GitMetaConfig

logger = logging.getLogger("gitmeta.github.client")

API_VERSION = "2022-11-28"

# Reset header is epoch seconds; trailing junk after the digits is ignored
_LEADING_DIGITS = re.compile(r"\s*(\d+)")


class GitHubClientError(Exception):
    """Raised when a GitHub API request fails."""


class RateLimitExceeded(GitHubClientError):
    """Raised on HTTP 403, GitHub's rate-limit signal.

    Attributes:
        message: Human-readable description including a body excerpt
        reset_at: Reset time in epoch milliseconds, when the response said
    """

    def __init__(self, message: str, reset_at: int | None = None) -> None:
        self.message = message
        self.reset_at = reset_at
        super().__init__(message)

    @property
    def reset_datetime(self) -> datetime | None:
        if self.reset_at is None:
            return None
        return datetime.fromtimestamp(self.reset_at / 1000, tz=timezone.utc)


class RequestFailure(GitHubClientError):
    """Raised on non-2xx responses (other than 403) and transport errors.

    Attributes:
        status: HTTP status code, None for transport errors
        url: Full request URL
        body: Response body, truncated
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        url: str | None = None,
        body: str = "",
    ) -> None:
        self.message = message
        self.status = status
        self.url = url
        self.body = body
        super().__init__(message)


def build_headers(
    token: str | None = None, user_agent: str = DEFAULT_USER_AGENT
) -> dict[str, str]:
    """Build the header set shared by every request of one export.

    The Authorization header is only present for a non-blank token.
    """
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": API_VERSION,
        "User-Agent": user_agent,
    }
    trimmed = (token or "").strip()
    if trimmed:
        headers["Authorization"] = f"Bearer {trimmed}"
    return headers


def _iso_millis(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class GitHubClient:
    """GitHub REST API client using httpx.

    Attributes:
        base_url: GitHub API base URL (default: https://api.github.com)
        headers: Header set sent with every request

    Example:
        >>> async with GitHubClient("ghp_token") as client:
        ...     summary = await client.fetch_json("/repos/owner/repo")
        ...     issues = await client.paginate("/repos/owner/repo/issues", {"state": "all"})
    """

    # Page size for every paginated endpoint; a shorter page is the last one
    PER_PAGE = 100

    # Response body excerpt lengths for failure messages
    RATE_LIMIT_BODY_CHARS = 200
    ERROR_BODY_CHARS = 400

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Optional GitHub token; blank means anonymous
            base_url: GitHub API base URL (default: https://api.github.com)
            user_agent: User-Agent header value
            timeout: Transport timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = (base_url or DEFAULT_API_URL).rstrip("/")
        self.headers = build_headers(token, user_agent)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: GitMetaConfig,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GitHubClient":
        """Build a client from settings; an explicit token wins over config."""
        return cls(
            token=token if token is not None else config.token_value(),
            base_url=config.github_api_url,
            user_agent=config.github_user_agent,
            timeout=config.request_timeout,
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self.headers

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and release connections."""
        await self._client.aclose()

    # --- Core HTTP ---

    def _full_url(self, path: str, params: dict[str, Any] | None) -> str:
        url = httpx.URL(f"{self.base_url}{path}")
        return str(url.copy_merge_params(params)) if params else str(url)

    async def _get(self, path: str, params: dict[str, Any] | None) -> httpx.Response:
        kind = metrics.endpoint_kind(path)
        try:
            response = await self._client.request("GET", path, params=params)
        except httpx.HTTPError as e:
            metrics.github_requests_total.labels(kind, "transport_error").inc()
            url = self._full_url(path, params)
            logger.warning("Transport error for %s: %s", url, e)
            raise RequestFailure(
                f"GitHub request to {url} failed: {e}", url=url
            ) from e
        logger.debug("GET %s -> %d", path, response.status_code)
        return response

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitExceeded:
        reset_at: int | None = None
        reset_iso: str | None = None
        reset_header = response.headers.get("X-RateLimit-Reset")
        match = _LEADING_DIGITS.match(reset_header or "")
        if match:
            try:
                reset_iso = _iso_millis(
                    datetime.fromtimestamp(int(match.group(1)), tz=timezone.utc)
                )
                reset_at = int(match.group(1)) * 1000
            except (ValueError, OverflowError, OSError):
                logger.warning("Out of range X-RateLimit-Reset header: %r", reset_header)
        elif reset_header:
            logger.warning("Non-numeric X-RateLimit-Reset header: %r", reset_header)

        excerpt = (response.text or "")[: self.RATE_LIMIT_BODY_CHARS]
        if reset_iso is None:
            message = f"GitHub rate limit hit ({response.status_code}). Body: {excerpt}"
        else:
            message = (
                f"GitHub rate limit hit ({response.status_code}). "
                f"Reset at {reset_iso}. Body: {excerpt}"
            )
        return RateLimitExceeded(message, reset_at)

    async def fetch_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Perform one GET and return the decoded JSON body.

        Args:
            path: API path (e.g., /repos/owner/repo)
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            RateLimitExceeded: On HTTP 403
            RequestFailure: On any other non-2xx status, transport error,
                or undecodable body
        """
        kind = metrics.endpoint_kind(path)
        response = await self._get(path, params)

        if response.status_code == 403:
            metrics.github_requests_total.labels(kind, "rate_limited").inc()
            metrics.rate_limit_hits_total.inc()
            error = self._rate_limit_error(response)
            logger.warning(
                "Rate limit hit on %s (reset_at=%s)", path, error.reset_at
            )
            raise error

        if not 200 <= response.status_code < 300:
            metrics.github_requests_total.labels(kind, "http_error").inc()
            url = self._full_url(path, params)
            body = (response.text or "")[: self.ERROR_BODY_CHARS]
            raise RequestFailure(
                f"GitHub API {response.status_code} for {url}: {body}",
                status=response.status_code,
                url=url,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            metrics.github_requests_total.labels(kind, "http_error").inc()
            url = self._full_url(path, params)
            raise RequestFailure(
                f"GitHub API returned invalid JSON for {url}: {e}",
                status=response.status_code,
                url=url,
            ) from e

        metrics.github_requests_total.labels(kind, "ok").inc()
        return data

    # --- Pagination ---

    async def paginate(
        self, path: str, params: dict[str, Any] | None = None
    ) -> list[Any]:
        """Fetch every page of a list endpoint.

        Requests ``per_page=100`` starting at page 1 and stops on an empty
        page, a short page, or a response that is not a JSON array. A failure
        on any page propagates and the pages read so far are dropped.

        Args:
            path: API path
            params: Base query parameters (per_page/page are added)

        Returns:
            Concatenated list of all items across all pages
        """
        items: list[Any] = []
        page = 1
        while True:
            page_params = {**(params or {}), "per_page": self.PER_PAGE, "page": page}
            batch = await self.fetch_json(path, page_params)
            if not isinstance(batch, list) or not batch:
                break
            items.extend(batch)
            if len(batch) < self.PER_PAGE:
                break
            logger.debug("Paginating %s: page %d, %d items so far", path, page, len(items))
            page += 1
        return items

    # --- Token validation ---

    async def validate_token(self) -> bool:
        """Check whether this client's token is accepted by GitHub.

        Returns:
            False on 401; on 403, True only when X-OAuth-Scopes is present
            (a scoped token that is merely rate limited); otherwise whether
            the response was 2xx.

        Raises:
            RequestFailure: On transport errors
        """
        response = await self._get("/rate_limit", None)
        kind = "rate_limit"
        if response.status_code == 401:
            metrics.github_requests_total.labels(kind, "http_error").inc()
            return False
        if response.status_code == 403:
            metrics.github_requests_total.labels(kind, "rate_limited").inc()
            return response.headers.get("X-OAuth-Scopes") is not None
        ok = 200 <= response.status_code < 300
        metrics.github_requests_total.labels(kind, "ok" if ok else "http_error").inc()
        return ok


async def validate_token(token: str, config: GitMetaConfig | None = None) -> bool:
    """Validate a token with a throwaway client.

    Args:
        token: Token to check
        config: Settings for base URL, user agent and timeout

    Returns:
        True when GitHub accepts the token
    """
    if config is None:
        client = GitHubClient(token=token)
    else:
        client = GitHubClient.from_config(config, token=token)
    async with client:
        return await client.validate_token()
