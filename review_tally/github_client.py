"""GitHub API wrapper for organization members and review counts."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from review_tally.logger import get_logger

GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_JSON_ACCEPT_HEADER = "application/vnd.github+json"
RATE_LIMIT_SAFETY_MARGIN_SECONDS = 1.0
SEARCH_QUOTA_WAIT_THRESHOLD = 1

logger = get_logger(__name__)


class GitHubInputError(ValueError):
    """Raised when organization, repository or login input values are invalid."""


class GitHubTransportError(RuntimeError):
    """Raised when the GitHub API cannot be reached."""

    def __init__(self, message: str, *, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class GitHubApiError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, *, status_code: int, endpoint: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class GitHubRateLimitError(GitHubApiError):
    """Raised when GitHub API rate limiting prevents request completion."""


@dataclass(frozen=True, slots=True)
class OrgMember:
    """Member identity from the organization member listing."""

    id: int
    login: str


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Public profile fields for one user; unset fields stay None."""

    login: str
    name: str | None
    company: str | None
    email: str | None


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    """Quota snapshot for one GitHub rate-limit resource."""

    limit: int
    remaining: int
    reset_at: float


def _ensure_mapping(value: object, *, context: str) -> dict[str, Any]:
    """Ensure a response fragment is a JSON object."""
    if not isinstance(value, dict):
        raise GitHubApiError(
            f"Expected JSON object for {context}.",
            status_code=500,
            endpoint=context,
        )
    return value


def _require_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str:
    """Read a required string field from payload."""
    value = payload.get(key)
    if not isinstance(value, str):
        raise GitHubApiError(
            f"Expected string field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _require_int(payload: dict[str, Any], *, key: str, endpoint: str) -> int:
    """Read a required integer field from payload."""
    value = payload.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise GitHubApiError(
            f"Expected integer field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _require_object(payload: dict[str, Any], *, key: str, endpoint: str) -> dict[str, Any]:
    """Read a required object field from payload."""
    value = payload.get(key)
    if not isinstance(value, dict):
        raise GitHubApiError(
            f"Expected object field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _optional_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str | None:
    """Read a string-or-null field."""
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise GitHubApiError(
            f"Expected '{key}' to be a string or null in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _raise_http_error(response: httpx.Response, endpoint: str) -> None:
    """Raise a typed error for a non-success GitHub API response."""
    message = f"GitHub API request failed with status {response.status_code} for '{endpoint}'."
    quota_exhausted = (
        response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
    )
    if response.status_code == 429 or quota_exhausted:
        raise GitHubRateLimitError(
            message,
            status_code=response.status_code,
            endpoint=endpoint,
        )
    raise GitHubApiError(
        message,
        status_code=response.status_code,
        endpoint=endpoint,
    )


def _request(
    client: httpx.Client,
    endpoint: str,
    *,
    params: dict[str, str | int] | None = None,
) -> httpx.Response:
    """Perform a single GET request; no retries."""
    try:
        response = client.get(
            endpoint,
            params=params,
            headers={"Accept": GITHUB_JSON_ACCEPT_HEADER},
        )
    except httpx.HTTPError as error:
        raise GitHubTransportError(
            f"Could not reach GitHub API for '{endpoint}': {error}",
            endpoint=endpoint,
        ) from error
    if response.status_code >= 400:
        _raise_http_error(response, endpoint)
    return response


def _request_json(
    client: httpx.Client,
    endpoint: str,
    *,
    params: dict[str, str | int] | None = None,
) -> dict[str, Any]:
    """Perform a JSON request against GitHub API."""
    response = _request(client, endpoint, params=params)
    return _ensure_mapping(_decode_json(response, endpoint), context=endpoint)


def _request_json_list(
    client: httpx.Client,
    endpoint: str,
    *,
    params: dict[str, str | int] | None = None,
) -> list[dict[str, Any]]:
    """Perform a JSON request that returns an array of objects."""
    response = _request(client, endpoint, params=params)
    payload = _decode_json(response, endpoint)
    if not isinstance(payload, list):
        raise GitHubApiError(
            "Expected JSON array in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    rows: list[dict[str, Any]] = []
    for item in payload:
        if not isinstance(item, dict):
            raise GitHubApiError(
                "Expected all array items to be JSON objects in GitHub response.",
                status_code=500,
                endpoint=endpoint,
            )
        rows.append(item)
    return rows


def _decode_json(response: httpx.Response, endpoint: str) -> object:
    """Decode a response body, mapping invalid JSON to an API error."""
    try:
        return response.json()
    except ValueError as error:
        raise GitHubApiError(
            "GitHub response body is not valid JSON.",
            status_code=response.status_code,
            endpoint=endpoint,
        ) from error


def _current_timestamp() -> float:
    """Return wall-clock epoch seconds (wrapped for deterministic tests)."""
    return time.time()


def _sleep_for_rate_limit(seconds: float) -> None:
    """Sleep helper for rate-limit pauses (wrapped for deterministic tests)."""
    time.sleep(seconds)


def fetch_search_rate_limit(*, client: httpx.Client) -> RateLimitStatus:
    """Fetch the current search API quota."""
    endpoint = "/rate_limit"
    payload = _request_json(client, endpoint)
    resources = _require_object(payload, key="resources", endpoint=endpoint)
    search = _require_object(resources, key="search", endpoint=endpoint)
    return RateLimitStatus(
        limit=_require_int(search, key="limit", endpoint=endpoint),
        remaining=_require_int(search, key="remaining", endpoint=endpoint),
        reset_at=float(_require_int(search, key="reset", endpoint=endpoint)),
    )


def wait_for_search_rate_limit(*, client: httpx.Client) -> None:
    """Block until the search quota resets when only one call is left.

    The pause lasts until the reset timestamp plus a one second margin. A
    failure to read the quota is logged and the caller carries on.
    """
    try:
        status = fetch_search_rate_limit(client=client)
    except (GitHubApiError, GitHubTransportError) as error:
        logger.warning("Problem in getting rate limit information: %s", error)
        return

    logger.debug(
        "Search rate limit: %d/%d remaining, resets at %d.",
        status.remaining,
        status.limit,
        int(status.reset_at),
    )
    if status.remaining != SEARCH_QUOTA_WAIT_THRESHOLD:
        return

    delay_seconds = status.reset_at - _current_timestamp() + RATE_LIMIT_SAFETY_MARGIN_SECONDS
    if delay_seconds <= 0:
        return
    logger.warning(
        "Search rate limit nearly exhausted; pausing %.0f seconds until quota resets.",
        delay_seconds,
    )
    _sleep_for_rate_limit(delay_seconds)


def list_org_members(*, client: httpx.Client, org: str) -> tuple[OrgMember, ...]:
    """List all members of an organization, public and concealed, any role."""
    normalized_org = validate_name(org, kind="organization")
    wait_for_search_rate_limit(client=client)
    endpoint = f"/orgs/{quote(normalized_org, safe='')}/members"
    rows = _request_json_list(client, endpoint, params={"filter": "all", "role": "all"})
    members = tuple(
        OrgMember(
            id=_require_int(row, key="id", endpoint=endpoint),
            login=_require_str(row, key="login", endpoint=endpoint),
        )
        for row in rows
    )
    logger.debug("Fetched %d members for organization %s.", len(members), normalized_org)
    return members


def fetch_user_profile(*, client: httpx.Client, user_id: int) -> UserProfile:
    """Fetch name, company and email for a user id."""
    if user_id <= 0:
        raise GitHubInputError(f"Invalid user id '{user_id}'. Expected a positive integer.")
    wait_for_search_rate_limit(client=client)
    endpoint = f"/user/{user_id}"
    payload = _request_json(client, endpoint)
    return UserProfile(
        login=_require_str(payload, key="login", endpoint=endpoint),
        name=_optional_str(payload, key="name", endpoint=endpoint),
        company=_optional_str(payload, key="company", endpoint=endpoint),
        email=_optional_str(payload, key="email", endpoint=endpoint),
    )


def build_reviewed_pull_requests_query(*, org: str, repo: str, author: str) -> str:
    """Search query for pull requests reviewed, but not authored, by a user."""
    return f"is:pr repo:{org}/{repo} reviewed-by:{author} -author:{author}"


def build_pull_requests_query(*, org: str, repo: str, author: str) -> str:
    """Search query for pull requests not authored by a user."""
    return f"is:pr repo:{org}/{repo} -author:{author}"


def _search_issue_total(client: httpx.Client, query: str) -> int:
    """Return the result-set size of an issue search without listing it."""
    wait_for_search_rate_limit(client=client)
    endpoint = "/search/issues"
    payload = _request_json(client, endpoint, params={"q": query, "per_page": 1})
    total = _require_int(payload, key="total_count", endpoint=endpoint)
    if total < 0:
        raise GitHubApiError(
            "Expected non-negative 'total_count' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return total


def count_reviewed_pull_requests(
    *,
    client: httpx.Client,
    org: str,
    repo: str,
    author: str,
) -> int:
    """Count pull requests in org/repo reviewed by author, excluding their own."""
    query = build_reviewed_pull_requests_query(
        org=validate_name(org, kind="organization"),
        repo=validate_name(repo, kind="repository"),
        author=validate_login(author),
    )
    return _search_issue_total(client, query)


def count_pull_requests(
    *,
    client: httpx.Client,
    org: str,
    repo: str,
    excluding_author: str,
) -> int:
    """Count pull requests in org/repo that were not opened by excluding_author."""
    query = build_pull_requests_query(
        org=validate_name(org, kind="organization"),
        repo=validate_name(repo, kind="repository"),
        author=validate_login(excluding_author),
    )
    return _search_issue_total(client, query)


def validate_name(value: str, *, kind: str) -> str:
    """Validate and normalize an organization or repository name."""
    normalized = value.strip()
    if not normalized or "/" in normalized or " " in normalized:
        raise GitHubInputError(f"Invalid {kind} '{value}'. Expected a single path segment.")
    return normalized


def validate_login(login: str) -> str:
    """Validate and normalize a user login."""
    normalized = login.strip()
    if not normalized or " " in normalized:
        raise GitHubInputError(f"Invalid login '{login}'.")
    return normalized


def build_github_client(
    token: str = "",
    timeout_seconds: int = 20,
    *,
    trust_env: bool = True,
) -> httpx.Client:
    """Build a GitHub HTTP client, authenticated only when a token is given."""
    headers = {
        "Accept": GITHUB_JSON_ACCEPT_HEADER,
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.Client(
        base_url=GITHUB_API_BASE_URL,
        headers=headers,
        timeout=timeout_seconds,
        trust_env=trust_env,
    )
