"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import os
from collections.abc import Callable

import httpx
import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom pytest options for integration test execution."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (external dependencies).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration")
    env_enabled = os.getenv("RUN_INTEGRATION_TESTS") == "1"
    if run_integration or env_enabled:
        return

    skip_marker = pytest.mark.skip(
        reason=(
            "Integration tests are disabled by default. "
            "Use --run-integration or set RUN_INTEGRATION_TESTS=1."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    """Create an HTTP client backed by mock transport."""
    transport = httpx.MockTransport(handler)
    return httpx.Client(base_url="https://api.github.com", transport=transport)


def rate_limit_payload(*, remaining: int = 30, reset: int = 2_000_000_000) -> dict[str, object]:
    """Build a minimal /rate_limit payload for the search resource."""
    return {
        "resources": {
            "core": {"limit": 5000, "remaining": 4999, "reset": reset},
            "search": {"limit": 30, "remaining": remaining, "reset": reset},
        },
        "rate": {"limit": 5000, "remaining": 4999, "reset": reset},
    }


@pytest.fixture(autouse=True)
def no_rate_limit_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record rate-limit pauses instead of sleeping."""
    sleep_durations: list[float] = []
    monkeypatch.setattr(
        "review_tally.github_client._sleep_for_rate_limit", sleep_durations.append
    )
    return sleep_durations


ORG_MEMBERS = [
    {"id": 1, "login": "alice"},
    {"id": 2, "login": "bob"},
    {"id": 3, "login": "carol"},
]
ORG_PROFILES = {
    "1": {"login": "alice", "name": "Alice Liddell", "company": "Wonderland", "email": None},
    "2": {"login": "bob", "name": None, "company": None, "email": None},
    "3": {"login": "carol", "name": "Carol", "company": None, "email": "carol@x.com"},
}
ORG_REVIEWS = {"alice": 5, "bob": 0, "carol": 2}


def make_org_handler(
    *,
    failing_profile_id: str | None = None,
    fail_member_listing: bool = False,
    calls: list[str] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a transport handler for the three-member organization 'acme'.

    alice reviewed 5 pull requests, bob none and carol 2. Pull requests not
    authored by a member total 10 more than their review count.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/rate_limit":
            return httpx.Response(status_code=200, json=rate_limit_payload())
        if calls is not None:
            calls.append(path)
        if path == "/orgs/acme/members":
            if fail_member_listing:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(status_code=200, json=ORG_MEMBERS)
        if path.startswith("/user/"):
            user_id = path.rsplit("/", 1)[1]
            if user_id == failing_profile_id:
                return httpx.Response(status_code=500)
            return httpx.Response(status_code=200, json=ORG_PROFILES[user_id])
        if path == "/search/issues":
            query = request.url.params["q"]
            author = query.rsplit("-author:", 1)[1]
            total = ORG_REVIEWS[author]
            if "reviewed-by:" not in query:
                total += 10
            return httpx.Response(status_code=200, json={"total_count": total, "items": []})
        raise AssertionError(f"Unexpected endpoint {path}")

    return handler
