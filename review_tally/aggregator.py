"""Build one reviewer record per organization member."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from review_tally.config import ReportSettings
from review_tally.github_client import (
    OrgMember,
    count_pull_requests,
    count_reviewed_pull_requests,
    fetch_user_profile,
    list_org_members,
)
from review_tally.logger import get_logger

NONE_PLACEHOLDER = "<none>"

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ReviewerRecord:
    """Identity fields and review count for one organization member."""

    login: str
    name: str
    company: str
    email: str
    reviews: int
    pull_requests: int | None = None


def _or_placeholder(value: str | None) -> str:
    return value if value is not None else NONE_PLACEHOLDER


def build_reviewer_record(
    *,
    client: httpx.Client,
    member: OrgMember,
    settings: ReportSettings,
) -> ReviewerRecord:
    """Fetch profile and review count for one member."""
    profile = fetch_user_profile(client=client, user_id=member.id)
    reviews = count_reviewed_pull_requests(
        client=client,
        org=settings.organization,
        repo=settings.repository,
        author=member.login,
    )
    pull_requests = None
    if settings.include_pull_requests:
        pull_requests = count_pull_requests(
            client=client,
            org=settings.organization,
            repo=settings.repository,
            excluding_author=member.login,
        )
    logger.debug("%s reviewed %d pull request(s).", member.login, reviews)
    return ReviewerRecord(
        login=member.login,
        name=_or_placeholder(profile.name),
        company=_or_placeholder(profile.company),
        email=_or_placeholder(profile.email),
        reviews=reviews,
        pull_requests=pull_requests,
    )


def collect_reviewer_records(
    *,
    client: httpx.Client,
    settings: ReportSettings,
) -> tuple[ReviewerRecord, ...]:
    """Collect records for every member in member-listing order.

    Any lookup failure propagates at once, so callers never see a partial
    result.
    """
    members = list_org_members(client=client, org=settings.organization)
    logger.info(
        "Counting reviews in %s for %d member(s) of %s.",
        settings.repository_full_name,
        len(members),
        settings.organization,
    )
    records = tuple(
        build_reviewer_record(client=client, member=member, settings=settings)
        for member in members
    )
    return records
