"""Decoding of raw GraphQL response payloads into typed nodes.

Optional remote fields stay ``None`` here; fallback values are applied by the
application layer when entities are built.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from orgstalker.domain.organization import RateLimit


@dataclass(frozen=True)
class PageInfo:
    """Pagination state of one connection in a response page."""

    has_next_page: bool
    end_cursor: Optional[str] = None


@dataclass(frozen=True)
class RepositoryNode:
    """Repository as returned by the API, before fallbacks are applied."""

    id: str
    name: str
    url: str
    description: Optional[str]
    primary_language: Optional[str]
    license_name: Optional[str]
    fork_count: int
    star_count: int
    pull_request_dates: List[datetime] = field(default_factory=list)
    issue_dates: List[datetime] = field(default_factory=list)
    # None when the repository has no default branch
    commit_dates: Optional[List[datetime]] = None


@dataclass(frozen=True)
class MemberNode:
    """User node with profile data and contribution timestamps."""

    id: str
    login: Optional[str]
    name: Optional[str]
    avatar_url: Optional[str]
    url: Optional[str]
    contributed_repo_ids: List[str] = field(default_factory=list)
    commit_dates: List[datetime] = field(default_factory=list)
    issue_dates: List[datetime] = field(default_factory=list)
    pull_request_dates: List[datetime] = field(default_factory=list)


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def nodes(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return the non-null ``nodes`` of a connection, tolerating missing levels."""
    if not connection:
        return []
    return [node for node in (connection.get("nodes") or []) if node]


def total_count(connection: Optional[Dict[str, Any]]) -> int:
    if not connection:
        return 0
    return connection.get("totalCount") or 0


def parse_rate_limit(payload: Optional[Dict[str, Any]]) -> Optional[RateLimit]:
    """Extract the ``rateLimit`` block of a page, if the query asked for it."""
    rate_limit = (payload or {}).get("rateLimit")
    if not rate_limit or rate_limit.get("remaining") is None:
        return None

    reset_at = rate_limit.get("resetAt")
    return RateLimit(
        remaining=rate_limit["remaining"],
        reset_at=parse_datetime(reset_at) if reset_at else None,
        cost=rate_limit.get("cost"),
        limit=rate_limit.get("limit"),
    )


def parse_page_info(connection: Optional[Dict[str, Any]]) -> Optional[PageInfo]:
    if not connection or not connection.get("pageInfo"):
        return None
    page_info = connection["pageInfo"]
    return PageInfo(
        has_next_page=bool(page_info.get("hasNextPage")),
        end_cursor=page_info.get("endCursor"),
    )


def _name_of(value: Optional[Dict[str, Any]]) -> Optional[str]:
    if not value:
        return None
    return value.get("name")


def _dates(items: List[Dict[str, Any]], key: str) -> List[datetime]:
    return [parse_datetime(item[key]) for item in items if item.get(key)]


def parse_repository_node(node: Dict[str, Any]) -> RepositoryNode:
    """
    Decode a repository node.

    Args:
        node: Raw ``Repository`` node from a GraphQL response

    Returns:
        RepositoryNode with optional fields left as ``None`` when absent
    """
    commit_dates = None
    default_branch = node.get("defaultBranchRef")
    if default_branch:
        history = (default_branch.get("target") or {}).get("history")
        commit_dates = _dates(nodes(history), "committedDate")

    return RepositoryNode(
        id=node["id"],
        name=node.get("name") or "",
        url=node.get("url") or "",
        description=node.get("description"),
        primary_language=_name_of(node.get("primaryLanguage")),
        license_name=_name_of(node.get("licenseInfo")),
        fork_count=node.get("forkCount") or 0,
        star_count=total_count(node.get("stargazers")),
        pull_request_dates=_dates(nodes(node.get("pullRequests")), "createdAt"),
        issue_dates=_dates(nodes(node.get("issues")), "createdAt"),
        commit_dates=commit_dates,
    )


def parse_member_node(node: Dict[str, Any]) -> MemberNode:
    """Decode a user node including its ``contributionsCollection``."""
    contributions = node.get("contributionsCollection") or {}

    contributed_repo_ids = []
    commit_dates = []
    for by_repository in contributions.get("commitContributionsByRepository") or []:
        repository = by_repository.get("repository") or {}
        if repository.get("id") and repository["id"] not in contributed_repo_ids:
            contributed_repo_ids.append(repository["id"])
        commit_dates.extend(_dates(nodes(by_repository.get("contributions")), "occurredAt"))

    return MemberNode(
        id=node["id"],
        login=node.get("login"),
        name=node.get("name"),
        avatar_url=node.get("avatarUrl"),
        url=node.get("url"),
        contributed_repo_ids=contributed_repo_ids,
        commit_dates=commit_dates,
        issue_dates=_dates(nodes(contributions.get("issueContributions")), "occurredAt"),
        pull_request_dates=_dates(
            nodes(contributions.get("pullRequestContributions")), "occurredAt"
        ),
    )
