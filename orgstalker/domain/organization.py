"""Aggregate snapshot of one crawled organization."""

import threading
from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from orgstalker.domain.member import Member
from orgstalker.domain.repository import Repository
from orgstalker.domain.team import Team


@dataclass(frozen=True)
class RateLimit:
    """Remaining API quota as reported by the most recent response page."""

    remaining: int
    reset_at: Optional[datetime] = None
    cost: Optional[int] = None
    limit: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remaining": self.remaining,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
            "cost": self.cost,
            "limit": self.limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateLimit":
        reset_at = data.get("reset_at")
        return cls(
            remaining=data["remaining"],
            reset_at=datetime.fromisoformat(reset_at) if reset_at else None,
            cost=data.get("cost"),
            limit=data.get("limit"),
        )


@dataclass
class OrganizationDetail:
    """Profile of the organization itself."""

    name: str
    login: str
    description: str
    avatar_url: Optional[str] = None
    website_url: Optional[str] = None
    url: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[str] = None
    number_of_members: int = 0
    number_of_repositories: int = 0
    number_of_teams: int = 0


class OrganizationGraph:
    """
    Members, repositories, external repositories and teams of an organization.

    The graph is only ever merged into. Every ``add_*`` method keeps the first
    entity seen for an ID and augments it instead of storing a duplicate.
    Writers of the same mapping synchronize on ``lock``.
    """

    def __init__(self, organization_name: str):
        self.organization_name = organization_name
        self.detail: Optional[OrganizationDetail] = None
        self.valid: Optional[bool] = None
        self.rate_limit: Optional[RateLimit] = None
        self.member_ids: List[str] = []
        self.members: Dict[str, Member] = {}
        self.repositories: Dict[str, Repository] = {}
        self.external_repos: Dict[str, Repository] = {}
        self.created_repos: Dict[str, Repository] = {}
        self.teams: Dict[str, Team] = {}
        self.lock = threading.RLock()

    def update_rate_limit(self, rate_limit: RateLimit):
        """Record the latest rate limit snapshot, replacing the previous one."""
        with self.lock:
            self.rate_limit = rate_limit

    def add_member_ids(self, member_ids: List[str]):
        with self.lock:
            for member_id in member_ids:
                if member_id not in self.member_ids:
                    self.member_ids.append(member_id)

    def add_members(self, members: Dict[str, Member]):
        with self.lock:
            for member_id, member in members.items():
                known = self.members.get(member_id)
                if known is None:
                    self.members[member_id] = member
                else:
                    known.merge(member)

    def add_repositories(self, repositories: Dict[str, Repository]):
        with self.lock:
            _merge_repositories(self.repositories, repositories)

    def add_external_repos(self, repositories: Dict[str, Repository]):
        with self.lock:
            _merge_repositories(self.external_repos, repositories)

    def add_created_repos(self, repositories: Dict[str, Repository]):
        with self.lock:
            _merge_repositories(self.created_repos, repositories)

    def add_teams(self, teams: Dict[str, Team]):
        with self.lock:
            for team_id, team in teams.items():
                self.teams.setdefault(team_id, team)

    def calculate_external_repo_contributions(self) -> Dict[str, List[str]]:
        """
        Map each external repository ID to the members that committed to it.

        Repositories owned by the organization are not external and are
        skipped. Member order follows the members mapping.

        Returns:
            Dictionary mapping external repository ID to member IDs
        """
        contributions: Dict[str, List[str]] = {}
        with self.lock:
            for member_id, member in self.members.items():
                for repo_id in member.contributed_repo_ids:
                    if repo_id in self.repositories:
                        continue
                    contributions.setdefault(repo_id, []).append(member_id)
        return contributions

    def to_dict(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "organization_name": self.organization_name,
                "detail": asdict(self.detail) if self.detail else None,
                "valid": self.valid,
                "rate_limit": self.rate_limit.to_dict() if self.rate_limit else None,
                "member_ids": list(self.member_ids),
                "members": {k: v.to_dict() for k, v in self.members.items()},
                "repositories": {k: v.to_dict() for k, v in self.repositories.items()},
                "external_repos": {k: v.to_dict() for k, v in self.external_repos.items()},
                "created_repos": {k: v.to_dict() for k, v in self.created_repos.items()},
                "teams": {k: v.to_dict() for k, v in self.teams.items()},
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrganizationGraph":
        """Rebuild a graph, re-linking repository contributors to member objects."""
        graph = cls(data["organization_name"])
        if data.get("detail"):
            graph.detail = OrganizationDetail(**data["detail"])
        graph.valid = data.get("valid")
        if data.get("rate_limit"):
            graph.rate_limit = RateLimit.from_dict(data["rate_limit"])
        graph.member_ids = list(data.get("member_ids", []))
        graph.members = {k: Member.from_dict(v) for k, v in data.get("members", {}).items()}
        graph.teams = {k: Team.from_dict(v) for k, v in data.get("teams", {}).items()}

        for key in ("repositories", "external_repos", "created_repos"):
            target = getattr(graph, key)
            for repo_id, repo_data in data.get(key, {}).items():
                repo = Repository.from_dict(repo_data)
                contributor_ids = repo_data.get("contributors")
                if contributor_ids is not None:
                    repo.contributors = [
                        graph.members[member_id]
                        for member_id in contributor_ids
                        if member_id in graph.members
                    ]
                target[repo_id] = repo
        return graph


def _merge_repositories(target: Dict[str, Repository], incoming: Dict[str, Repository]):
    """Insert unknown repositories; known ones keep their identity and contributors."""
    for repo_id, repo in incoming.items():
        known = target.get(repo_id)
        if known is None:
            target[repo_id] = repo
            continue
        for attribute in fields(Repository):
            if attribute.name != "contributors":
                setattr(known, attribute.name, getattr(repo, attribute.name))
        if not known.contributors and repo.contributors:
            known.contributors = repo.contributors
