"""Domain entities for organization members."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from orgstalker.domain.chart import ChartData


@dataclass
class Member:
    """Organization member with profile and activity attributes."""

    id: str
    login: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    url: Optional[str] = None
    # Remote IDs of repositories the member committed to, in discovery order
    contributed_repo_ids: List[str] = field(default_factory=list)
    pull_request_repo_ids: List[str] = field(default_factory=list)
    created_repo_ids: List[str] = field(default_factory=list)
    amount_previous_commits: int = 0
    previous_commits: ChartData = field(default_factory=ChartData)
    amount_previous_issues: int = 0
    previous_issues: ChartData = field(default_factory=ChartData)
    amount_previous_pull_requests: int = 0
    previous_pull_requests: ChartData = field(default_factory=ChartData)

    def merge(self, other: "Member"):
        """
        Augment this member with data discovered by another request type.

        Profile attributes are taken from ``other`` when it has them. ID lists
        are extended with IDs not yet present, preserving order.

        Args:
            other: Member with the same ID carrying newer or additional data
        """
        for attribute in ("login", "name", "avatar_url", "url"):
            value = getattr(other, attribute)
            if value is not None:
                setattr(self, attribute, value)

        for attribute in ("contributed_repo_ids", "pull_request_repo_ids", "created_repo_ids"):
            known = getattr(self, attribute)
            for repo_id in getattr(other, attribute):
                if repo_id not in known:
                    known.append(repo_id)

        for kind in ("commits", "issues", "pull_requests"):
            if getattr(other, f"previous_{kind}").labels:
                setattr(self, f"amount_previous_{kind}", getattr(other, f"amount_previous_{kind}"))
                setattr(self, f"previous_{kind}", getattr(other, f"previous_{kind}"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "login": self.login,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "url": self.url,
            "contributed_repo_ids": list(self.contributed_repo_ids),
            "pull_request_repo_ids": list(self.pull_request_repo_ids),
            "created_repo_ids": list(self.created_repo_ids),
            "amount_previous_commits": self.amount_previous_commits,
            "previous_commits": self.previous_commits.to_dict(),
            "amount_previous_issues": self.amount_previous_issues,
            "previous_issues": self.previous_issues.to_dict(),
            "amount_previous_pull_requests": self.amount_previous_pull_requests,
            "previous_pull_requests": self.previous_pull_requests.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        return cls(
            id=data["id"],
            login=data.get("login"),
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
            url=data.get("url"),
            contributed_repo_ids=list(data.get("contributed_repo_ids", [])),
            pull_request_repo_ids=list(data.get("pull_request_repo_ids", [])),
            created_repo_ids=list(data.get("created_repo_ids", [])),
            amount_previous_commits=data.get("amount_previous_commits", 0),
            previous_commits=ChartData.from_dict(data.get("previous_commits")),
            amount_previous_issues=data.get("amount_previous_issues", 0),
            previous_issues=ChartData.from_dict(data.get("previous_issues")),
            amount_previous_pull_requests=data.get("amount_previous_pull_requests", 0),
            previous_pull_requests=ChartData.from_dict(data.get("previous_pull_requests")),
        )
