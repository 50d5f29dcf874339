"""Domain entities for GitHub repositories."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from orgstalker.domain.chart import ChartData

if TYPE_CHECKING:
    from orgstalker.domain.member import Member


NO_DESCRIPTION = "No Description deposited"
NO_LICENSE = "No License deposited"
NO_LANGUAGE = "/"


@dataclass
class Repository:
    """Repository entity aggregated from one or more response pages."""

    id: str
    name: str
    url: str
    description: str = NO_DESCRIPTION
    programming_language: str = NO_LANGUAGE
    license: str = NO_LICENSE
    forks: int = 0
    stars: int = 0
    amount_previous_pull_requests: int = 0
    previous_pull_requests: ChartData = field(default_factory=ChartData)
    amount_previous_issues: int = 0
    previous_issues: ChartData = field(default_factory=ChartData)
    amount_previous_commits: int = 0
    previous_commits: ChartData = field(default_factory=ChartData)
    contributors: Optional[List["Member"]] = None

    def add_contributor(self, member: "Member"):
        """Append a contributor, creating the list on first use."""
        if self.contributors is None:
            self.contributors = []
        self.contributors.append(member)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, storing contributors as member IDs."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "programming_language": self.programming_language,
            "license": self.license,
            "forks": self.forks,
            "stars": self.stars,
            "amount_previous_pull_requests": self.amount_previous_pull_requests,
            "previous_pull_requests": self.previous_pull_requests.to_dict(),
            "amount_previous_issues": self.amount_previous_issues,
            "previous_issues": self.previous_issues.to_dict(),
            "amount_previous_commits": self.amount_previous_commits,
            "previous_commits": self.previous_commits.to_dict(),
            "contributors": (
                None if self.contributors is None
                else [member.id for member in self.contributors]
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Repository":
        """
        Rebuild a repository from its serialized form.

        Contributors are left unresolved; ``OrganizationGraph.from_dict``
        re-attaches them once members are loaded.
        """
        return cls(
            id=data["id"],
            name=data["name"],
            url=data["url"],
            description=data.get("description", NO_DESCRIPTION),
            programming_language=data.get("programming_language", NO_LANGUAGE),
            license=data.get("license", NO_LICENSE),
            forks=data.get("forks", 0),
            stars=data.get("stars", 0),
            amount_previous_pull_requests=data.get("amount_previous_pull_requests", 0),
            previous_pull_requests=ChartData.from_dict(data.get("previous_pull_requests")),
            amount_previous_issues=data.get("amount_previous_issues", 0),
            previous_issues=ChartData.from_dict(data.get("previous_issues")),
            amount_previous_commits=data.get("amount_previous_commits", 0),
            previous_commits=ChartData.from_dict(data.get("previous_commits")),
        )
