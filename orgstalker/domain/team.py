"""Domain entities for organization teams."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from orgstalker.domain.repository import NO_DESCRIPTION


@dataclass
class Team:
    """Team of an organization, referencing members and repositories by ID."""

    id: str
    name: str
    url: str
    description: str = NO_DESCRIPTION
    member_ids: List[str] = field(default_factory=list)
    repository_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(**data)
