"""Chart-ready activity series."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ChartData:
    """Daily buckets, oldest first. ``labels`` and ``data`` have equal length."""

    labels: List[str] = field(default_factory=list)
    data: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "data": list(self.data)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ChartData":
        if not data:
            return cls()
        return cls(labels=list(data.get("labels", [])), data=list(data.get("data", [])))
