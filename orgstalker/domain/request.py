"""Outstanding requests and the queries that carry their responses."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from orgstalker.domain.exceptions import ConfigurationError


class RequestType(str, Enum):
    """Category of paginated query; one processor type exists per value."""

    ORGANIZATION_VALIDATION = "ORGANIZATION_VALIDATION"
    ORGANIZATION_DETAIL = "ORGANIZATION_DETAIL"
    MEMBER_ID = "MEMBER_ID"
    MEMBER = "MEMBER"
    MEMBER_PR = "MEMBER_PR"
    REPOSITORY = "REPOSITORY"
    TEAM = "TEAM"
    EXTERNAL_REPO = "EXTERNAL_REPO"
    CREATED_REPOS_BY_MEMBERS = "CREATED_REPOS_BY_MEMBERS"

    @classmethod
    def resolve(cls, value: Union["RequestType", str]) -> "RequestType":
        """
        Turn a request type tag into a ``RequestType``.

        Raises:
            ConfigurationError: If the tag names no known request type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Unknown request type: {value!r}") from None


ID_REQUEST_TYPES = frozenset({
    RequestType.MEMBER,
    RequestType.MEMBER_PR,
    RequestType.CREATED_REPOS_BY_MEMBERS,
    RequestType.EXTERNAL_REPO,
})


@dataclass
class Request:
    """
    One dispatched (or to be dispatched) page request for an organization.

    Login-based types page through an organization connection with ``cursor``.
    Types in ``ID_REQUEST_TYPES`` look up a batch of node ``ids`` instead.
    """

    organization_name: str
    request_type: RequestType
    cursor: Optional[str] = None
    complete: bool = False
    id: Optional[int] = None
    ids: List[str] = field(default_factory=list)


@dataclass
class Query:
    """
    A remote query and, once fetched, its decoded response payload.

    ``request_type`` is kept as given so that an unknown tag surfaces as a
    ``ConfigurationError`` at routing time rather than at construction.
    """

    organization_name: str
    request_type: Union[RequestType, str]
    query_text: str = ""
    variables: Dict[str, Any] = field(default_factory=dict)
    request: Optional[Request] = None
    response: Optional[Dict[str, Any]] = None
