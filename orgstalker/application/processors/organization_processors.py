"""Processors for the organization itself and its teams."""

from typing import Any, Dict, Optional

from orgstalker.application.processors.base import ResponseProcessor
from orgstalker.domain.organization import OrganizationDetail, OrganizationGraph
from orgstalker.domain.repository import NO_DESCRIPTION
from orgstalker.domain.request import RequestType
from orgstalker.domain.team import Team
from orgstalker.infrastructure.response_parser import (
    PageInfo,
    nodes,
    parse_page_info,
    total_count,
)


class OrganizationValidationProcessor(ResponseProcessor):
    """Records whether the organization exists on the remote side."""

    request_type = RequestType.ORGANIZATION_VALIDATION

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.valid = False

    def process_query_response(self, payload: Dict[str, Any]):
        self.valid = bool(payload.get("organization"))

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.valid = self.valid


class OrganizationDetailProcessor(ResponseProcessor):
    request_type = RequestType.ORGANIZATION_DETAIL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.detail: Optional[OrganizationDetail] = None

    def process_query_response(self, payload: Dict[str, Any]):
        organization = payload.get("organization")
        if not organization:
            return

        login = organization.get("login") or self.organization_name
        self.detail = OrganizationDetail(
            name=organization.get("name") or login,
            login=login,
            description=organization.get("description") or NO_DESCRIPTION,
            avatar_url=organization.get("avatarUrl"),
            website_url=organization.get("websiteUrl"),
            url=organization.get("url"),
            location=organization.get("location"),
            created_at=organization.get("createdAt"),
            number_of_members=total_count(organization.get("membersWithRole")),
            number_of_repositories=total_count(organization.get("repositories")),
            number_of_teams=total_count(organization.get("teams")),
        )

    def merge_into_graph(self, organization: OrganizationGraph):
        if self.detail is not None:
            organization.detail = self.detail


def _teams_connection(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return (payload.get("organization") or {}).get("teams")


class TeamProcessor(ResponseProcessor):
    """Collects teams with the IDs of their members and repositories."""

    request_type = RequestType.TEAM

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.teams_map: Dict[str, Team] = {}

    def process_query_response(self, payload: Dict[str, Any]):
        for node in nodes(_teams_connection(payload)):
            description = node.get("description")
            self.teams_map[node["id"]] = Team(
                id=node["id"],
                name=node.get("name") or "",
                url=node.get("url") or "",
                # Teams return an empty string rather than null when unset
                description=description if description else NO_DESCRIPTION,
                member_ids=[member["id"] for member in nodes(node.get("members"))],
                repository_ids=[repo["id"] for repo in nodes(node.get("repositories"))],
            )

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_teams(self.teams_map)

    def page_info(self, payload: Dict[str, Any]) -> Optional[PageInfo]:
        return parse_page_info(_teams_connection(payload))
