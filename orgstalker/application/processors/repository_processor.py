"""Processor for the repositories owned by the organization."""

from typing import Any, Dict, Optional

from orgstalker.application.processors.base import ResponseProcessor
from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.repository import Repository
from orgstalker.domain.request import RequestType
from orgstalker.infrastructure.response_parser import (
    PageInfo,
    nodes,
    parse_page_info,
    parse_repository_node,
)


def _repositories_connection(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return (payload.get("organization") or {}).get("repositories")


class RepositoryProcessor(ResponseProcessor):
    request_type = RequestType.REPOSITORY

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.repositories_map: Dict[str, Repository] = {}

    def process_query_response(self, payload: Dict[str, Any]):
        for node in nodes(_repositories_connection(payload)):
            repo = self.build_repository(parse_repository_node(node))
            self.repositories_map[repo.id] = repo

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_repositories(self.repositories_map)

    def page_info(self, payload: Dict[str, Any]) -> Optional[PageInfo]:
        return parse_page_info(_repositories_connection(payload))
