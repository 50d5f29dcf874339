"""Processor for external repositories the organization's members contribute to."""

import logging
from typing import Any, Dict

from orgstalker.application.processors.base import ResponseProcessor
from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.repository import Repository
from orgstalker.domain.request import RequestType
from orgstalker.infrastructure.response_parser import nodes, parse_repository_node

logger = logging.getLogger(__name__)


class ExternalRepoProcessor(ResponseProcessor):
    """
    Aggregates external repositories and attaches their contributing members.

    Pages are ``nodes(ids: [...])`` lookups, so the type has no top-level
    pagination; every batch of IDs is its own request.
    """

    request_type = RequestType.EXTERNAL_REPO

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.repositories_map: Dict[str, Repository] = {}

    def process_query_response(self, payload: Dict[str, Any]):
        for node in nodes(payload):
            repo = self.build_repository(parse_repository_node(node))
            self.repositories_map[repo.id] = repo

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_external_repos(self.repositories_map)

    def link_entities(self, organization: OrganizationGraph):
        """
        Attach contributing members to each external repository.

        Contributor lists of the repositories fetched in this crawl are rebuilt,
        not extended, so a stored graph does not collect the same contributors
        again on every crawl. Repository or member IDs that cannot be resolved
        are skipped. A member listed twice for a repository is appended twice.
        """
        for repo_id in self.repositories_map:
            organization.external_repos[repo_id].contributors = None

        contributions = organization.calculate_external_repo_contributions()
        linked = 0
        for external_repo_id, contributor_ids in contributions.items():
            repo = organization.external_repos.get(external_repo_id)
            if repo is None:
                continue
            for contributor_id in contributor_ids:
                member = organization.members.get(contributor_id)
                if member is None:
                    continue
                repo.add_contributor(member)
                linked += 1

        logger.info(
            f"Linked {linked} contributors to {len(organization.external_repos)} "
            f"external repositories of {self.organization_name}"
        )
