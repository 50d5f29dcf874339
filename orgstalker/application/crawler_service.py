"""Application service for crawling an organization's outstanding requests."""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

from orgstalker import config
from orgstalker.application.response_processor_manager import ResponseProcessorManager
from orgstalker.domain.request import ID_REQUEST_TYPES, Query, Request, RequestType
from orgstalker.infrastructure.github_client import GitHubGraphQLClient
from orgstalker.infrastructure.organization_store import OrganizationStore
from orgstalker.infrastructure.response_parser import parse_rate_limit

logger = logging.getLogger(__name__)


# Each stage is seeded from the graph left behind by the stages before it
CRAWL_STAGES: List[List[RequestType]] = [
    [
        RequestType.ORGANIZATION_VALIDATION,
        RequestType.ORGANIZATION_DETAIL,
        RequestType.MEMBER_ID,
        RequestType.REPOSITORY,
        RequestType.TEAM,
    ],
    [
        RequestType.MEMBER,
        RequestType.MEMBER_PR,
        RequestType.CREATED_REPOS_BY_MEMBERS,
    ],
    [
        RequestType.EXTERNAL_REPO,
    ],
]


class TemplateQueryBuilder:
    """
    Builds queries from one prepared GraphQL document per request type.

    Login-based types receive the organization login and the request's
    pagination cursor as the ``$login`` and ``$cursor`` variables. Types in
    ``ID_REQUEST_TYPES`` receive the request's batch as ``$ids``.
    """

    def __init__(self, templates: Dict[RequestType, str]):
        self.templates = templates

    def build(self, request: Request) -> Query:
        if request.request_type in ID_REQUEST_TYPES:
            variables = {"ids": list(request.ids)}
        else:
            variables = {"login": request.organization_name, "cursor": request.cursor}
        return Query(
            organization_name=request.organization_name,
            request_type=request.request_type,
            query_text=self.templates[request.request_type],
            variables=variables,
            request=request,
        )


class CrawlerService:
    """Service fetching outstanding requests and routing their responses."""

    BATCH_SIZE = 100  # Maximum node IDs per GraphQL query

    def __init__(
        self,
        github_client: GitHubGraphQLClient,
        store: OrganizationStore,
        manager: ResponseProcessorManager,
        query_builder: TemplateQueryBuilder,
        rate_limit_buffer: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize crawler service.

        Args:
            github_client: GitHub API client
            store: Store holding the outstanding requests
            manager: Router for fetched response pages
            query_builder: Turns requests into executable queries
            rate_limit_buffer: Remaining calls at which crawling pauses until reset
            sleep: Sleep function, replaceable in tests
        """
        self.github_client = github_client
        self.store = store
        self.manager = manager
        self.query_builder = query_builder
        self.rate_limit_buffer = (
            config.RATE_LIMIT_BUFFER if rate_limit_buffer is None else rate_limit_buffer
        )
        self.sleep = sleep

    def seed(self, organization_name: str, request_type: RequestType) -> List[Request]:
        """
        Register the first requests of a type for an organization.

        Login-based types get one first-page request. ID-based types get one
        request per batch of IDs taken from the session's graph: member IDs
        for the member types, external repository IDs for ``EXTERNAL_REPO``.

        Returns:
            The saved requests, empty if an ID-based type has nothing to look up
        """
        if request_type not in ID_REQUEST_TYPES:
            return [self.store.save_request(Request(organization_name, request_type))]

        ids = self._seed_ids(organization_name, request_type)
        if not ids:
            logger.info(f"No IDs to look up for {request_type.value} in {organization_name}, skipping")
            return []

        requests = [
            self.store.save_request(
                Request(organization_name, request_type, ids=ids[start:start + self.BATCH_SIZE])
            )
            for start in range(0, len(ids), self.BATCH_SIZE)
        ]
        logger.info(
            f"Seeded {len(requests)} {request_type.value} request(s) for {len(ids)} IDs "
            f"in {organization_name}"
        )
        return requests

    def _seed_ids(self, organization_name: str, request_type: RequestType) -> List[str]:
        graph = self.manager.registry.organization_graph(organization_name)
        if request_type == RequestType.EXTERNAL_REPO:
            return list(graph.calculate_external_repo_contributions())
        with graph.lock:
            return list(graph.member_ids)

    def crawl_organization(self, organization_name: str, request_types: Iterable[RequestType]) -> int:
        """
        Crawl the given request types stage by stage.

        Stages run in ``CRAWL_STAGES`` order and each is drained before the
        next one is seeded. A type that still has incomplete requests in the
        store resumes from them instead of being seeded again.

        Args:
            organization_name: Organization to crawl
            request_types: Request types to work through

        Returns:
            Number of pages routed
        """
        request_types = set(request_types)
        logger.info(f"Starting crawl of {organization_name} for {len(request_types)} request types")

        routed = 0
        for stage in CRAWL_STAGES:
            stage_types = [request_type for request_type in stage if request_type in request_types]
            if not stage_types:
                continue

            for request_type in stage_types:
                if not self.store.find_incomplete_requests(organization_name, request_type):
                    self.seed(organization_name, request_type)
            routed += self._drain(organization_name, stage_types)

        logger.info(f"Crawl of {organization_name} completed. Pages routed: {routed}")
        return routed

    def _drain(self, organization_name: str, request_types: List[RequestType]) -> int:
        """Fetch and route pages until no request of the types is outstanding."""
        routed = 0
        dispatched: Set[int] = set()
        while True:
            pending = [
                request
                for request_type in request_types
                for request in self.store.find_incomplete_requests(organization_name, request_type)
                if request.id not in dispatched
            ]
            if not pending:
                return routed

            for request in pending:
                dispatched.add(request.id)
                fetched = self.github_client.fetch(self.query_builder.build(request))
                if self.manager.route(fetched):
                    routed += 1
                self._respect_rate_limit(fetched)

    def _respect_rate_limit(self, fetched: Query):
        rate_limit = parse_rate_limit(fetched.response)
        if rate_limit is None:
            return

        logger.debug(f"API calls remaining: {rate_limit.remaining}")
        if rate_limit.remaining > self.rate_limit_buffer:
            return

        wait_time = 60
        if rate_limit.reset_at is not None:
            wait_time = max((rate_limit.reset_at - datetime.now(timezone.utc)).total_seconds(), 0) + 10
        logger.warning(f"Low API rate limit: {rate_limit.remaining}. Pausing {wait_time:.0f}s...")
        self.sleep(wait_time)
