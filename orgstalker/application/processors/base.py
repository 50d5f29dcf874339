"""Shared lifecycle of all response processors."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

from orgstalker import config
from orgstalker.application.chart_data import generate_chart_data
from orgstalker.domain.chart import ChartData
from orgstalker.domain.exceptions import DuplicateFinishError
from orgstalker.domain.organization import OrganizationGraph, RateLimit
from orgstalker.domain.repository import (
    NO_DESCRIPTION,
    NO_LANGUAGE,
    NO_LICENSE,
    Repository,
)
from orgstalker.domain.request import Query, Request, RequestType
from orgstalker.infrastructure.organization_store import OrganizationStore
from orgstalker.infrastructure.response_parser import (
    PageInfo,
    RepositoryNode,
    parse_rate_limit,
)

if TYPE_CHECKING:
    from orgstalker.application.processor_registry import ProcessorRegistry

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResponseProcessor:
    """
    Processes the response pages of one request type for one organization.

    Subclasses set ``request_type`` and implement ``process_query_response``
    (merge one page into the type-local accumulator) and ``merge_into_graph``.
    ``link_entities`` and ``page_info`` are optional extension points.
    """

    request_type: RequestType

    def __init__(
        self,
        organization_name: str,
        store: OrganizationStore,
        registry: "ProcessorRegistry",
        past_days: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize processor.

        Args:
            organization_name: Organization this processor is bound to
            store: Store used for outstanding requests and persistence
            registry: Registry that owns this processor and the session's graphs
            past_days: Activity window in days. If None, uses config.
            clock: Returns the current aware datetime
        """
        self.organization_name = organization_name
        self.store = store
        self.registry = registry
        self.past_days = config.PAST_DAYS_AMOUNT_TO_CRAWL if past_days is None else past_days
        self.clock = clock
        self.request_query: Optional[Query] = None
        self.organization: Optional[OrganizationGraph] = None
        self._lock = threading.Lock()
        self._finished = False

    def set_up(self, request_query: Query):
        """Bind the query being processed and the organization's graph."""
        self.request_query = request_query
        self.organization = self.registry.organization_graph(self.organization_name)

    def process_response(self, request_query: Query):
        """
        Perform the complete processing of one response page.

        Args:
            request_query: Query carrying the decoded response payload
        """
        with self._lock:
            self.set_up(request_query)
            payload = request_query.response or {}

            self.update_rate_limit(parse_rate_limit(payload))
            self.process_query_response(payload)
            self.register_follow_up_requests(payload)

            logger.debug(
                f"Processed {self.request_type.value} page for {self.organization_name}"
            )

            if self.is_last_page_of_type(self.organization_name, request_query, self.request_type):
                self.do_finishing_query_procedure()

    def update_rate_limit(self, rate_limit: Optional[RateLimit]):
        if rate_limit is None:
            return
        self.organization.update_rate_limit(rate_limit)

    def register_follow_up_requests(self, payload: Dict[str, Any]):
        """
        Save a request for the next page, then complete the current one.

        The follow-up is saved first so the set of incomplete requests for
        this type never becomes empty while pages are still outstanding.
        """
        page_info = self.page_info(payload)
        if page_info is not None and page_info.has_next_page and page_info.end_cursor:
            self.store.save_request(
                Request(
                    organization_name=self.organization_name,
                    request_type=self.request_type,
                    cursor=page_info.end_cursor,
                )
            )
        if self.request_query.request is not None:
            self.store.mark_request_complete(self.request_query.request)

    def is_last_page_of_type(
        self, organization_name: str, request_query: Query, request_type: RequestType
    ) -> bool:
        """True when no request of ``request_type`` is outstanding for the organization."""
        outstanding = self.store.find_incomplete_requests(organization_name, request_type)
        if outstanding:
            logger.debug(
                f"{len(outstanding)} {request_type.value} request(s) still outstanding "
                f"for {organization_name}"
            )
            return False
        return True

    def do_finishing_query_procedure(self):
        """
        Merge the accumulated data into the graph, cross-link it and persist it.

        The processor is retired from the registry before anything is merged,
        so a second invocation is rejected instead of merging twice.

        Raises:
            DuplicateFinishError: If this request type was already finished
        """
        if self._finished:
            raise DuplicateFinishError(
                f"{self.request_type.value} already finished for {self.organization_name}"
            )
        self._finished = True
        self.registry.retire(self.organization_name, self.request_type)

        with self.organization.lock:
            self.merge_into_graph(self.organization)
            self.link_entities(self.organization)

        self.store.save(self.organization_name, self.organization)
        logger.info(f"Finished {self.request_type.value} processing for {self.organization_name}")

    def process_query_response(self, payload: Dict[str, Any]):
        raise NotImplementedError

    def merge_into_graph(self, organization: OrganizationGraph):
        raise NotImplementedError

    def link_entities(self, organization: OrganizationGraph):
        pass

    def page_info(self, payload: Dict[str, Any]) -> Optional[PageInfo]:
        """Pagination state of the page's top-level connection, if it has one."""
        return None

    # Helpers shared by the concrete processors

    def cutoff(self) -> datetime:
        return self.clock() - timedelta(days=self.past_days)

    def recent(self, dates: Iterable[datetime]) -> List[datetime]:
        """Keep timestamps strictly after the cutoff."""
        cutoff = self.cutoff()
        return [date for date in dates if date > cutoff]

    def generate_chart_data(self, dates: Iterable[datetime]) -> ChartData:
        return generate_chart_data(dates, self.past_days, self.clock())

    def build_repository(self, node: RepositoryNode) -> Repository:
        """
        Build a repository entity, applying time-window filtering and fallbacks.

        Pull requests and issues are limited to the crawl window. Commit history
        is already bounded by the query and is kept as returned.
        """
        pull_request_dates = self.recent(node.pull_request_dates)
        issue_dates = self.recent(node.issue_dates)
        commit_dates = list(node.commit_dates or [])

        return Repository(
            id=node.id,
            name=node.name,
            url=node.url,
            description=node.description if node.description is not None else NO_DESCRIPTION,
            programming_language=(
                node.primary_language if node.primary_language is not None else NO_LANGUAGE
            ),
            license=node.license_name if node.license_name is not None else NO_LICENSE,
            forks=node.fork_count,
            stars=node.star_count,
            amount_previous_pull_requests=len(pull_request_dates),
            previous_pull_requests=self.generate_chart_data(pull_request_dates),
            amount_previous_issues=len(issue_dates),
            previous_issues=self.generate_chart_data(issue_dates),
            amount_previous_commits=len(commit_dates),
            previous_commits=self.generate_chart_data(commit_dates),
        )
