"""Per-session table of live response processors."""

import logging
import threading
from typing import Any, Dict, Optional, Set, Tuple, Type, Union

from orgstalker.application.processors.base import ResponseProcessor
from orgstalker.application.processors.external_repo_processor import ExternalRepoProcessor
from orgstalker.application.processors.member_processors import (
    CreatedReposByMembersProcessor,
    MemberIDProcessor,
    MemberPRProcessor,
    MemberProcessor,
)
from orgstalker.application.processors.organization_processors import (
    OrganizationDetailProcessor,
    OrganizationValidationProcessor,
    TeamProcessor,
)
from orgstalker.application.processors.repository_processor import RepositoryProcessor
from orgstalker.domain.exceptions import ConfigurationError, DuplicateFinishError
from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.request import Query, RequestType
from orgstalker.infrastructure.organization_store import OrganizationStore

logger = logging.getLogger(__name__)


PROCESSOR_TYPES: Dict[RequestType, Type[ResponseProcessor]] = {
    RequestType.ORGANIZATION_VALIDATION: OrganizationValidationProcessor,
    RequestType.ORGANIZATION_DETAIL: OrganizationDetailProcessor,
    RequestType.MEMBER_ID: MemberIDProcessor,
    RequestType.MEMBER: MemberProcessor,
    RequestType.MEMBER_PR: MemberPRProcessor,
    RequestType.REPOSITORY: RepositoryProcessor,
    RequestType.TEAM: TeamProcessor,
    RequestType.EXTERNAL_REPO: ExternalRepoProcessor,
    RequestType.CREATED_REPOS_BY_MEMBERS: CreatedReposByMembersProcessor,
}

ProcessorKey = Tuple[str, RequestType]


class ProcessorRegistry:
    """
    Holds one processor per (organization, request type) while that type is crawled.

    A registry lives for one crawl session. It also owns the session's
    ``OrganizationGraph`` objects, so every processor of an organization
    merges into the same graph.
    """

    def __init__(
        self,
        store: OrganizationStore,
        processor_types: Optional[Dict[RequestType, Type[ResponseProcessor]]] = None,
        **processor_options: Any,
    ):
        """
        Initialize registry.

        Args:
            store: Store handed to every processor and used to load graphs
            processor_types: Processor class per request type. If None, uses PROCESSOR_TYPES.
            **processor_options: Extra keyword arguments for processor construction
                (e.g. ``past_days``, ``clock``)
        """
        self.store = store
        self.processor_types = PROCESSOR_TYPES if processor_types is None else processor_types
        self.processor_options = processor_options
        self._processors: Dict[ProcessorKey, ResponseProcessor] = {}
        self._retired: Set[ProcessorKey] = set()
        self._graphs: Dict[str, OrganizationGraph] = {}
        self._lock = threading.Lock()

    def dispatch(
        self,
        organization_name: str,
        request_type: Union[RequestType, str],
        request_query: Query,
    ):
        """
        Forward a response page to the processor for its organization and type.

        Raises:
            ConfigurationError: If no processor handles the request type
            DuplicateFinishError: If the type already finished for the organization
        """
        request_type = RequestType.resolve(request_type)
        processor = self._get_or_create(organization_name, request_type)
        processor.process_response(request_query)

    def _get_or_create(self, organization_name: str, request_type: RequestType) -> ResponseProcessor:
        key = (organization_name, request_type)
        with self._lock:
            if key in self._retired:
                raise DuplicateFinishError(
                    f"{request_type.value} already finished for {organization_name}"
                )

            processor = self._processors.get(key)
            if processor is None:
                processor_class = self.processor_types.get(request_type)
                if processor_class is None:
                    raise ConfigurationError(
                        f"No processor registered for request type {request_type.value}"
                    )
                processor = processor_class(
                    organization_name, self.store, self, **self.processor_options
                )
                self._processors[key] = processor
                logger.info(f"Created {processor_class.__name__} for {organization_name}")
            return processor

    def retire(self, organization_name: str, request_type: RequestType):
        """
        Remove the processor for a finished request type.

        Raises:
            DuplicateFinishError: If the key was already retired
        """
        key = (organization_name, request_type)
        with self._lock:
            if key in self._retired:
                raise DuplicateFinishError(
                    f"{request_type.value} already finished for {organization_name}"
                )
            self._processors.pop(key, None)
            self._retired.add(key)

    def is_retired(self, organization_name: str, request_type: RequestType) -> bool:
        with self._lock:
            return (organization_name, request_type) in self._retired

    def get(self, organization_name: str, request_type: RequestType) -> Optional[ResponseProcessor]:
        with self._lock:
            return self._processors.get((organization_name, request_type))

    def organization_graph(self, organization_name: str) -> OrganizationGraph:
        """
        Return the session's graph for the organization, loading it on first use.

        The store is read without holding the registry lock, so a slow load
        does not stall other organizations. If two threads load the same
        organization at once, the first graph cached wins.
        """
        with self._lock:
            graph = self._graphs.get(organization_name)
        if graph is not None:
            return graph

        loaded = self.store.find_by_organization_name(organization_name)
        if loaded is None:
            loaded = OrganizationGraph(organization_name)
        with self._lock:
            return self._graphs.setdefault(organization_name, loaded)

    def __contains__(self, key: ProcessorKey) -> bool:
        with self._lock:
            return key in self._processors

    def __len__(self) -> int:
        with self._lock:
            return len(self._processors)
