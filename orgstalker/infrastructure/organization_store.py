"""Storage contract for organization graphs and outstanding requests."""

import copy
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.request import Request, RequestType

logger = logging.getLogger(__name__)


class OrganizationStore(ABC):
    """Durable lookup and save of organization graphs and their requests."""

    @abstractmethod
    def find_by_organization_name(self, organization_name: str) -> Optional[OrganizationGraph]:
        """Return the stored graph, or None if the organization was never saved."""

    @abstractmethod
    def save(self, organization_name: str, organization: OrganizationGraph):
        """Persist the graph, replacing any stored version."""

    @abstractmethod
    def find_incomplete_requests(
        self, organization_name: str, request_type: RequestType
    ) -> List[Request]:
        """Return requests of the type that have not been marked complete."""

    @abstractmethod
    def save_request(self, request: Request) -> Request:
        """Store a new request and return it with its ID assigned."""

    @abstractmethod
    def mark_request_complete(self, request: Request):
        """Mark a stored request complete."""


class InMemoryOrganizationStore(OrganizationStore):
    """Thread-safe store keeping everything in process memory."""

    def __init__(self):
        self.organizations: Dict[str, OrganizationGraph] = {}
        self.requests: Dict[int, Request] = {}
        self.save_count = 0
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_by_organization_name(self, organization_name: str) -> Optional[OrganizationGraph]:
        with self._lock:
            return self.organizations.get(organization_name)

    def save(self, organization_name: str, organization: OrganizationGraph):
        with self._lock:
            self.organizations[organization_name] = organization
            self.save_count += 1
        logger.debug(f"Saved organization {organization_name}")

    def find_incomplete_requests(
        self, organization_name: str, request_type: RequestType
    ) -> List[Request]:
        with self._lock:
            return [
                copy.copy(request)
                for request in self.requests.values()
                if request.organization_name == organization_name
                and request.request_type == request_type
                and not request.complete
            ]

    def save_request(self, request: Request) -> Request:
        with self._lock:
            if request.id is None:
                request.id = next(self._ids)
            self.requests[request.id] = copy.copy(request)
            return request

    def mark_request_complete(self, request: Request):
        with self._lock:
            request.complete = True
            stored = self.requests.get(request.id)
            if stored is not None:
                stored.complete = True
