"""Routing of response pages to their processors."""

import logging

from orgstalker.application.processor_registry import ProcessorRegistry
from orgstalker.domain.exceptions import ConfigurationError, DuplicateFinishError
from orgstalker.domain.request import Query

logger = logging.getLogger(__name__)


class ResponseProcessorManager:
    """Entry point for response pages; keeps each request type's state isolated."""

    def __init__(self, registry: ProcessorRegistry):
        self.registry = registry

    def route(self, request_query: Query) -> bool:
        """
        Dispatch a page by its request type.

        Pages with an unknown request type, or for a type that already
        finished, are logged and dropped. Store errors propagate.

        Args:
            request_query: Query carrying the response page

        Returns:
            True if the page was processed, False if it was dropped
        """
        try:
            self.registry.dispatch(
                request_query.organization_name,
                request_query.request_type,
                request_query,
            )
        except ConfigurationError as e:
            logger.error(f"Dropping page for {request_query.organization_name}: {e}")
            return False
        except DuplicateFinishError as e:
            logger.warning(f"Dropping late page for {request_query.organization_name}: {e}")
            return False
        return True
