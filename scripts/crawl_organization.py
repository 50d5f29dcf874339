#!/usr/bin/env python3
"""Script to crawl one organization and store its aggregated graph."""

import logging
import sys
import os
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from orgstalker.application.crawler_service import CrawlerService, TemplateQueryBuilder
from orgstalker.application.processor_registry import ProcessorRegistry
from orgstalker.application.response_processor_manager import ResponseProcessorManager
from orgstalker.domain.request import RequestType
from orgstalker.infrastructure.database import PostgresOrganizationStore
from orgstalker.infrastructure.github_client import GitHubGraphQLClient

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def load_query_templates(templates_dir: Path) -> dict:
    """Load one ``<REQUEST_TYPE>.graphql`` document per request type found."""
    templates = {}
    for request_type in RequestType:
        path = templates_dir / f"{request_type.value}.graphql"
        if path.exists():
            templates[request_type] = path.read_text(encoding="utf-8")
    return templates


def main():
    """Crawl the organization named by ORGANIZATION and persist its graph."""
    try:
        organization_name = os.getenv("ORGANIZATION")
        if not organization_name:
            logger.error("ORGANIZATION not set")
            return 1

        github_token = os.getenv("GITHUB_TOKEN")
        if not github_token:
            logger.warning("GITHUB_TOKEN not found. Using unauthenticated requests (limited rate).")

        templates = load_query_templates(Path(os.getenv("QUERY_TEMPLATES_DIR", "queries")))
        if not templates:
            logger.error("No query templates found")
            return 1

        store = PostgresOrganizationStore()
        store.connect()
        if os.getenv("INIT_SCHEMA", "true").lower() in ("1", "true", "yes"):
            store.initialize_schema()

        registry = ProcessorRegistry(store)
        crawler = CrawlerService(
            GitHubGraphQLClient(token=github_token),
            store,
            ResponseProcessorManager(registry),
            TemplateQueryBuilder(templates),
        )

        routed = crawler.crawl_organization(organization_name, templates.keys())

        graph = store.find_by_organization_name(organization_name)
        if graph is not None:
            logger.info(
                f"{organization_name}: {len(graph.members)} members, "
                f"{len(graph.repositories)} repositories, "
                f"{len(graph.external_repos)} external repositories, "
                f"{len(graph.teams)} teams"
            )

        store.close()
        return 0 if routed > 0 else 1

    except Exception as e:
        logger.error(f"Crawl failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
