"""Tests for the crawl driver"""

import unittest
from dataclasses import replace
from unittest import mock

from orgstalker.application.crawler_service import CrawlerService, TemplateQueryBuilder
from orgstalker.application.processor_registry import ProcessorRegistry
from orgstalker.application.response_processor_manager import ResponseProcessorManager
from orgstalker.domain.request import Request, RequestType
from orgstalker.infrastructure.organization_store import InMemoryOrganizationStore

from payloads import (
    PAST_DAYS,
    connection,
    fixed_clock,
    member_node,
    rate_limit,
    repository_node,
)

TEMPLATES = {
    RequestType.MEMBER_ID: "query($login: String!, $cursor: String) { ... }",
    RequestType.MEMBER: "query($ids: [ID!]!) { nodes(ids: $ids) { ... } }",
    RequestType.EXTERNAL_REPO: "query($ids: [ID!]!) { nodes(ids: $ids) { ... } }",
}


class FakeClient:
    """
    Serves member ID pages by cursor and ``nodes(ids:)`` lookups by ID.

    The first member ID page points at cursor ``c1``. Both members committed
    to the external repository ``X``.
    """

    def __init__(self, remaining=4999):
        self.remaining = remaining
        self.fetched = []

    def fetch(self, query):
        self.fetched.append(query)
        payload = {"rateLimit": rate_limit(self.remaining)}
        if query.request_type == RequestType.MEMBER_ID:
            if query.variables["cursor"] is None:
                members = connection([{"id": "m1"}], has_next_page=True, end_cursor="c1")
            else:
                members = connection([{"id": "m2"}])
            payload["organization"] = {"membersWithRole": members}
        elif query.request_type == RequestType.MEMBER:
            payload["nodes"] = [
                member_node(member_id, contributed_repo_ids=["X"])
                for member_id in query.variables["ids"]
            ]
        elif query.request_type == RequestType.EXTERNAL_REPO:
            payload["nodes"] = [repository_node(repo_id) for repo_id in query.variables["ids"]]
        return replace(query, response=payload)


class TestCrawlerService(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryOrganizationStore()
        self.registry = ProcessorRegistry(self.store, past_days=PAST_DAYS, clock=fixed_clock)
        self.sleep = mock.Mock()
        self.client = FakeClient()
        self.crawler = CrawlerService(
            self.client,
            self.store,
            ResponseProcessorManager(self.registry),
            TemplateQueryBuilder(TEMPLATES),
            rate_limit_buffer=100,
            sleep=self.sleep,
        )

    def test_crawl_follows_pagination_until_done(self):
        routed = self.crawler.crawl_organization("acme", [RequestType.MEMBER_ID])

        self.assertEqual(routed, 2)
        self.assertEqual([q.variables["cursor"] for q in self.client.fetched], [None, "c1"])
        self.assertEqual(self.store.find_by_organization_name("acme").member_ids, ["m1", "m2"])
        self.sleep.assert_not_called()

    def test_crawl_stages_from_members_to_external_repos(self):
        routed = self.crawler.crawl_organization(
            "acme", [RequestType.EXTERNAL_REPO, RequestType.MEMBER, RequestType.MEMBER_ID]
        )

        self.assertEqual(routed, 4)
        self.assertEqual(
            [q.request_type for q in self.client.fetched],
            [RequestType.MEMBER_ID, RequestType.MEMBER_ID, RequestType.MEMBER, RequestType.EXTERNAL_REPO],
        )
        self.assertEqual(self.client.fetched[2].variables, {"ids": ["m1", "m2"]})
        self.assertEqual(self.client.fetched[3].variables, {"ids": ["X"]})

        graph = self.store.find_by_organization_name("acme")
        self.assertEqual([m.id for m in graph.external_repos["X"].contributors], ["m1", "m2"])

    def test_id_types_are_split_into_batches(self):
        self.crawler.BATCH_SIZE = 2
        self.registry.organization_graph("acme").add_member_ids(["m1", "m2", "m3"])

        requests = self.crawler.seed("acme", RequestType.MEMBER)

        self.assertEqual([request.ids for request in requests], [["m1", "m2"], ["m3"]])

    def test_id_type_without_ids_is_skipped(self):
        routed = self.crawler.crawl_organization("acme", [RequestType.MEMBER, RequestType.EXTERNAL_REPO])

        self.assertEqual(routed, 0)
        self.assertEqual(self.client.fetched, [])

    def test_outstanding_requests_are_resumed_not_reseeded(self):
        self.store.save_request(Request("acme", RequestType.MEMBER_ID, cursor="c1"))

        routed = self.crawler.crawl_organization("acme", [RequestType.MEMBER_ID])

        self.assertEqual(routed, 1)
        self.assertEqual([q.variables["cursor"] for q in self.client.fetched], ["c1"])

    def test_low_rate_limit_pauses(self):
        self.client.remaining = 50

        self.crawler.crawl_organization("acme", [RequestType.MEMBER_ID])

        self.assertEqual(self.sleep.call_count, 2)

    def test_template_builder_passes_login_and_cursor(self):
        request = self.crawler.seed("acme", RequestType.MEMBER_ID)[0]
        query = self.crawler.query_builder.build(request)

        self.assertEqual(query.variables, {"login": "acme", "cursor": None})
        self.assertIs(query.request, request)
        self.assertEqual(query.request_type, RequestType.MEMBER_ID)

    def test_template_builder_passes_ids(self):
        query = self.crawler.query_builder.build(Request("acme", RequestType.EXTERNAL_REPO, ids=["X", "Y"]))

        self.assertEqual(query.variables, {"ids": ["X", "Y"]})


if __name__ == "__main__":
    unittest.main()
