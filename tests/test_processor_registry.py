"""Tests for processor lifecycle, completion detection and routing"""

import itertools
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from orgstalker.application.processor_registry import ProcessorRegistry
from orgstalker.application.processors.external_repo_processor import ExternalRepoProcessor
from orgstalker.application.response_processor_manager import ResponseProcessorManager
from orgstalker.domain.exceptions import ConfigurationError, DuplicateFinishError
from orgstalker.domain.request import Query, Request, RequestType
from orgstalker.infrastructure.organization_store import InMemoryOrganizationStore

from payloads import PAST_DAYS, external_repo_page, fixed_clock, repository_node


class CountingStore(InMemoryOrganizationStore):
    """In-memory store that fails on save when asked to."""

    def __init__(self, fail_on_save=False):
        super().__init__()
        self.fail_on_save = fail_on_save

    def save(self, organization_name, organization):
        if self.fail_on_save:
            raise RuntimeError("database unavailable")
        super().save(organization_name, organization)


class BlockingStore(InMemoryOrganizationStore):
    """In-memory store whose load of ``slow`` waits until released."""

    def __init__(self):
        super().__init__()
        self.loading = threading.Event()
        self.release = threading.Event()

    def find_by_organization_name(self, organization_name):
        if organization_name == "slow":
            self.loading.set()
            self.release.wait(timeout=5)
        return super().find_by_organization_name(organization_name)


class TestProcessorRegistry(unittest.TestCase):
    """Test the registry and the routing entry point"""

    def setUp(self):
        self.store = CountingStore()
        self.registry = ProcessorRegistry(self.store, past_days=PAST_DAYS, clock=fixed_clock)
        self.manager = ResponseProcessorManager(self.registry)

    def _queries(self, count, organization_name="acme"):
        requests = [
            self.store.save_request(Request(organization_name, RequestType.EXTERNAL_REPO))
            for _ in range(count)
        ]
        return [
            Query(
                organization_name,
                RequestType.EXTERNAL_REPO,
                request=request,
                response=external_repo_page(repository_node(f"R{index}")),
            )
            for index, request in enumerate(requests)
        ]

    def test_finishes_once_after_last_page_in_any_order(self):
        for order in itertools.permutations(range(3)):
            with self.subTest(order=order):
                self.setUp()
                queries = self._queries(3)
                for position, index in enumerate(order):
                    self.assertEqual(self.store.save_count, 0)
                    self.assertTrue(self.manager.route(queries[index]))
                    if position < 2:
                        self.assertIn(("acme", RequestType.EXTERNAL_REPO), self.registry)

                self.assertEqual(self.store.save_count, 1)
                self.assertEqual(len(self.registry), 0)
                graph = self.store.find_by_organization_name("acme")
                self.assertEqual(sorted(graph.external_repos), ["R0", "R1", "R2"])

    def test_same_processor_reused_per_key(self):
        queries = self._queries(2)
        self.manager.route(queries[0])
        processor = self.registry.get("acme", RequestType.EXTERNAL_REPO)

        self.assertIsInstance(processor, ExternalRepoProcessor)
        self.assertEqual(processor.organization_name, "acme")
        self.assertEqual(list(processor.repositories_map), ["R0"])

    def test_organizations_are_isolated(self):
        acme = self._queries(1, "acme")
        other = self._queries(2, "globex")

        self.manager.route(other[0])
        self.manager.route(acme[0])

        self.assertIsNotNone(self.store.find_by_organization_name("acme"))
        self.assertIsNone(self.store.find_by_organization_name("globex"))
        self.assertIn(("globex", RequestType.EXTERNAL_REPO), self.registry)

    def test_unknown_request_type_raises_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            self.registry.dispatch("acme", "STARGAZERS", Query("acme", "STARGAZERS"))

    def test_unregistered_request_type_raises_configuration_error(self):
        registry = ProcessorRegistry(self.store, processor_types={})
        with self.assertRaises(ConfigurationError):
            registry.dispatch("acme", RequestType.TEAM, Query("acme", RequestType.TEAM))

    def test_unknown_request_type_is_dropped_without_affecting_others(self):
        queries = self._queries(2)
        self.manager.route(queries[0])

        with self.assertLogs("orgstalker.application.response_processor_manager", level="ERROR"):
            self.assertFalse(self.manager.route(Query("acme", "STARGAZERS", response={})))

        processor = self.registry.get("acme", RequestType.EXTERNAL_REPO)
        self.assertEqual(list(processor.repositories_map), ["R0"])
        self.manager.route(queries[1])
        self.assertEqual(self.store.save_count, 1)

    def test_late_page_after_finish_is_dropped(self):
        queries = self._queries(1)
        self.manager.route(queries[0])

        with self.assertRaises(DuplicateFinishError):
            self.registry.dispatch("acme", RequestType.EXTERNAL_REPO, queries[0])
        self.assertFalse(self.manager.route(queries[0]))
        self.assertEqual(self.store.save_count, 1)
        self.assertEqual(len(self.registry), 0)

    def test_retire_twice_raises(self):
        self.registry.retire("acme", RequestType.TEAM)
        self.assertTrue(self.registry.is_retired("acme", RequestType.TEAM))
        with self.assertRaises(DuplicateFinishError):
            self.registry.retire("acme", RequestType.TEAM)

    def test_store_failure_propagates(self):
        self.store.fail_on_save = True
        queries = self._queries(1)
        with self.assertRaises(RuntimeError):
            self.manager.route(queries[0])

    def test_graph_shared_between_request_types(self):
        graph = self.registry.organization_graph("acme")
        self.assertIs(self.registry.organization_graph("acme"), graph)
        self.assertIsNot(self.registry.organization_graph("globex"), graph)

    def test_slow_graph_load_does_not_block_other_organizations(self):
        store = BlockingStore()
        registry = ProcessorRegistry(store)
        slow = threading.Thread(target=registry.organization_graph, args=("slow",))
        slow.start()
        self.assertTrue(store.loading.wait(timeout=5))

        fast = threading.Thread(target=registry.organization_graph, args=("fast",))
        fast.start()
        fast.join(timeout=2)
        try:
            self.assertFalse(fast.is_alive())
        finally:
            store.release.set()
            slow.join(timeout=5)

        self.assertIs(registry.organization_graph("slow"), registry.organization_graph("slow"))

    def test_concurrent_pages_finish_once(self):
        queries = self._queries(16)
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(self.manager.route, queries))

        self.assertTrue(all(results))
        self.assertEqual(self.store.save_count, 1)
        graph = self.store.find_by_organization_name("acme")
        self.assertEqual(len(graph.external_repos), 16)


if __name__ == "__main__":
    unittest.main()
