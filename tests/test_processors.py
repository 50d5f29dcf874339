"""Tests for the member, repository, team and organization processors"""

import unittest

from orgstalker.application.processor_registry import ProcessorRegistry
from orgstalker.application.response_processor_manager import ResponseProcessorManager
from orgstalker.domain.member import Member
from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.request import Query, Request, RequestType
from orgstalker.infrastructure.organization_store import InMemoryOrganizationStore

from payloads import (
    PAST_DAYS,
    connection,
    days_ago,
    fixed_clock,
    iso,
    member_node,
    rate_limit,
    repository_node,
)


class ProcessorTestCase(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryOrganizationStore()
        self.registry = ProcessorRegistry(self.store, past_days=PAST_DAYS, clock=fixed_clock)
        self.manager = ResponseProcessorManager(self.registry)

    def route(self, request_type, payload, request=None):
        if request is None:
            request = self.store.save_request(Request("acme", request_type))
        return self.manager.route(Query("acme", request_type, request=request, response=payload))

    def graph(self):
        return self.store.find_by_organization_name("acme")


class TestMemberProcessors(ProcessorTestCase):

    def test_member_ids_follow_pagination(self):
        self.route(RequestType.MEMBER_ID, {
            "rateLimit": rate_limit(),
            "organization": {"membersWithRole": connection(
                [{"id": "m1"}, {"id": "m2"}], has_next_page=True, end_cursor="c1"
            )},
        })

        self.assertIsNone(self.graph())
        pending = self.store.find_incomplete_requests("acme", RequestType.MEMBER_ID)
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0].cursor, "c1")

        self.route(RequestType.MEMBER_ID, {
            "organization": {"membersWithRole": connection([{"id": "m2"}, {"id": "m3"}])},
        }, request=pending[0])

        self.assertEqual(self.graph().member_ids, ["m1", "m2", "m3"])
        self.assertEqual(self.store.find_incomplete_requests("acme", RequestType.MEMBER_ID), [])

    def test_member_profiles_and_activity(self):
        self.route(RequestType.MEMBER, {
            "nodes": [
                member_node("m1", login="alice", contributed_repo_ids=["X"],
                            commit_dates=[days_ago(1), days_ago(30)], issue_dates=[days_ago(2)]),
            ],
        })

        member = self.graph().members["m1"]
        self.assertEqual(member.login, "alice")
        self.assertEqual(member.contributed_repo_ids, ["X"])
        self.assertEqual(member.amount_previous_commits, 1)
        self.assertEqual(member.amount_previous_issues, 1)
        self.assertEqual(len(member.previous_commits.labels), PAST_DAYS + 1)

    def test_member_pull_requests_within_window(self):
        self.route(RequestType.MEMBER_PR, {
            "nodes": [{
                "id": "m1",
                "pullRequests": {"nodes": [
                    {"createdAt": iso(days_ago(1)), "repository": {"id": "A"}},
                    {"createdAt": iso(days_ago(2)), "repository": {"id": "A"}},
                    {"createdAt": iso(days_ago(40)), "repository": {"id": "B"}},
                ]},
            }],
        })

        self.assertEqual(self.graph().members["m1"].pull_request_repo_ids, ["A"])

    def test_created_repos_by_members(self):
        graph = OrganizationGraph("acme")
        graph.add_members({"m1": Member(id="m1", login="alice")})
        self.store.save("acme", graph)

        self.route(RequestType.CREATED_REPOS_BY_MEMBERS, {
            "nodes": [{"id": "m1", "repositories": {"nodes": [repository_node("P", description=None)]}}],
        })

        self.assertEqual(graph.members["m1"].created_repo_ids, ["P"])
        self.assertEqual(graph.members["m1"].login, "alice")
        self.assertEqual(graph.created_repos["P"].description, "No Description deposited")


class TestOrganizationProcessors(ProcessorTestCase):

    def test_validation(self):
        self.route(RequestType.ORGANIZATION_VALIDATION, {"organization": {"id": "O1"}})
        self.assertTrue(self.graph().valid)

    def test_validation_missing_organization(self):
        self.route(RequestType.ORGANIZATION_VALIDATION, {"organization": None})
        self.assertFalse(self.graph().valid)

    def test_detail(self):
        self.route(RequestType.ORGANIZATION_DETAIL, {
            "organization": {
                "login": "acme",
                "name": None,
                "description": None,
                "url": "https://github.com/acme",
                "membersWithRole": {"totalCount": 12},
                "repositories": {"totalCount": 30},
                "teams": {"totalCount": 4},
            },
        })

        detail = self.graph().detail
        self.assertEqual(detail.name, "acme")
        self.assertEqual(detail.description, "No Description deposited")
        self.assertEqual(detail.number_of_members, 12)
        self.assertEqual(detail.number_of_repositories, 30)
        self.assertEqual(detail.number_of_teams, 4)

    def test_repositories(self):
        self.route(RequestType.REPOSITORY, {
            "organization": {"repositories": connection([repository_node("OWN", language=None)])},
        })

        repo = self.graph().repositories["OWN"]
        self.assertEqual(repo.programming_language, "/")

    def test_teams(self):
        self.route(RequestType.TEAM, {
            "organization": {"teams": connection([{
                "id": "T1",
                "name": "core",
                "description": "",
                "url": "https://github.com/orgs/acme/teams/core",
                "members": {"nodes": [{"id": "m1"}, {"id": "m2"}]},
                "repositories": {"nodes": [{"id": "OWN"}]},
            }])},
        })

        team = self.graph().teams["T1"]
        self.assertEqual(team.description, "No Description deposited")
        self.assertEqual(team.member_ids, ["m1", "m2"])
        self.assertEqual(team.repository_ids, ["OWN"])

    def test_request_types_finish_independently(self):
        team_request = self.store.save_request(Request("acme", RequestType.TEAM))
        self.route(RequestType.ORGANIZATION_VALIDATION, {"organization": {"id": "O1"}})

        self.assertTrue(self.graph().valid)
        self.assertTrue(self.registry.is_retired("acme", RequestType.ORGANIZATION_VALIDATION))
        self.assertFalse(self.registry.is_retired("acme", RequestType.TEAM))
        self.assertEqual(
            self.store.find_incomplete_requests("acme", RequestType.TEAM), [team_request]
        )


if __name__ == "__main__":
    unittest.main()
