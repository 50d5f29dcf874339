"""Tests for response payload decoding"""

import unittest
from datetime import datetime, timezone

from orgstalker.infrastructure.response_parser import (
    parse_datetime,
    parse_member_node,
    parse_page_info,
    parse_rate_limit,
    parse_repository_node,
)

from payloads import days_ago, member_node, repository_node


class TestResponseParser(unittest.TestCase):
    """Test decoding of raw GraphQL payloads"""

    def test_parse_datetime_with_z_suffix(self):
        parsed = parse_datetime("2026-01-15T12:00:00Z")
        self.assertEqual(parsed, datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))

    def test_parse_rate_limit(self):
        rate_limit = parse_rate_limit(
            {"rateLimit": {"remaining": 4200, "resetAt": "2026-01-15T13:00:00Z", "cost": 2}}
        )
        self.assertEqual(rate_limit.remaining, 4200)
        self.assertEqual(rate_limit.cost, 2)
        self.assertEqual(rate_limit.reset_at.hour, 13)

    def test_parse_rate_limit_missing(self):
        self.assertIsNone(parse_rate_limit({"nodes": []}))
        self.assertIsNone(parse_rate_limit(None))

    def test_parse_page_info(self):
        page_info = parse_page_info({"pageInfo": {"hasNextPage": True, "endCursor": "abc"}})
        self.assertTrue(page_info.has_next_page)
        self.assertEqual(page_info.end_cursor, "abc")
        self.assertIsNone(parse_page_info({"nodes": []}))

    def test_repository_node_keeps_missing_fields_as_none(self):
        node = parse_repository_node(
            repository_node("R1", description=None, language=None, license_name=None, default_branch=False)
        )
        self.assertIsNone(node.description)
        self.assertIsNone(node.primary_language)
        self.assertIsNone(node.license_name)
        self.assertIsNone(node.commit_dates)

    def test_repository_node_activity_dates(self):
        node = parse_repository_node(
            repository_node(
                "R1",
                pull_request_dates=[days_ago(1)],
                issue_dates=[days_ago(2), days_ago(3)],
                commit_dates=[days_ago(40)],
            )
        )
        self.assertEqual(len(node.pull_request_dates), 1)
        self.assertEqual(len(node.issue_dates), 2)
        self.assertEqual(node.commit_dates, [days_ago(40)])
        self.assertEqual(node.star_count, 42)

    def test_member_node_contributions(self):
        node = parse_member_node(
            member_node("M1", contributed_repo_ids=["X", "Y", "X"], commit_dates=[days_ago(1)])
        )
        self.assertEqual(node.contributed_repo_ids, ["X", "Y"])
        self.assertEqual(len(node.commit_dates), 3)


if __name__ == "__main__":
    unittest.main()
