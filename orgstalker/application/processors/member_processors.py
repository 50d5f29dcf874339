"""Processors for organization members and their activity."""

import logging
from typing import Any, Dict, List, Optional

from orgstalker.application.processors.base import ResponseProcessor
from orgstalker.domain.member import Member
from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.repository import Repository
from orgstalker.domain.request import RequestType
from orgstalker.infrastructure.response_parser import (
    PageInfo,
    nodes,
    parse_datetime,
    parse_member_node,
    parse_page_info,
    parse_repository_node,
)

logger = logging.getLogger(__name__)


def _members_connection(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return (payload.get("organization") or {}).get("membersWithRole")


class MemberIDProcessor(ResponseProcessor):
    """Collects the IDs of all organization members, page by page."""

    request_type = RequestType.MEMBER_ID

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.member_ids: List[str] = []

    def process_query_response(self, payload: Dict[str, Any]):
        for node in nodes(_members_connection(payload)):
            if node.get("id") and node["id"] not in self.member_ids:
                self.member_ids.append(node["id"])

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_member_ids(self.member_ids)
        logger.info(f"Found {len(self.member_ids)} members in {self.organization_name}")

    def page_info(self, payload: Dict[str, Any]) -> Optional[PageInfo]:
        return parse_page_info(_members_connection(payload))


class MemberProcessor(ResponseProcessor):
    """Builds member profiles with windowed commit, issue and pull request activity."""

    request_type = RequestType.MEMBER

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.members_map: Dict[str, Member] = {}

    def process_query_response(self, payload: Dict[str, Any]):
        for node in nodes(payload):
            member_node = parse_member_node(node)
            commit_dates = self.recent(member_node.commit_dates)
            issue_dates = self.recent(member_node.issue_dates)
            pull_request_dates = self.recent(member_node.pull_request_dates)

            self.members_map[member_node.id] = Member(
                id=member_node.id,
                login=member_node.login,
                name=member_node.name,
                avatar_url=member_node.avatar_url,
                url=member_node.url,
                contributed_repo_ids=list(member_node.contributed_repo_ids),
                amount_previous_commits=len(commit_dates),
                previous_commits=self.generate_chart_data(commit_dates),
                amount_previous_issues=len(issue_dates),
                previous_issues=self.generate_chart_data(issue_dates),
                amount_previous_pull_requests=len(pull_request_dates),
                previous_pull_requests=self.generate_chart_data(pull_request_dates),
            )

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_members(self.members_map)


class MemberPRProcessor(ResponseProcessor):
    """Records which repositories members opened pull requests against recently."""

    request_type = RequestType.MEMBER_PR

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pull_request_repos: Dict[str, List[str]] = {}

    def process_query_response(self, payload: Dict[str, Any]):
        cutoff = self.cutoff()
        for node in nodes(payload):
            repo_ids = self.pull_request_repos.setdefault(node["id"], [])
            for pull_request in nodes(node.get("pullRequests")):
                created_at = pull_request.get("createdAt")
                repository = pull_request.get("repository") or {}
                if not created_at or not repository.get("id"):
                    continue
                if parse_datetime(created_at) > cutoff and repository["id"] not in repo_ids:
                    repo_ids.append(repository["id"])

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_members({
            member_id: Member(id=member_id, pull_request_repo_ids=repo_ids)
            for member_id, repo_ids in self.pull_request_repos.items()
        })


class CreatedReposByMembersProcessor(ResponseProcessor):
    """Collects repositories owned by the organization's members."""

    request_type = RequestType.CREATED_REPOS_BY_MEMBERS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.created_repo_ids: Dict[str, List[str]] = {}
        self.repositories_map: Dict[str, Repository] = {}

    def process_query_response(self, payload: Dict[str, Any]):
        for node in nodes(payload):
            repo_ids = self.created_repo_ids.setdefault(node["id"], [])
            for repo_node in nodes(node.get("repositories")):
                repo = self.build_repository(parse_repository_node(repo_node))
                self.repositories_map[repo.id] = repo
                if repo.id not in repo_ids:
                    repo_ids.append(repo.id)

    def merge_into_graph(self, organization: OrganizationGraph):
        organization.add_created_repos(self.repositories_map)
        organization.add_members({
            member_id: Member(id=member_id, created_repo_ids=repo_ids)
            for member_id, repo_ids in self.created_repo_ids.items()
        })
