"""GitHub GraphQL API client with rate limiting and retry logic."""

import time
import logging
import os
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

import requests

from orgstalker import config
from orgstalker.domain.request import Query

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when GitHub API rate limit is exceeded."""
    pass


class GitHubAPIError(Exception):
    """Raised when the API rejects a query or returns GraphQL errors."""
    pass


class GitHubGraphQLClient:
    """Client that executes prepared queries and attaches their response payload."""

    MAX_RETRIES = 5
    RETRY_DELAY_SECONDS = 1

    def __init__(
        self,
        token: Optional[str] = None,
        endpoint: Optional[str] = None,
        rate_limit_buffer: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize GitHub GraphQL client.

        Args:
            token: GitHub personal access token. If None, uses GITHUB_TOKEN env var.
            endpoint: GraphQL endpoint. If None, uses config.
            rate_limit_buffer: Remaining calls below which the client waits for reset
            sleep: Sleep function, replaceable in tests
        """
        if token is None:
            token = os.getenv("GITHUB_TOKEN")

        self.token = token
        self.endpoint = endpoint or config.GITHUB_GRAPHQL_URL
        self.rate_limit_buffer = (
            config.RATE_LIMIT_BUFFER if rate_limit_buffer is None else rate_limit_buffer
        )
        self.sleep = sleep
        self.headers = {
            "Content-Type": "application/json",
        }

        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    def fetch(self, request_query: Query) -> Query:
        """
        Execute a query and return a copy carrying the response payload.

        Args:
            request_query: Query with text and variables prepared by the caller

        Returns:
            Query whose ``response`` holds the GraphQL ``data`` object
        """
        data = self._execute_query(request_query.query_text, request_query.variables)
        return replace(request_query, response=data)

    def _wait_for_reset(self, response: requests.Response) -> int:
        reset_time = int(response.headers.get("X-RateLimit-Reset", 0))
        wait_time = max(reset_time - int(time.time()), 0) + 10
        return wait_time

    def _execute_query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL query with retry logic.

        Args:
            query: GraphQL query string
            variables: Query variables

        Returns:
            GraphQL response data

        Raises:
            RateLimitExceeded: If rate limit is exceeded
            GitHubAPIError: If the API rejects the query
            requests.RequestException: If request fails after retries
        """
        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        for attempt in range(self.MAX_RETRIES):
            try:
                response = requests.post(
                    self.endpoint,
                    json=payload,
                    headers=self.headers,
                    timeout=30
                )

                if response.status_code == 200:
                    data = response.json()

                    if "errors" in data:
                        error_messages = [err.get("message", "") for err in data["errors"]]

                        if any("rate limit" in msg.lower() for msg in error_messages):
                            remaining = int(response.headers.get("X-RateLimit-Remaining", 0))

                            if remaining <= self.rate_limit_buffer and attempt < self.MAX_RETRIES - 1:
                                wait_time = self._wait_for_reset(response)
                                logger.warning(f"Rate limit approaching. Waiting {wait_time} seconds...")
                                self.sleep(wait_time)
                                continue
                            raise RateLimitExceeded(f"Rate limit exceeded: {error_messages}")

                        # Partial data (e.g. a missing organization) is still returned
                        if data.get("data") is None:
                            raise GitHubAPIError(f"GraphQL errors: {error_messages}")
                        logger.warning(f"GraphQL returned partial data: {error_messages}")

                    return data.get("data") or {}

                elif response.status_code == 401:
                    raise GitHubAPIError("Authentication failed. Check your GitHub token.")
                elif response.status_code == 403:
                    remaining = int(response.headers.get("X-RateLimit-Remaining", 0))

                    if remaining == 0:
                        wait_time = self._wait_for_reset(response)
                        logger.warning(f"Rate limit exceeded. Waiting {wait_time} seconds...")
                        if attempt < self.MAX_RETRIES - 1:
                            self.sleep(wait_time)
                            continue
                        raise RateLimitExceeded("Rate limit exceeded")
                    else:
                        raise GitHubAPIError(f"Forbidden: {response.text}")

                else:
                    response.raise_for_status()

            except requests.exceptions.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.RETRY_DELAY_SECONDS * (2 ** attempt)  # Exponential backoff
                    logger.warning(f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. Retrying in {delay}s...")
                    self.sleep(delay)
                else:
                    raise

        raise GitHubAPIError("Max retries exceeded")
