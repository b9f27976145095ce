"""
GitHub REST API client for listing users and their repositories.
"""

import logging
import os
from typing import Optional
from datetime import datetime, timezone
import requests

from core.entities import Repository, User
from infrastructure.retry_utils import exponential_backoff, RateLimitExceeded

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Client for GitHub's REST API.
    Handles authentication, rate limit detection, and pagination.
    """

    API_ENDPOINT = "https://api.github.com"
    PER_PAGE = 100  # GitHub max

    def __init__(self, token: Optional[str] = None, timeout: float = 30):
        """
        Initialize GitHub client.

        Args:
            token: GitHub personal access token (or uses GITHUB_TOKEN env var)
            timeout: Per-request timeout in seconds
        """
        self.token = token or os.environ.get("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GitHub token required. Set GITHUB_TOKEN environment variable "
                "or pass token parameter."
            )

        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        })

    @exponential_backoff(
        max_retries=5,
        base_delay=2.0,
        max_delay=120.0,
        retry_on=(requests.ConnectionError, requests.Timeout),
    )
    def _get(self, path: str, params: Optional[dict] = None) -> requests.Response:
        """
        Make a GET request with retry logic.

        Raises:
            RateLimitExceeded: If rate limit is hit
        """
        response = self.session.get(
            f"{self.API_ENDPOINT}{path}",
            params=params,
            timeout=self.timeout,
        )

        if response.status_code in (403, 429) and response.headers.get("X-RateLimit-Remaining") == "0":
            reset = response.headers.get("X-RateLimit-Reset")
            if reset:
                reset_at = datetime.fromtimestamp(int(reset), tz=timezone.utc)
            else:
                reset_at = datetime.now(timezone.utc)
            raise RateLimitExceeded(reset_at)

        return response

    def get_rate_limit_remaining(self) -> int:
        """Remaining core API requests in the current window."""
        response = self._get("/rate_limit")
        response.raise_for_status()
        return response.json()["resources"]["core"]["remaining"]

    def get_users_since(self, since: int) -> list[User]:
        """
        List users in id order, starting after the given user id.

        Args:
            since: Last user id already seen (0 to start from the beginning)
        """
        response = self._get("/users", params={"since": since, "per_page": self.PER_PAGE})
        response.raise_for_status()
        users = [User.from_github(payload) for payload in response.json()]
        logger.info(f"Fetched {len(users)} users since id {since}")
        return users

    def get_user_repositories(self, login: str) -> list[Repository]:
        """
        Fetch every public repository owned by a user.
        Returns an empty list when the account no longer exists.
        """
        repositories = []
        page = 1
        while True:
            response = self._get(
                f"/users/{login}/repos",
                params={"per_page": self.PER_PAGE, "page": page, "type": "owner"},
            )
            if response.status_code == 404 and page == 1:
                logger.info(f"User {login} not found, treating as having no repositories")
                return []
            response.raise_for_status()

            payload = response.json()
            repositories.extend(Repository.from_github(repo) for repo in payload)
            if len(payload) < self.PER_PAGE:
                break
            page += 1

        logger.info(f"Fetched {len(repositories)} repositories for {login}")
        return repositories
