"""
Business logic / use cases for keeping user and repository stars up to date.
This layer orchestrates the interaction between GitHub API and database.
"""

import logging
import time
from datetime import datetime, timedelta

from core.entities import ScanResult, User
from infrastructure.github_client import GitHubClient
from infrastructure.db_client import DatabaseClient

logger = logging.getLogger(__name__)


class UpdateUser:
    """
    Use case for refreshing one user's repositories and star total.
    """

    def __init__(self, github_client: GitHubClient, db_client: DatabaseClient):
        self.github = github_client
        self.db = db_client

    def execute(self, user: User) -> int:
        """
        Fetch the user's repositories, store them, and recompute the total.

        Args:
            user: User whose repositories should be refreshed

        Returns:
            Star total over the user's non-fork repositories
        """
        repositories = self.github.get_user_repositories(user.login)
        stored = self.db.get_repositories_for_owner(user.id)

        self.db.upsert_repositories(repositories)
        self.db.delete_repositories_except(user.id, [repo.id for repo in repositories])
        gone = {repo.id for repo in stored} - {repo.id for repo in repositories}
        if gone:
            logger.info(f"[{user.login}] {len(gone)} repositories no longer listed")

        # fork=None is unknown, so it still counts
        total = sum(repo.stargazers_count for repo in repositories if repo.fork is not True)
        user.stargazers_count = total
        user.updated_at = datetime.now()
        self.db.update_user_stars(user.id, total, user.updated_at)

        return total


class UserFullScan:
    """
    Use case walking every GitHub user in id order and refreshing the
    ones not updated recently. Progress is kept in a cursor so the next
    run resumes where this one stopped.
    """

    CURSOR_KEY = "full_scan_user_id"
    MIN_RATE_LIMIT_REMAINING = 500  # Limit: 5000 / h
    THRESHOLD_DAYS = 1
    MAX_BATCHES = 10
    UPDATE_INTERVAL = 0.5

    def __init__(
        self,
        github_client: GitHubClient,
        db_client: DatabaseClient,
        max_batches: int = MAX_BATCHES,
        min_rate_limit_remaining: int = MIN_RATE_LIMIT_REMAINING,
        threshold_days: float = THRESHOLD_DAYS,
        update_interval: float = UPDATE_INTERVAL,
    ):
        """
        Initialize the use case.

        Args:
            github_client: GitHub API client
            db_client: Database client
            max_batches: Pages of users to process per run
            min_rate_limit_remaining: Stop once fewer API calls are left
            threshold_days: Users refreshed more recently than this are skipped
            update_interval: Pause in seconds after each refreshed user
        """
        self.github = github_client
        self.db = db_client
        self.max_batches = max_batches
        self.min_rate_limit_remaining = min_rate_limit_remaining
        self.update_interval = update_interval
        self.update_threshold = datetime.now() - timedelta(days=threshold_days)
        self.update_user = UpdateUser(github_client, db_client)
        self.is_stopped = False

    def stop(self):
        """Request shutdown; honored after the current user."""
        self.is_stopped = True

    def execute(self) -> ScanResult:
        result = ScanResult()
        logger.info(
            f"----- started UserFullScan (API: {self.github.get_rate_limit_remaining()}/5000) -----"
        )

        try:
            last_user_id = self.db.last_user_id()

            for _ in range(self.max_batches):
                if self.is_stopped:
                    result.stopped_reason = "stopped"
                    break

                remaining = self.github.get_rate_limit_remaining()
                logger.info(f"API remaining: {remaining}/5000")
                if remaining < self.min_rate_limit_remaining:
                    logger.info(
                        f"API remaining is smaller than {self.min_rate_limit_remaining}. Stopping."
                    )
                    result.stopped_reason = "rate_limit"
                    break

                cursor = self.db.get_cursor(self.CURSOR_KEY)
                next_cursor = self._update_users(cursor, last_user_id, result)
                if next_cursor <= cursor:
                    result.stopped_reason = result.stopped_reason or "exhausted"
                    break
                self.db.update_cursor(self.CURSOR_KEY, next_cursor)
                result.last_user_id = next_cursor

        except Exception as e:
            logger.error(f"UserFullScan failed: {e}", exc_info=True)
            raise

        logger.info(
            f"----- finished UserFullScan (API: {self.github.get_rate_limit_remaining()}/5000) -----"
        )
        return result

    def _update_users(self, cursor: int, last_user_id: int, result: ScanResult) -> int:
        """Process one page of users; returns the highest user id seen."""
        users = self.github.get_users_since(cursor)
        if not users:
            return cursor

        self.db.bulk_insert_users(users)
        for user in users:
            result.users_seen += 1
            updated_at = self.db.user_updated_at(user.id)
            if updated_at is None or updated_at < self.update_threshold:
                self.update_user.execute(user)
                result.users_updated += 1
                if last_user_id:
                    logger.info(
                        f"[{user.login}] userId = {user.id} / {last_user_id} "
                        f"({100.0 * user.id / last_user_id:.4f}%)"
                    )
                time.sleep(self.update_interval)
            else:
                result.users_skipped += 1
                logger.info(
                    f"Skip up-to-date user (id: {user.id}, login: {user.login}, updatedAt: {updated_at})"
                )

            cursor = max(cursor, user.id)
            if self.is_stopped:
                result.stopped_reason = "stopped"
                break

        return cursor
