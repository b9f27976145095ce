"""
Tests for the user refresh and full scan use cases.
"""

from datetime import datetime, timedelta
from unittest.mock import Mock, patch

import pytest
import requests

from core.entities import Repository, User
from core.use_cases import UpdateUser, UserFullScan


def make_users(*ids):
    return [User(id=i, login=f"user-{i}") for i in ids]


class TestUpdateUser:
    """Test UpdateUser use case."""

    def test_execute_sums_non_fork_stars(self):
        github = Mock()
        db = Mock()
        db.get_repositories_for_owner.return_value = [Repository(1, 90, owner_id=5), Repository(4, 3, owner_id=5)]
        github.get_user_repositories.return_value = [
            Repository(1, 100, owner_id=5, fork=False),
            Repository(2, 50, owner_id=5, fork=True),
            Repository(3, 7, owner_id=5),
        ]
        user = User(id=5, login="octo")

        total = UpdateUser(github, db).execute(user)

        assert total == 107
        assert user.stargazers_count == 107
        assert user.updated_at is not None
        github.get_user_repositories.assert_called_once_with("octo")
        db.upsert_repositories.assert_called_once()
        db.delete_repositories_except.assert_called_once_with(5, [1, 2, 3])
        db.update_user_stars.assert_called_once_with(5, 107, user.updated_at)
        db.get_repositories_for_owner.assert_called_once_with(5)

    def test_execute_without_repositories(self):
        github = Mock()
        db = Mock()
        db.get_repositories_for_owner.return_value = []
        github.get_user_repositories.return_value = []

        total = UpdateUser(github, db).execute(User(id=9, login="empty"))

        assert total == 0
        db.delete_repositories_except.assert_called_once_with(9, [])


@patch("core.use_cases.time.sleep")
class TestUserFullScan:
    """Test UserFullScan use case."""

    def setup_method(self):
        self.github = Mock()
        self.db = Mock()
        self.github.get_rate_limit_remaining.return_value = 5000
        self.github.get_user_repositories.return_value = []
        self.db.last_user_id.return_value = 100
        self.db.get_cursor.return_value = 0
        self.db.user_updated_at.return_value = None
        self.db.get_repositories_for_owner.return_value = []

    def test_scan_updates_stale_users_and_saves_cursor(self, mock_sleep):
        self.github.get_users_since.side_effect = [make_users(1, 2, 3), []]

        result = UserFullScan(self.github, self.db).execute()

        assert result.users_seen == 3
        assert result.users_updated == 3
        assert result.last_user_id == 3
        assert result.stopped_reason == "exhausted"
        self.db.bulk_insert_users.assert_called_once()
        self.db.update_cursor.assert_called_once_with(UserFullScan.CURSOR_KEY, 3)
        assert mock_sleep.call_count == 3

    def test_scan_skips_recently_updated_users(self, mock_sleep):
        self.github.get_users_since.side_effect = [make_users(1, 2), []]
        self.db.user_updated_at.side_effect = [datetime.now(), datetime.now() - timedelta(days=3)]

        result = UserFullScan(self.github, self.db).execute()

        assert result.users_skipped == 1
        assert result.users_updated == 1
        self.github.get_user_repositories.assert_called_once_with("user-2")

    def test_scan_stops_on_low_rate_limit(self, mock_sleep):
        self.github.get_rate_limit_remaining.return_value = 499

        result = UserFullScan(self.github, self.db).execute()

        assert result.stopped_reason == "rate_limit"
        self.github.get_users_since.assert_not_called()
        self.db.update_cursor.assert_not_called()

    def test_scan_respects_max_batches(self, mock_sleep):
        self.db.get_cursor.side_effect = [0, 2]
        self.github.get_users_since.side_effect = [make_users(1, 2), make_users(3, 4)]

        result = UserFullScan(self.github, self.db, max_batches=2).execute()

        assert result.users_seen == 4
        assert result.stopped_reason is None
        assert self.db.update_cursor.call_count == 2
        self.github.get_users_since.assert_any_call(2)

    def test_stop_breaks_after_current_user(self, mock_sleep):
        scan = UserFullScan(self.github, self.db)
        self.github.get_users_since.return_value = make_users(1, 2, 3)
        self.github.get_user_repositories.side_effect = lambda login: scan.stop() or []

        result = scan.execute()

        assert result.users_seen == 1
        assert result.stopped_reason == "stopped"
        self.db.update_cursor.assert_called_once_with(UserFullScan.CURSOR_KEY, 1)

    def test_errors_propagate(self, mock_sleep):
        self.github.get_users_since.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            UserFullScan(self.github, self.db).execute()

        self.db.update_cursor.assert_not_called()


class TestUpdateUserFailures:

    def test_fetch_error_keeps_stored_repositories(self):
        github = Mock()
        db = Mock()
        github.get_user_repositories.side_effect = requests.HTTPError("404 error")

        with pytest.raises(requests.HTTPError):
            UpdateUser(github, db).execute(User(id=5, login="octo"))

        db.delete_repositories_except.assert_not_called()
        db.update_user_stars.assert_not_called()
