"""
PostgreSQL database client for storing users, repositories and scan cursors.
"""

import logging
import os
from typing import Optional, List, Iterable
from datetime import datetime
import psycopg2
from psycopg2.extras import execute_values
from psycopg2.extensions import connection

from core.entities import Repository, User

logger = logging.getLogger(__name__)

REPOSITORY_COLUMNS = ", ".join(Repository.column_names())


class DatabaseClient:
    """
    PostgreSQL database client with UPSERT support.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "gitstar_ranking",
        user: str = "gitstar",
        password: str = "gitstar",
    ):
        """
        Initialize database client.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
        """
        # Allow environment variable overrides
        self.host = os.environ.get("DB_HOST", host)
        self.port = int(os.environ.get("DB_PORT", port))
        self.database = os.environ.get("DB_NAME", database)
        self.user = os.environ.get("DB_USER", user)
        self.password = os.environ.get("DB_PASSWORD", password)

        self._conn: Optional[connection] = None

    def connect(self):
        """Establish database connection."""
        if self._conn is None or self._conn.closed:
            logger.info(
                f"Connecting to database {self.database} at {self.host}:{self.port}"
            )
            self._conn = psycopg2.connect(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
            )
            logger.info("Database connection established")

    def close(self):
        """Close database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()
            logger.info("Database connection closed")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def create_schema(self):
        """
        Create database schema if it doesn't exist.
        """
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY,
                    login TEXT NOT NULL,
                    type TEXT,
                    stargazers_count INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT NOW(),
                    updated_at TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_users_stars
                ON users(stargazers_count DESC)
            """)

            # Optional columns stay nullable: NULL means unknown
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS repositories (
                    id BIGINT PRIMARY KEY,
                    stargazers_count INTEGER NOT NULL,
                    owner_id INTEGER,
                    name TEXT,
                    full_name TEXT,
                    description TEXT,
                    fork BOOLEAN,
                    homepage TEXT,
                    language TEXT,
                    updated_at TIMESTAMP DEFAULT NOW()
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_repositories_owner
                ON repositories(owner_id)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_repositories_stars
                ON repositories(stargazers_count DESC)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS last_updates (
                    key TEXT PRIMARY KEY,
                    cursor BIGINT NOT NULL,
                    updated_at TIMESTAMP DEFAULT NOW()
                )
            """)

            self._conn.commit()
            logger.info("Database schema created successfully")

    def bulk_insert_users(self, users: List[User]) -> int:
        """
        Insert users that are not stored yet. Existing rows are left alone so
        their updated_at keeps driving the refresh decision.

        Returns:
            Number of users sent to the database
        """
        if not users:
            return 0

        self.connect()

        values = [(u.id, u.login, u.type) for u in users]

        with self._conn.cursor() as cursor:
            execute_values(
                cursor,
                """
                INSERT INTO users (id, login, type)
                VALUES %s
                ON CONFLICT (id) DO NOTHING
                """,
                values,
            )
            self._conn.commit()

        logger.info(f"Inserted up to {len(users)} users")
        return len(users)

    def last_user_id(self) -> int:
        """Highest stored user id, 0 when empty."""
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("SELECT COALESCE(MAX(id), 0) FROM users")
            return cursor.fetchone()[0]

    def user_updated_at(self, user_id: int) -> Optional[datetime]:
        """When the user's repositories were last refreshed, None if never."""
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("SELECT updated_at FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return row[0] if row else None

    def update_user_stars(self, user_id: int, stargazers_count: int, updated_at: datetime):
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute(
                "UPDATE users SET stargazers_count = %s, updated_at = %s WHERE id = %s",
                (stargazers_count, updated_at, user_id),
            )
            self._conn.commit()

    def upsert_repositories(self, repositories: List[Repository]) -> int:
        """
        Insert or update repositories using UPSERT (ON CONFLICT).

        Returns:
            Number of repositories inserted/updated
        """
        if not repositories:
            return 0

        self.connect()

        values = [repo.to_row() for repo in repositories]
        updates = ",\n".join(
            f"{name} = EXCLUDED.{name}" for name in Repository.column_names() if name != "id"
        )

        with self._conn.cursor() as cursor:
            execute_values(
                cursor,
                f"""
                INSERT INTO repositories ({REPOSITORY_COLUMNS})
                VALUES %s
                ON CONFLICT (id)
                DO UPDATE SET
                    {updates},
                    updated_at = NOW()
                """,
                values,
            )
            self._conn.commit()

        logger.info(f"Upserted {len(repositories)} repositories")
        return len(repositories)

    def delete_repositories_except(self, owner_id: int, keep_ids: Iterable[int]) -> int:
        """
        Delete an owner's stored repositories whose ids are not in keep_ids.

        Returns:
            Number of rows deleted
        """
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute(
                "DELETE FROM repositories WHERE owner_id = %s AND NOT (id = ANY(%s))",
                (owner_id, list(keep_ids)),
            )
            deleted = cursor.rowcount
            self._conn.commit()

        if deleted:
            logger.info(f"Deleted {deleted} stale repositories of owner {owner_id}")
        return deleted

    def get_repositories_for_owner(self, owner_id: int) -> List[Repository]:
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute(
                f"""
                SELECT {REPOSITORY_COLUMNS}
                FROM repositories
                WHERE owner_id = %s
                ORDER BY stargazers_count DESC, id
                """,
                (owner_id,),
            )
            return [Repository.from_row(row) for row in cursor.fetchall()]

    def get_cursor(self, key: str) -> int:
        """Saved scan position for key, 0 when none is stored."""
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute("SELECT cursor FROM last_updates WHERE key = %s", (key,))
            row = cursor.fetchone()
            return row[0] if row else 0

    def update_cursor(self, key: str, value: int):
        self.connect()

        with self._conn.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO last_updates (key, cursor, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (key)
                DO UPDATE SET cursor = EXCLUDED.cursor, updated_at = EXCLUDED.updated_at
                """,
                (key, value),
            )
            self._conn.commit()

        logger.info(f"Saved cursor {key} = {value}")
