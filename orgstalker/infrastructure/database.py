"""PostgreSQL-backed storage of organization graphs and outstanding requests."""

import logging
from typing import List, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from orgstalker import config
from orgstalker.domain.organization import OrganizationGraph
from orgstalker.domain.request import Request, RequestType
from orgstalker.infrastructure.organization_store import OrganizationStore

logger = logging.getLogger(__name__)


class PostgresOrganizationStore(OrganizationStore):
    """Store keeping each organization graph as one JSONB document."""

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize database store.

        Args:
            connection_string: PostgreSQL connection string. If None, uses env vars.
        """
        if connection_string is None:
            connection_string = config.postgres_connection_string()

        self.connection_string = connection_string
        self.pool: Optional[ThreadedConnectionPool] = None

    def connect(self):
        """Initialize connection pool."""
        try:
            self.pool = ThreadedConnectionPool(1, 5, self.connection_string)
            logger.info("Database connection pool created")
        except psycopg2.Error as e:
            logger.error(f"Error creating connection pool: {e}")
            raise

    def close(self):
        """Close connection pool."""
        if self.pool:
            self.pool.closeall()
            logger.info("Database connection pool closed")

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self.pool:
            self.connect()
        return self.pool.getconn()

    def _return_connection(self, conn):
        """Return a connection to the pool."""
        if self.pool:
            self.pool.putconn(conn)

    def initialize_schema(self):
        """Create database tables if they don't exist."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS organizations (
                        name VARCHAR(255) PRIMARY KEY,
                        graph JSONB NOT NULL,
                        saved_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    );

                    CREATE TABLE IF NOT EXISTS requests (
                        id SERIAL PRIMARY KEY,
                        organization_name VARCHAR(255) NOT NULL,
                        request_type VARCHAR(64) NOT NULL,
                        cursor TEXT,
                        ids TEXT[] NOT NULL DEFAULT '{}',
                        complete BOOLEAN NOT NULL DEFAULT FALSE,
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    );

                    ALTER TABLE requests ADD COLUMN IF NOT EXISTS ids TEXT[] NOT NULL DEFAULT '{}';

                    CREATE INDEX IF NOT EXISTS idx_requests_open
                        ON requests(organization_name, request_type) WHERE NOT complete;
                """)
                conn.commit()
                logger.info("Database schema initialized")
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error initializing schema: {e}")
            raise
        finally:
            self._return_connection(conn)

    def find_by_organization_name(self, organization_name: str) -> Optional[OrganizationGraph]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT graph FROM organizations WHERE name = %s",
                    (organization_name,)
                )
                row = cur.fetchone()
                if row is None:
                    return None
                return OrganizationGraph.from_dict(row["graph"])
        except psycopg2.Error as e:
            logger.error(f"Error loading organization {organization_name}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def save(self, organization_name: str, organization: OrganizationGraph):
        """
        Insert or replace the organization's graph document.

        Args:
            organization_name: Primary key of the organization
            organization: Graph to persist
        """
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO organizations (name, graph) VALUES (%s, %s)
                    ON CONFLICT (name)
                    DO UPDATE SET
                        graph = EXCLUDED.graph,
                        saved_at = CURRENT_TIMESTAMP
                    """,
                    (organization_name, Json(organization.to_dict()))
                )
                conn.commit()
                logger.info(f"Saved organization {organization_name}")
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error saving organization {organization_name}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def find_incomplete_requests(
        self, organization_name: str, request_type: RequestType
    ) -> List[Request]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    SELECT id, organization_name, request_type, cursor, ids, complete
                    FROM requests
                    WHERE organization_name = %s AND request_type = %s AND NOT complete
                    ORDER BY id
                    """,
                    (organization_name, request_type.value)
                )
                return [
                    Request(
                        organization_name=row["organization_name"],
                        request_type=RequestType(row["request_type"]),
                        cursor=row["cursor"],
                        ids=row["ids"] or [],
                        complete=row["complete"],
                        id=row["id"],
                    )
                    for row in cur.fetchall()
                ]
        except psycopg2.Error as e:
            logger.error(f"Error loading requests for {organization_name}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def save_request(self, request: Request) -> Request:
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO requests (organization_name, request_type, cursor, ids, complete)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        request.organization_name,
                        request.request_type.value,
                        request.cursor,
                        list(request.ids),
                        request.complete,
                    )
                )
                request.id = cur.fetchone()[0]
                conn.commit()
                return request
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error saving request for {request.organization_name}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def mark_request_complete(self, request: Request):
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE requests SET complete = TRUE WHERE id = %s",
                    (request.id,)
                )
                conn.commit()
                request.complete = True
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Error completing request {request.id}: {e}")
            raise
        finally:
            self._return_connection(conn)
