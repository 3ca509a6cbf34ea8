"""PostgreSQL sink for scored packages."""

import logging
from typing import Any

import psycopg2

from pkgtrust.models.schemas import MetricKind, PackageRecord

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS packages (
    package_id SERIAL PRIMARY KEY,
    package_name VARCHAR(255) NOT NULL,
    package_version VARCHAR(64) NOT NULL,
    repo_link VARCHAR(512) NOT NULL,
    origin_url VARCHAR(512) NOT NULL,
    is_internal BOOLEAN DEFAULT FALSE,
    net_score DECIMAL(4, 3),
    net_score_latency DECIMAL(8, 3),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (package_name, package_version)
);

CREATE TABLE IF NOT EXISTS metrics (
    metric_id SERIAL PRIMARY KEY,
    package_id INT UNIQUE REFERENCES packages(package_id) ON DELETE CASCADE,
    ramp_up_time DECIMAL(4, 3),
    bus_factor DECIMAL(4, 3),
    correctness DECIMAL(4, 3),
    license_compatibility DECIMAL(4, 3),
    maintainability DECIMAL(4, 3),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS scores (
    score_id SERIAL PRIMARY KEY,
    package_id INT UNIQUE REFERENCES packages(package_id) ON DELETE CASCADE,
    net_score DECIMAL(4, 3),
    ramp_up_latency DECIMAL(8, 3),
    bus_factor_latency DECIMAL(8, 3),
    correctness_latency DECIMAL(8, 3),
    license_latency DECIMAL(8, 3),
    maintainability_latency DECIMAL(8, 3),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS dependencies (
    dependency_id SERIAL PRIMARY KEY,
    package_id INT REFERENCES packages(package_id) ON DELETE CASCADE,
    dependency_url VARCHAR(512) NOT NULL,
    is_internal BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (package_id, dependency_url)
);
"""

UPSERT_PACKAGE = """
    INSERT INTO packages (package_name, package_version, repo_link, origin_url, is_internal,
                          net_score, net_score_latency)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (package_name, package_version)
    DO UPDATE SET
        repo_link = EXCLUDED.repo_link,
        origin_url = EXCLUDED.origin_url,
        is_internal = EXCLUDED.is_internal,
        net_score = EXCLUDED.net_score,
        net_score_latency = EXCLUDED.net_score_latency,
        updated_at = CURRENT_TIMESTAMP
    RETURNING package_id
"""

UPSERT_METRICS = """
    INSERT INTO metrics (package_id, ramp_up_time, bus_factor, correctness,
                         license_compatibility, maintainability)
    VALUES (%s, %s, %s, %s, %s, %s)
    ON CONFLICT (package_id)
    DO UPDATE SET
        ramp_up_time = EXCLUDED.ramp_up_time,
        bus_factor = EXCLUDED.bus_factor,
        correctness = EXCLUDED.correctness,
        license_compatibility = EXCLUDED.license_compatibility,
        maintainability = EXCLUDED.maintainability
"""

UPSERT_SCORES = """
    INSERT INTO scores (package_id, net_score, ramp_up_latency, bus_factor_latency,
                        correctness_latency, license_latency, maintainability_latency)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (package_id)
    DO UPDATE SET
        net_score = EXCLUDED.net_score,
        ramp_up_latency = EXCLUDED.ramp_up_latency,
        bus_factor_latency = EXCLUDED.bus_factor_latency,
        correctness_latency = EXCLUDED.correctness_latency,
        license_latency = EXCLUDED.license_latency,
        maintainability_latency = EXCLUDED.maintainability_latency
"""

# The latest scored version replaces the previous dependency list
CLEAR_DEPENDENCIES = "DELETE FROM dependencies WHERE package_id = %s"

UPSERT_DEPENDENCY = """
    INSERT INTO dependencies (package_id, dependency_url, is_internal)
    VALUES (%s, %s, %s)
    ON CONFLICT (package_id, dependency_url)
    DO UPDATE SET
        is_internal = EXCLUDED.is_internal
"""


class PostgresResultSink:
    """Writes records into the packages, metrics, scores and dependencies tables.

    Each record is one transaction. Metrics, scores and dependency rows
    reference the package_id returned by the package upsert.
    """

    def __init__(self, connection: Any = None, **connect_kwargs: Any) -> None:
        """Open (or adopt) a database connection and ensure the schema exists.

        Args:
            connection: An open DB-API connection. If None, one is opened with
                psycopg2.connect(**connect_kwargs).
            **connect_kwargs: host, port, user, password, dbname, sslmode, ...
        """
        self._conn = connection if connection is not None else psycopg2.connect(**connect_kwargs)
        self._conn.autocommit = False
        logger.info("Connected to PostgreSQL database")
        self.ensure_schema()

    def ensure_schema(self) -> None:
        cursor = self._conn.cursor()
        try:
            cursor.execute(SCHEMA)
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    def write(self, record: PackageRecord) -> int:
        """Upsert a record.

        Returns:
            The package_id the record was stored under.
        """
        scores = [record.metrics[kind].score for kind in MetricKind]
        latencies = [record.metrics[kind].latency_seconds for kind in MetricKind]

        cursor = self._conn.cursor()
        try:
            cursor.execute(
                UPSERT_PACKAGE,
                (
                    record.package_name,
                    record.package_version,
                    record.repo_link,
                    record.origin_url,
                    record.is_internal,
                    record.net_score,
                    record.net_score_latency_seconds,
                ),
            )
            package_id = cursor.fetchone()[0]
            cursor.execute(UPSERT_METRICS, (package_id, *scores))
            cursor.execute(UPSERT_SCORES, (package_id, record.net_score, *latencies))
            cursor.execute(CLEAR_DEPENDENCIES, (package_id,))
            for dependency in record.dependencies:
                cursor.execute(
                    UPSERT_DEPENDENCY, (package_id, dependency.url, dependency.is_internal)
                )
            self._conn.commit()
        except Exception as e:
            self._conn.rollback()
            logger.error(f"Error saving {record.package_name}@{record.package_version}: {e}")
            raise
        finally:
            cursor.close()

        logger.info(f"Package {record.package_name} stored with package_id: {package_id}")
        return package_id

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            logger.info("Closed PostgreSQL connection")
