from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from decimal import Decimal
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from opentelemetry import trace

from jobtracker.core.config import get_settings
from jobtracker.core.result_types import ResultTypeRegistry, get_result_type_registry
from jobtracker.services.errors import (
    RepositoryError,
    RepositoryNotFoundError,
    RepositoryPersistenceError,
    RepositorySchemaViolationError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobtracker.services.query_builder import build_delete, build_insert, build_select, build_update
from jobtracker.services.record_schema import COLUMNS, normalize_create_input, normalize_update_input

__all__ = [
    "JOBS_TABLE_DDL",
    "PostgresRepository",
    "RepositoryError",
    "RepositoryNotFoundError",
    "RepositoryPersistenceError",
    "RepositorySchemaViolationError",
    "RepositoryUnavailableError",
    "RepositoryValidationError",
    "get_repository",
]

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

JOBS_TABLE_DDL = """
create table if not exists jobs (
  id bigint generated always as identity primary key,
  company text not null,
  title text not null,
  applied_at timestamptz not null default now(),
  cover_letter boolean,
  expectation numeric,
  result text,
  company_rate numeric,
  referral boolean,
  custom_fields jsonb not null default '{}'::jsonb,
  remark text
);
"""

_UNAVAILABLE_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.InterfaceError,
    asyncpg.PostgresConnectionError,
)

# bigint identity range
MAX_JOB_ID = 2**63 - 1


class PostgresRepository:
    """Job record store backed by a shared asyncpg pool.

    Each operation acquires one connection and runs a single statement, so
    there is no cross-row transaction to manage. A pool may be injected
    directly; otherwise one is created lazily from ``database_url``.
    """

    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float = 15.0,
        result_types: ResultTypeRegistry | None = None,
        pool: Any | None = None,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max(min_pool_size, max_pool_size)
        self.command_timeout_seconds = command_timeout_seconds
        self.result_types = result_types or ResultTypeRegistry()
        self._pool: Any | None = pool
        self._owns_pool = pool is None
        self._pool_lock = asyncio.Lock()

    async def close(self) -> None:
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    async def ensure_schema(self) -> None:
        async with self._connection("ensure_schema") as conn:
            await conn.execute(JOBS_TABLE_DDL)
        logger.info("jobs table ensured")

    async def list_jobs(self) -> list[dict[str, Any]]:
        statement = build_select()
        async with self._connection("list_jobs") as conn:
            rows = await conn.fetch(statement.sql, *statement.params)
        return [self._job_row_to_dict(row) for row in rows]

    async def get_job(self, job_id: int) -> dict[str, Any]:
        if not self._is_storable_id(job_id):
            raise RepositoryNotFoundError("job not found")
        statement = build_select(job_id)
        async with self._connection("get_job") as conn:
            row = await conn.fetchrow(statement.sql, *statement.params)
        if not row:
            raise RepositoryNotFoundError("job not found")
        return self._job_row_to_dict(row)

    async def create_job(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        normalized = normalize_create_input(fields)
        self.result_types.validate(normalized.get("result"))
        statement = build_insert(normalized)

        async with self._connection("create_job") as conn:
            row = await conn.fetchrow(statement.sql, *statement.params)
        if not row:
            raise RepositoryPersistenceError("failed to create job")

        logger.info("job created id=%s", row["id"])
        return self._job_row_to_dict(row)

    async def update_job(self, job_id: int, fields: Mapping[str, Any]) -> dict[str, Any]:
        normalized = normalize_update_input(fields)
        if "result" in normalized:
            self.result_types.validate(normalized["result"])
        if not self._is_storable_id(job_id):
            raise RepositoryNotFoundError("job not found")
        statement = build_update(job_id, normalized)

        async with self._connection("update_job") as conn:
            row = await conn.fetchrow(statement.sql, *statement.params)
        if not row:
            raise RepositoryNotFoundError("job not found")

        logger.info("job updated id=%s fields=%s", job_id, ",".join(statement.columns))
        return self._job_row_to_dict(row)

    async def delete_job(self, job_id: int) -> bool:
        if not self._is_storable_id(job_id):
            logger.info("job delete id=%s removed=0", job_id)
            return True
        statement = build_delete(job_id)
        async with self._connection("delete_job") as conn:
            command_status = await conn.execute(statement.sql, *statement.params)

        logger.info("job delete id=%s removed=%s", job_id, self._affected_rows(command_status))
        return True

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[Any]:
        with tracer.start_as_current_span(f"repository.{operation}"):
            pool = await self._get_pool()
            try:
                async with pool.acquire() as conn:
                    yield conn
            except RepositoryError:
                raise
            except _UNAVAILABLE_ERRORS as exc:
                logger.exception("database unavailable during %s", operation)
                raise RepositoryUnavailableError("database unavailable") from exc
            except asyncpg.PostgresError as exc:
                logger.exception("database error during %s", operation)
                raise RepositoryPersistenceError(f"database error during {operation}") from exc

    async def _get_pool(self) -> Any:
        if self._pool is not None:
            return self._pool

        if not self.database_url:
            raise RepositoryUnavailableError("JT_DATABASE_URL is required")

        async with self._pool_lock:
            if self._pool is not None:
                return self._pool
            try:
                self._pool = await asyncpg.create_pool(
                    dsn=self.database_url,
                    min_size=self.min_pool_size,
                    max_size=self.max_pool_size,
                    command_timeout=self.command_timeout_seconds,
                )
            except Exception as exc:  # pragma: no cover - depends on environment
                logger.exception("failed to create database pool")
                raise RepositoryUnavailableError("database unavailable") from exc
            return self._pool

    @classmethod
    def _job_row_to_dict(cls, row: Mapping[str, Any]) -> dict[str, Any]:
        record = {name: row[name] for name in COLUMNS}
        record["expectation"] = cls._coerce_float(record["expectation"])
        record["company_rate"] = cls._coerce_float(record["company_rate"])
        record["custom_fields"] = cls._coerce_json_dict(record["custom_fields"])
        return record

    @staticmethod
    def _coerce_float(value: Any) -> Any:
        if isinstance(value, Decimal):
            return float(value)
        return value

    @staticmethod
    def _coerce_json_dict(value: Any) -> dict[str, Any]:
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                return {}
        if isinstance(value, dict):
            return value
        return {}

    @staticmethod
    def _is_storable_id(job_id: Any) -> bool:
        return isinstance(job_id, int) and not isinstance(job_id, bool) and 1 <= job_id <= MAX_JOB_ID

    @staticmethod
    def _affected_rows(command_status: Any) -> int:
        # asyncpg reports e.g. "DELETE 1"
        if not isinstance(command_status, str):
            return 0
        _, _, count = command_status.rpartition(" ")
        try:
            return int(count)
        except ValueError:
            return 0


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout_seconds=settings.database_command_timeout_seconds,
        result_types=get_result_type_registry(),
    )
