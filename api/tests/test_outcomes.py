from __future__ import annotations

import asyncio

import pytest

from jobtracker.services.errors import (
    RepositoryNotFoundError,
    RepositoryPersistenceError,
    RepositorySchemaViolationError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobtracker.services.outcomes import run_store_operation


async def _returns(value: object) -> object:
    return value


async def _raises(exc: Exception) -> object:
    raise exc


def test_success_echoes_payload() -> None:
    outcome = asyncio.run(run_store_operation(_returns({"id": 1}), kind="record"))

    assert outcome.ok
    assert outcome.kind == "record"
    assert outcome.payload == {"id": 1}


@pytest.mark.parametrize(
    ("exc", "kind", "detail"),
    [
        (RepositoryNotFoundError("job not found"), "not_found", "job not found"),
        (RepositoryValidationError("title is required"), "client_error", "title is required"),
        (RepositorySchemaViolationError("unsupported fields: x"), "client_error", "unsupported fields: x"),
        (RepositoryUnavailableError("database unavailable"), "unavailable", "database unavailable"),
        (RepositoryPersistenceError("database error during update_job"), "server_error", "internal storage error"),
    ],
)
def test_failures_map_to_outcome_kinds(exc: Exception, kind: str, detail: str) -> None:
    outcome = asyncio.run(run_store_operation(_raises(exc), kind="record"))

    assert not outcome.ok
    assert outcome.kind == kind
    assert outcome.detail == detail
    assert outcome.payload is None


def test_unexpected_errors_propagate() -> None:
    with pytest.raises(RuntimeError):
        asyncio.run(run_store_operation(_raises(RuntimeError("boom")), kind="records"))
