from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Literal

from jobtracker.services.errors import (
    RepositoryNotFoundError,
    RepositoryPersistenceError,
    RepositorySchemaViolationError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

OutcomeKind = Literal["record", "records", "deleted", "not_found", "client_error", "unavailable", "server_error"]
SUCCESS_KINDS = frozenset({"record", "records", "deleted"})

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoreOutcome:
    kind: OutcomeKind
    payload: Any = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind in SUCCESS_KINDS


async def run_store_operation(operation: Awaitable[Any], *, kind: OutcomeKind) -> StoreOutcome:
    """Await a store call and fold its result or refusal into a StoreOutcome.

    ``kind`` names the success shape. Unexpected exceptions propagate.
    """
    try:
        payload = await operation
    except RepositoryNotFoundError as exc:
        return StoreOutcome(kind="not_found", detail=str(exc))
    except (RepositoryValidationError, RepositorySchemaViolationError) as exc:
        return StoreOutcome(kind="client_error", detail=str(exc))
    except RepositoryUnavailableError as exc:
        return StoreOutcome(kind="unavailable", detail=str(exc))
    except RepositoryPersistenceError as exc:
        logger.warning("store operation failed: %s", exc)
        return StoreOutcome(kind="server_error", detail="internal storage error")
    return StoreOutcome(kind=kind, payload=payload)
