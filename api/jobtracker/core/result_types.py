from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from jobtracker.core.config import get_settings
from jobtracker.services.errors import RepositoryValidationError

DEFAULT_RESULT_TYPES = ("Applied", "Interview", "Offer", "Rejected", "Ghosted")


@dataclass(frozen=True, slots=True)
class ResultTypeRegistry:
    """Ordered set of accepted application result labels.

    ``enforce`` decides whether writes outside the set are refused or stored as-is.
    """

    labels: tuple[str, ...] = DEFAULT_RESULT_TYPES
    enforce: bool = False

    def contains(self, value: Any) -> bool:
        return isinstance(value, str) and value in self.labels

    def as_list(self) -> list[str]:
        return list(self.labels)

    def validate(self, value: Any) -> None:
        if value is None or not self.enforce:
            return
        if not self.contains(value):
            raise RepositoryValidationError(f"result must be one of: {', '.join(self.labels)}")


@lru_cache
def get_result_type_registry() -> ResultTypeRegistry:
    settings = get_settings()
    labels: list[str] = []
    for label in settings.result_types:
        stripped = label.strip()
        if stripped and stripped not in labels:
            labels.append(stripped)
    return ResultTypeRegistry(labels=tuple(labels), enforce=settings.enforce_result_types)
