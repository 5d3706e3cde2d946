from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from jobtracker.services.errors import RepositorySchemaViolationError, RepositoryValidationError
from jobtracker.services.record_schema import COLUMNS, JOBS_TABLE, WRITABLE_COLUMNS, Column

RETURNING_SQL = ", ".join(COLUMNS)


@dataclass(slots=True)
class MutationStatement:
    sql: str
    params: list[Any] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)


class _Binder:
    def __init__(self) -> None:
        self.params: list[Any] = []

    def bind(self, value: Any, column: Column | None = None) -> str:
        if column is not None and column.kind == "json":
            self.params.append(json.dumps(value))
            return f"${len(self.params)}::jsonb"
        self.params.append(value)
        return f"${len(self.params)}"


def build_insert(fields: Mapping[str, Any]) -> MutationStatement:
    columns = _resolve_columns(fields)
    binder = _Binder()
    placeholders = [binder.bind(fields[column.name], column) for column in columns]
    column_sql = ", ".join(column.name for column in columns)
    return MutationStatement(
        sql=(
            f"insert into {JOBS_TABLE} ({column_sql}) "
            f"values ({', '.join(placeholders)}) "
            f"returning {RETURNING_SQL}"
        ),
        params=binder.params,
        columns=[column.name for column in columns],
    )


def build_update(job_id: int, fields: Mapping[str, Any]) -> MutationStatement:
    columns = _resolve_columns(fields)
    binder = _Binder()
    assignments = [f"{column.name} = {binder.bind(fields[column.name], column)}" for column in columns]
    id_token = binder.bind(job_id)
    return MutationStatement(
        sql=(
            f"update {JOBS_TABLE} set {', '.join(assignments)} "
            f"where id = {id_token} "
            f"returning {RETURNING_SQL}"
        ),
        params=binder.params,
        columns=[column.name for column in columns],
    )


def build_select(job_id: int | None = None) -> MutationStatement:
    if job_id is None:
        return MutationStatement(sql=f"select {RETURNING_SQL} from {JOBS_TABLE} order by id desc")
    return MutationStatement(sql=f"select {RETURNING_SQL} from {JOBS_TABLE} where id = $1", params=[job_id])


def build_delete(job_id: int) -> MutationStatement:
    return MutationStatement(sql=f"delete from {JOBS_TABLE} where id = $1", params=[job_id])


def _resolve_columns(fields: Mapping[str, Any]) -> list[Column]:
    if not fields:
        raise RepositoryValidationError("no fields to write")
    columns: list[Column] = []
    for key in fields:
        column = WRITABLE_COLUMNS.get(key)
        if column is None:
            raise RepositorySchemaViolationError(f"cannot bind column: {key}")
        columns.append(column)
    return columns
