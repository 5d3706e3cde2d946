#!/usr/bin/env python3
"""Emit (or apply) the DDL for the job tracker's ``jobs`` table."""

from __future__ import annotations

import argparse
import asyncio
import os

from jobtracker.services.repository import JOBS_TABLE_DDL, PostgresRepository


def render_sql(*, drop_existing: bool) -> str:
    statements = ["-- Job tracker schema bootstrap SQL"]
    if drop_existing:
        statements.append("drop table if exists jobs;")
    statements.append(JOBS_TABLE_DDL.strip())
    return "\n\n".join(statements) + "\n"


async def apply_schema(database_url: str) -> None:
    repository = PostgresRepository(database_url=database_url, min_pool_size=1, max_pool_size=1)
    try:
        await repository.ensure_schema()
    finally:
        await repository.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit or apply the job tracker schema.")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Run the DDL against --database-url instead of printing it",
    )
    parser.add_argument(
        "--database-url",
        default=os.getenv("JT_DATABASE_URL") or os.getenv("DATABASE_URL"),
        help="Postgres DSN (defaults to JT_DATABASE_URL or DATABASE_URL)",
    )
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Prefix the emitted SQL with a drop of the jobs table",
    )
    args = parser.parse_args()

    if not args.apply:
        print(render_sql(drop_existing=args.drop_existing))
        return

    if args.drop_existing:
        parser.error("--drop-existing is only supported when emitting SQL")
    if not args.database_url:
        parser.error("--apply requires --database-url, JT_DATABASE_URL or DATABASE_URL")
    asyncio.run(apply_schema(args.database_url))
    print("jobs table ensured")


if __name__ == "__main__":
    main()
