from __future__ import annotations

import asyncio
import os

import asyncpg  # type: ignore[import-untyped]
import pytest
from fastapi.testclient import TestClient

from jobtracker.core.config import get_settings
from jobtracker.main import app
from jobtracker.services.repository import JOBS_TABLE_DDL, get_repository


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("JT_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("integration tests require JT_DATABASE_URL or DATABASE_URL")
    return url


async def _reset_jobs_table(database_url: str) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(JOBS_TABLE_DDL)
        await conn.execute("truncate table jobs restart identity")
    finally:
        await conn.close()


@pytest.fixture
def api_client(database_url: str, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    asyncio.run(_reset_jobs_table(database_url))
    monkeypatch.setenv("JT_DATABASE_URL", database_url)
    get_settings.cache_clear()
    get_repository.cache_clear()

    with TestClient(app) as client:
        yield client

    get_repository.cache_clear()
    get_settings.cache_clear()


def test_job_lifecycle_against_postgres(api_client: TestClient) -> None:
    created = api_client.post(
        "/api/jobs",
        json={"company": "Acme", "title": "Engineer", "expectation": "", "custom_fields": {"stack": ["python"]}},
    )
    assert created.status_code == 201
    job = created.json()
    assert job["id"] >= 1
    assert job["applied_at"]
    assert job["expectation"] is None
    assert job["custom_fields"] == {"stack": ["python"]}

    updated = api_client.put(f"/api/jobs/{job['id']}", json={"result": "Interview", "company_rate": 4.5})
    assert updated.status_code == 200
    assert updated.json() == {**job, "result": "Interview", "company_rate": 4.5}

    second = api_client.post("/api/jobs", json={"company": "Globex", "title": "SRE"}).json()
    listed = api_client.get("/api/jobs").json()
    assert [row["id"] for row in listed] == [second["id"], job["id"]]

    rejected = api_client.put(f"/api/jobs/{job['id']}", json={"nope": 1})
    assert rejected.status_code == 422
    assert api_client.get(f"/api/jobs/{job['id']}").json() == updated.json()

    assert api_client.put("/api/jobs/999999", json={"remark": "x"}).status_code == 404

    assert api_client.delete(f"/api/jobs/{job['id']}").json() == {"success": True}
    assert api_client.delete(f"/api/jobs/{job['id']}").json() == {"success": True}
    assert api_client.get(f"/api/jobs/{job['id']}").status_code == 404
