from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from jobtracker.core.result_types import ResultTypeRegistry, get_result_type_registry
from jobtracker.schemas.jobs import JobDeleteOut, JobOut, ResultTypesOut
from jobtracker.services.outcomes import StoreOutcome, run_store_operation
from jobtracker.services.repository import get_repository

router = APIRouter()

OUTCOME_STATUS_CODES: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "client_error": 422,
    "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "server_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _unwrap(outcome: StoreOutcome) -> Any:
    if outcome.ok:
        return outcome.payload
    raise HTTPException(status_code=OUTCOME_STATUS_CODES[outcome.kind], detail=outcome.detail)


@router.get("", response_model=list[JobOut])
async def list_jobs(repository=Depends(get_repository)) -> list[JobOut]:
    rows = _unwrap(await run_store_operation(repository.list_jobs(), kind="records"))
    return [JobOut(**row) for row in rows]


@router.get("/result-types", response_model=ResultTypesOut)
async def list_result_types(
    registry: ResultTypeRegistry = Depends(get_result_type_registry),
) -> ResultTypesOut:
    return ResultTypesOut(result_types=registry.as_list(), enforced=registry.enforce)


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: int, repository=Depends(get_repository)) -> JobOut:
    row = _unwrap(await run_store_operation(repository.get_job(job_id), kind="record"))
    return JobOut(**row)


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: dict[str, Any] = Body(...),
    repository=Depends(get_repository),
) -> JobOut:
    row = _unwrap(await run_store_operation(repository.create_job(payload), kind="record"))
    return JobOut(**row)


@router.put("/{job_id}", response_model=JobOut)
@router.patch("/{job_id}", response_model=JobOut)
async def update_job(
    job_id: int,
    payload: dict[str, Any] = Body(...),
    repository=Depends(get_repository),
) -> JobOut:
    row = _unwrap(await run_store_operation(repository.update_job(job_id, payload), kind="record"))
    return JobOut(**row)


@router.delete("/{job_id}", response_model=JobDeleteOut)
async def delete_job(job_id: int, repository=Depends(get_repository)) -> JobDeleteOut:
    success = _unwrap(await run_store_operation(repository.delete_job(job_id), kind="deleted"))
    return JobDeleteOut(success=success)
