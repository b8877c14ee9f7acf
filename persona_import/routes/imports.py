from __future__ import annotations

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from persona_import.application import get_import_service
from persona_import.core.errors import UnknownParserError
from persona_import.core.schema import ImportAccepted, JobStatusModel
from persona_import.core.uploads import discard_upload, save_upload
from persona_import.domain import JobState
from persona_import.extractors.registry import DEFAULT_PARSER_KEY

router = APIRouter(prefix="/import", tags=["import"])


def _serialise_job(job: JobState) -> dict:
    return JobStatusModel.from_state(job).model_dump(mode="json", by_alias=True, exclude_none=True)


@router.post("/personas")
async def import_personas(
    file: UploadFile = File(...),
    parser: str | None = Form(default=None),
    batch_size: int | None = Form(default=None, alias="batchSize"),
    parser_query: str | None = Query(default=None, alias="parser"),
    batch_size_query: int | None = Query(default=None, alias="batchSize"),
) -> dict:
    """Accept a persona dataset and start importing it in the background."""
    service = get_import_service()
    parser_key = parser or parser_query or DEFAULT_PARSER_KEY
    if not service.has_parser(parser_key):
        await file.close()
        raise HTTPException(status_code=400, detail=f"Unknown parser: {parser_key}")
    if not file.filename:
        await file.close()
        raise HTTPException(status_code=400, detail='No file uploaded. Use field name "file".')

    try:
        saved = save_upload(file.filename, file.file)
    finally:
        await file.close()

    try:
        job_id = await service.start_import(
            saved,
            parser_key,
            batch_size if batch_size is not None else batch_size_query,
        )
    except UnknownParserError as exc:
        discard_upload(saved)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ImportAccepted(job_id=job_id).model_dump(by_alias=True)


@router.get("/parsers")
async def list_parsers() -> dict:
    return {"items": get_import_service().parser_keys()}


@router.get("/status/{job_id}")
async def get_import_status(job_id: str) -> dict:
    job = get_import_service().get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job not found")
    return _serialise_job(job)


@router.post("/status/{job_id}/cancel")
async def cancel_import(job_id: str) -> dict:
    job = get_import_service().cancel_import(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job not found")
    return _serialise_job(job)
