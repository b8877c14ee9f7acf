from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter

from persona_import.application import get_import_service

router = APIRouter(tags=["personas"])


@router.get("/personas")
async def list_personas() -> dict:
    return {"items": get_import_service().list_personas()}


@router.get("/tags")
async def list_tags() -> dict:
    return {"items": [asdict(tag) for tag in get_import_service().list_tags()]}
