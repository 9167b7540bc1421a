from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends
from structlog.contextvars import bind_contextvars, reset_contextvars

from sprout_connector.dependencies import get_video_service
from sprout_connector.models.video_contracts import (
    AddTagRequest,
    ConnectionResponse,
    EnrichedVideo,
    SyncPage,
    SyncRequest,
    VideoTableSchema,
    build_video_table_schema,
)
from sprout_connector.services.video_service import VideoService

router = APIRouter()


@router.get(
    "/videos/schema",
    response_model=VideoTableSchema,
    tags=["videos"],
    operation_id="videos_schema",
)
def videos_schema() -> VideoTableSchema:
    return build_video_table_schema()


@router.post(
    "/videos/sync",
    response_model=SyncPage,
    tags=["videos"],
    operation_id="videos_sync",
)
async def videos_sync(
    service: Annotated[VideoService, Depends(get_video_service)],
    request: Annotated[SyncRequest | None, Body()] = None,
) -> SyncPage:
    sync_request = request if request is not None else SyncRequest()
    return await service.sync_page(
        sync_request.continuation,
        start_from=sync_request.start_from,
    )


@router.post(
    "/videos/{video_id}/tags",
    response_model=EnrichedVideo,
    tags=["videos"],
    operation_id="videos_add_tag",
)
async def videos_add_tag(
    video_id: str,
    request: AddTagRequest,
    service: Annotated[VideoService, Depends(get_video_service)],
) -> EnrichedVideo:
    context_tokens = bind_contextvars(video_id=video_id)
    try:
        return await service.add_tag(video_id, request.tag)
    finally:
        reset_contextvars(**context_tokens)


@router.get(
    "/account/connection",
    response_model=ConnectionResponse,
    tags=["account"],
    operation_id="account_connection",
)
async def account_connection(
    service: Annotated[VideoService, Depends(get_video_service)],
) -> ConnectionResponse:
    return ConnectionResponse(name=await service.connection_name())
