"""
Operator trigger surface for the content pipeline.

Every action the scheduler runs can also be fired by hand here, alongside
item review, publishing settings and feed source management.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import IntegrityError

from ...dependencies import (
    get_auto_publish_service,
    get_feed_fetcher,
    get_feed_source_repository,
    get_fetched_item_repository,
    get_generation_orchestrator,
    get_publish_action,
    get_publishing_settings_repository,
)
from ..schemas import (
    CombineRequest,
    CombineResponse,
    FeedSourceCreateRequest,
    FeedSourceResponse,
    FeedSourceUpdateRequest,
    FetchedItemListResponse,
    FetchedItemResponse,
    FetchSummary,
    GenerationSummary,
    ItemStatusUpdateRequest,
    ProcessRequest,
    PublishingSettingsResponse,
    PublishingSettingsUpdateRequest,
    PublishRequest,
    PublishResponse,
    PublishSummary,
)
from ....exceptions import ItemNotFoundError, PipelineError, ValidationError
from ....models.enums import FetchedItemStatus, MANUAL_TRANSITIONS
from ....pipeline.auto_publish import AutoPublishService
from ....pipeline.feed_fetcher import FeedFetcher
from ....pipeline.generation import GenerationOrchestrator
from ....pipeline.publisher import PublishAction
from ....repositories.feed_source_repository import FeedSourceRepository
from ....repositories.fetched_item_repository import FetchedItemRepository
from ....repositories.publishing_settings_repository import PublishingSettingsRepository

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/actions/fetch", response_model=FetchSummary)
async def trigger_fetch(fetcher: FeedFetcher = Depends(get_feed_fetcher)):
    """Poll every active feed source now"""
    return await fetcher.fetch_all_active_sources()


@router.post("/actions/process", response_model=GenerationSummary)
async def trigger_process(
    request: Optional[ProcessRequest] = None,
    orchestrator: GenerationOrchestrator = Depends(get_generation_orchestrator),
):
    """Generate articles for the oldest pending items"""
    limit = request.limit if request else None
    return await orchestrator.process_pending(limit)


@router.post("/actions/combine", response_model=CombineResponse)
async def trigger_combine(
    request: CombineRequest,
    orchestrator: GenerationOrchestrator = Depends(get_generation_orchestrator),
):
    """Merge several pending items into one article"""
    try:
        primary_item_id = await orchestrator.generate_combined(request.item_ids)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if primary_item_id is None:
        raise HTTPException(status_code=422, detail="Combined generation failed; items were returned to PENDING")
    return CombineResponse(primary_item_id=primary_item_id)


@router.post("/actions/publish", response_model=PublishResponse)
async def trigger_publish(
    request: PublishRequest,
    publisher: PublishAction = Depends(get_publish_action),
    settings_repository: PublishingSettingsRepository = Depends(get_publishing_settings_repository),
):
    """Publish one approved item, falling back to the default author and category"""
    author_id = request.author_id
    category_id = request.category_id
    if not author_id or not category_id:
        config = settings_repository.get_or_create().to_config()
        author_id = author_id or config.default_author_id
        category_id = category_id or config.default_category_id
    if not author_id or not category_id:
        raise HTTPException(status_code=400, detail="author_id and category_id are required when no defaults are configured")

    try:
        post_id = publisher.publish(request.item_id, author_id, category_id)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PipelineError as e:
        logger.warning("manual_publish_failed", item_id=request.item_id, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    return PublishResponse(post_id=post_id)


@router.post("/actions/auto-publish", response_model=PublishSummary)
async def trigger_auto_publish(service: AutoPublishService = Depends(get_auto_publish_service)):
    """Run the auto-publish policy once"""
    return await service.run()


@router.get("/items", response_model=FetchedItemListResponse)
async def list_items(
    status: Optional[FetchedItemStatus] = Query(None, description="Filter by item status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100, description="Items per page (max 100)"),
    repository: FetchedItemRepository = Depends(get_fetched_item_repository),
):
    items, total = repository.paginate(status=status, page=page, limit=limit)
    return FetchedItemListResponse(
        items=[FetchedItemResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.patch("/items/{item_id}/status", response_model=FetchedItemResponse)
async def update_item_status(
    item_id: int,
    request: ItemStatusUpdateRequest,
    repository: FetchedItemRepository = Depends(get_fetched_item_repository),
):
    """Approve or reject an item by hand"""
    item = repository.get(item_id)
    if not item:
        raise HTTPException(status_code=404, detail=f"Fetched item {item_id} not found")

    current = FetchedItemStatus(item.status)
    if (current, request.status) not in MANUAL_TRANSITIONS:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot move item from {current.value} to {request.status.value}",
        )

    if not repository.set_status(item, request.status):
        raise HTTPException(status_code=409, detail="Item status changed concurrently")

    logger.info("item_status_updated", item_id=item_id, from_status=current.value, to_status=request.status.value)
    return FetchedItemResponse.model_validate(item)


@router.get("/settings", response_model=PublishingSettingsResponse)
async def get_publishing_settings(
    repository: PublishingSettingsRepository = Depends(get_publishing_settings_repository),
):
    return repository.get_or_create()


@router.patch("/settings", response_model=PublishingSettingsResponse)
async def update_publishing_settings(
    request: PublishingSettingsUpdateRequest,
    repository: PublishingSettingsRepository = Depends(get_publishing_settings_repository),
):
    fields = request.model_dump(exclude_unset=True)
    settings = repository.update(**fields)
    logger.info("publishing_settings_updated", fields=sorted(fields))
    return settings


@router.get("/sources", response_model=list[FeedSourceResponse])
async def list_sources(repository: FeedSourceRepository = Depends(get_feed_source_repository)):
    return repository.list_all()


@router.post("/sources", response_model=FeedSourceResponse, status_code=201)
async def create_source(
    request: FeedSourceCreateRequest,
    repository: FeedSourceRepository = Depends(get_feed_source_repository),
):
    try:
        return repository.create(
            name=request.name,
            url=str(request.url),
            kind=request.kind,
            language=request.language,
            poll_interval_minutes=request.poll_interval_minutes,
            is_active=request.is_active,
        )
    except IntegrityError:
        repository.session.rollback()
        raise HTTPException(status_code=409, detail="A feed source with this URL already exists")


@router.patch("/sources/{source_id}", response_model=FeedSourceResponse)
async def update_source(
    source_id: int,
    request: FeedSourceUpdateRequest,
    repository: FeedSourceRepository = Depends(get_feed_source_repository),
):
    source = repository.get(source_id)
    if not source:
        raise HTTPException(status_code=404, detail=f"Feed source {source_id} not found")

    fields = request.model_dump(exclude_unset=True)
    if "url" in fields and fields["url"] is not None:
        fields["url"] = str(fields["url"])

    try:
        return repository.update(source, **fields)
    except IntegrityError:
        repository.session.rollback()
        raise HTTPException(status_code=409, detail="A feed source with this URL already exists")


@router.delete("/sources/{source_id}", status_code=204)
async def delete_source(
    source_id: int,
    repository: FeedSourceRepository = Depends(get_feed_source_repository),
):
    """Remove a feed source that has not produced any items yet"""
    source = repository.get(source_id)
    if not source:
        raise HTTPException(status_code=404, detail=f"Feed source {source_id} not found")

    # Fetched items are kept forever, so a source they reference can only be deactivated
    if repository.has_items(source_id):
        raise HTTPException(
            status_code=409,
            detail="Feed source has fetched items; deactivate it instead",
        )

    repository.delete(source)
    logger.info("feed_source_deleted", source_id=source_id)
    return Response(status_code=204)
