"""Router for the Conversation feature."""
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from di.container import ApplicationContainer as DependencyContainer
from api.features.conversation.controller import ConversationController
from api.features.conversation.dtos import (
    AppendMessageRequest,
    ConversationListResponse,
    CreateConversationRequest,
    IssueNonceRequest,
    MessageResponse,
    NonceResponse,
    ValidateNonceRequest,
)
from api.features.conversation.models import (
    ConversationDetailModel,
    ConversationListFilter,
    ConversationModel,
)
from api.features.geo.models import GeoLocation
from api.shared.db import get_db_session
from api.shared.response import ResponseModel

router = APIRouter()


def get_remote_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


@router.post("/nonce", response_model=ResponseModel[NonceResponse])
@inject
async def issue_nonce(
    request: IssueNonceRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        issued = await controller.issue_nonce(
            conversation_id=request.conversation_id, db_session=db_session
        )
        return ResponseModel.success(data=issued, message="Nonce issued")
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/", response_model=ResponseModel[ConversationModel])
@inject
async def create_conversation(
    request: CreateConversationRequest,
    http_request: Request,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        conv = await controller.create_conversation(
            request=request,
            remote_ip=get_remote_ip(http_request),
            db_session=db_session,
        )
        return ResponseModel.success(data=conv, message="Conversation created")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{conversation_id}/nonce/validate", response_model=ResponseModel[str])
@inject
async def validate_nonce(
    conversation_id: str,
    request: ValidateNonceRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        await controller.validate_nonce(
            conversation_id=conversation_id, nonce=request.nonce, db_session=db_session
        )
        return ResponseModel.success(data=conversation_id, message="Nonce accepted")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{conversation_id}/messages", response_model=ResponseModel[MessageResponse])
@inject
async def append_message(
    conversation_id: str,
    request: AppendMessageRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        msg = await controller.append_message(
            conversation_id=conversation_id, request=request, db_session=db_session
        )
        return ResponseModel.success(data=msg, message="Message appended")
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/", response_model=ResponseModel[ConversationListResponse])
@inject
async def list_conversations(
    kb_id: str = Query(..., description="Knowledge base identifier"),
    app_id: Optional[str] = Query(None, description="Filter by application"),
    subject: Optional[str] = Query(None, description="Filter by subject substring"),
    remote_ip: Optional[str] = Query(None, description="Filter by requester IP"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await controller.list_conversations(
            request=ConversationListFilter(
                kb_id=kb_id,
                app_id=app_id,
                subject=subject,
                remote_ip=remote_ip,
                page=page,
                per_page=per_page,
            ),
            db_session=db_session,
        )
        return ResponseModel.success(data=result, message="Conversations listed")
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/geo/{kb_id}", response_model=ResponseModel[GeoLocation])
@inject
async def get_cached_location(
    kb_id: str,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
):
    location = await controller.get_cached_location(kb_id=kb_id)
    if location is None:
        raise HTTPException(status_code=404, detail="No cached location")
    return ResponseModel.success(data=location, message="Cached location fetched")


@router.get("/{conversation_id}", response_model=ResponseModel[ConversationDetailModel])
@inject
async def get_conversation_detail(
    conversation_id: str,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    try:
        detail = await controller.get_conversation_detail(
            conversation_id=conversation_id, db_session=db_session
        )
        return ResponseModel.success(data=detail, message="Conversation fetched")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
