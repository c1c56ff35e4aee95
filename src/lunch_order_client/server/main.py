# src/lunch_order_client/server/main.py
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Callable, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from lunch_order_client import GroupStore, create_group_store
from lunch_order_client.core import GroupView
from lunch_order_client.exceptions import (GatewayError, GroupClosedError, NotFoundError,
                                           OrderClientError, PermissionDeniedError, ValidationError)
from lunch_order_client.models import Group, Identity, ReferenceData
from .schemas import CreateGroupRequest, DishDeltaRequest, JoinRequest, MemberRequest, ViewRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Group Orders"])

_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    GroupClosedError: status.HTTP_409_CONFLICT,
    GatewayError: status.HTTP_502_BAD_GATEWAY,
}


def get_store(request: Request) -> GroupStore:
    return request.app.state.store

Store = Annotated[GroupStore, Depends(get_store)]


@router.get("/groups", response_model=List[Group])
async def list_groups(store: Store):
    return list(store.groups)


@router.post("/groups", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(body: CreateGroupRequest, store: Store):
    return await store.create_group(
        name=body.name,
        restaurant_id=body.restaurant_id,
        owner_id=body.owner_id,
        owner_name=body.owner_name,
        deadline_at=body.deadline_at,
    )


@router.post("/groups/{group_id}/join", response_model=Group)
async def join_group(group_id: str, body: JoinRequest, store: Store):
    return await store.join_group(group_id, body.user_id, body.username)


@router.post("/groups/{group_id}/leave", response_model=Group)
async def leave_group(group_id: str, body: MemberRequest, store: Store):
    return await store.leave_group(group_id, body.user_id)


@router.post("/groups/{group_id}/dishes", response_model=Group)
async def add_dish(group_id: str, body: DishDeltaRequest, store: Store):
    """Применяет дельту количества (может быть отрицательной)."""
    return await store.add_dish(group_id, body.user_id, body.dish_id, body.qty)


@router.post("/groups/{group_id}/submit", response_model=Group)
async def submit_group(group_id: str, body: MemberRequest, store: Store):
    return await store.submit(group_id, body.user_id)


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: str, store: Store, user_id: str = Query(...)):
    # Стор не проверяет владельца при удалении: это делает API
    group = store.require_group(group_id)
    if group.owner_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owner can delete the group.")
    await store.delete_group(group_id)


@router.get("/restaurants", response_model=ReferenceData)
async def list_restaurants(store: Store):
    return store.reference


@router.post("/groups/{group_id}/view", response_model=GroupView)
async def group_view(group_id: str, body: ViewRequest, store: Store):
    """Превью зрителя: сохранённые выборы + его несохранённые изменения."""
    viewer = Identity(id=body.viewer_id, username=body.username)
    return store.view(group_id, viewer, body.selections)


async def _domain_error(request: Request, exc: OrderClientError):
    code = next((c for kind, c in _STATUS.items() if isinstance(exc, kind)), status.HTTP_400_BAD_REQUEST)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(store_factory: Optional[Callable[[], GroupStore]] = None) -> FastAPI:
    """
    Приложение API. Стор живёт столько же, сколько приложение:
    создаётся и загружается на старте, закрывается на остановке.
    """
    factory = store_factory or create_group_store

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = factory()
        await store.bootstrap()
        app.state.store = store
        try:
            yield
        finally:
            await store.aclose()

    app = FastAPI(title="lunch-order-client", lifespan=lifespan)
    app.include_router(router)
    app.add_exception_handler(OrderClientError, _domain_error)
    return app
