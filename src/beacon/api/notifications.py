"""Notifications API — create-and-push, and paginated history.

Routes:
- POST /notifications → store, push to the user's live sessions, return it
- GET /notifications/:user_id?page=&limit= → newest-first page + total

page and limit are taken as raw strings and coerced by the store, so a
malformed value falls back to the default instead of failing the request.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from beacon.errors import StorageError, ValidationError
from beacon.schemas.notification import (
    NotificationCreate,
    NotificationCreated,
    NotificationPage,
    NotificationRead,
)
from beacon.services.dispatch import DispatchCoordinator

router = APIRouter()


def _get_coordinator(request: Request) -> DispatchCoordinator:
    state = request.app.state
    return DispatchCoordinator(store=state.store, bus=state.bus)


@router.post("/notifications", response_model=NotificationCreated, status_code=201)
async def create_notification(
    body: NotificationCreate,
    svc: DispatchCoordinator = Depends(_get_coordinator),
):
    """Create a notification and push it to every session joined as userId."""
    try:
        notification = await svc.create_and_dispatch(
            user_id=body.user_id,
            type=body.type,
            message=body.message,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))

    read = NotificationRead.model_validate(notification)
    return NotificationCreated(**read.model_dump())


@router.get("/notifications/{user_id}", response_model=NotificationPage)
async def list_notifications(
    user_id: str,
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    svc: DispatchCoordinator = Depends(_get_coordinator),
):
    """List a user's notifications, most recent first."""
    try:
        return await svc.get_page(user_id, page=page, limit=limit)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
