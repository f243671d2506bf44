# app/routers/bookmark_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.services.bookmark_service import BookmarkService
from app.schemas.bookmark_schema import BookmarkOut, BookmarkStatusOut

router = APIRouter(
    prefix="/bookmarks",
    tags=["Bookmarks"],
    dependencies=[Depends(get_current_user)]
)

@router.get("/my", response_model=List[BookmarkOut])
async def list_my_bookmarks(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await BookmarkService(db).list_my_bookmarks(current_user)

@router.post("/{request_id}", response_model=BookmarkOut, status_code=status.HTTP_201_CREATED)
async def add_bookmark(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await BookmarkService(db).add_bookmark(current_user, request_id)

@router.get("/{request_id}", response_model=BookmarkStatusOut)
async def is_bookmarked(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    bookmarked = await BookmarkService(db).is_bookmarked(current_user, request_id)
    return BookmarkStatusOut(request_id=request_id, is_bookmarked=bookmarked)

@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_bookmark(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await BookmarkService(db).remove_bookmark(current_user, request_id)
