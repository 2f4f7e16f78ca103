"""
orgie.api.routes.users — Profile, search & the current principal
=================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from orgie.api.deps import CurrentUser, get_engine
from orgie.api.schemas import ProfileUpdate
from orgie.services import user_service

router = APIRouter(tags=["users"])


@router.get("/auth/me")
def me(user: CurrentUser, engine: Engine = Depends(get_engine)):
    return {"user": user_service.public_user(user_service.get_user(engine, user["sub"]))}


@router.get("/users/search")
def search_users(
    user: CurrentUser,
    q: str = Query("", max_length=100),
    engine: Engine = Depends(get_engine),
):
    users = user_service.search_users(engine, q.strip())
    return {"users": [user_service.public_user(u) for u in users]}


@router.put("/users/profile")
def update_profile(body: ProfileUpdate, user: CurrentUser, engine: Engine = Depends(get_engine)):
    updated = user_service.update_profile(
        engine,
        user["sub"],
        first_name=body.first_name,
        last_name=body.last_name,
        nickname=body.nickname,
        prefer_nickname=body.prefer_nickname,
    )
    return {"user": user_service.public_user(updated)}
