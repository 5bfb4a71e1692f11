# chatapp/routers/posts.py

from fastapi import APIRouter, Depends, Query, status

from chatapp.common.deps import get_current_user, get_post_service
from chatapp.core.config import settings
from chatapp.models.post import (
    CommentCreate,
    CommentRead,
    LikeRead,
    PostCreate,
    PostUpdate,
    PrivacyUpdate,
)
from chatapp.models.user import User
from chatapp.services.post_service import PostService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    post = await service.create(current_user, body)
    return {"post": post.to_payload()}


@router.get("")
def get_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.PAGE_SIZE, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return {"posts": [p.to_payload() for p in service.feed(current_user, page, limit)]}


@router.get("/user/{user_id}")
def get_posts_by_user(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.PAGE_SIZE, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    posts = service.by_user(current_user, user_id, page, limit)
    return {"posts": [p.to_payload() for p in posts]}


@router.post("/comment/{comment_id}/reply", status_code=status.HTTP_201_CREATED)
async def reply_comment(
    comment_id: int,
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    reply = await service.reply(current_user, comment_id, body.content)
    return {"reply": reply.to_payload()}


@router.get("/{post_id}")
def get_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return {"post": service.get(current_user, post_id).to_payload()}


@router.put("/{post_id}")
def update_post(
    post_id: int,
    body: PostUpdate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return {"post": service.update(current_user, post_id, body).to_payload()}


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    service.delete(current_user, post_id)
    return {"success": True}


@router.post("/{post_id}/pin")
def pin_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return {"post": service.pin(current_user, post_id).to_payload()}


@router.post("/{post_id}/privacy")
def change_privacy(
    post_id: int,
    body: PrivacyUpdate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return {"post": service.change_privacy(current_user, post_id, body.privacy).to_payload()}


@router.post("/{post_id}/like")
async def like_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    liked, like_count = await service.toggle_like(current_user, post_id)
    return {"liked": liked, "likeCount": like_count}


@router.get("/{post_id}/likes")
def get_likes(
    post_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    likes = service.likes(current_user, post_id, page, limit)
    return {"likes": [LikeRead.model_validate(like).to_payload() for like in likes]}


@router.post("/{post_id}/comment", status_code=status.HTTP_201_CREATED)
async def comment_post(
    post_id: int,
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    comment = await service.comment(current_user, post_id, body.content)
    return {"comment": comment.to_payload()}


@router.get("/{post_id}/comments")
def get_comments(
    post_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    comments, replies = service.comments(current_user, post_id, page, limit)
    return {
        "comments": [CommentRead.model_validate(c).to_payload() for c in comments],
        "replies": [CommentRead.model_validate(r).to_payload() for r in replies],
    }
