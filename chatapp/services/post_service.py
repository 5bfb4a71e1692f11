# chatapp/services/post_service.py
"""
Posts, likes and comments.

Plain CRUD apart from likes, comments and replies, which write a
notification for the affected author and push counters to live clients.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, case, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from chatapp.common.fanout import FanOut
from chatapp.core.exceptions import Conflict, InvalidRequest, NotFound
from chatapp.models.notification import Notification, NotificationRead, NotificationType
from chatapp.models.post import (
    Comment,
    CommentRead,
    Like,
    Post,
    PostCreate,
    PostPrivacy,
    PostRead,
    PostUpdate,
)
from chatapp.models.user import User
from chatapp.services.friendship_service import are_friends, friend_ids
from chatapp.services.notification_service import NotificationLedger

logger = logging.getLogger(__name__)


class PostService:

    def __init__(self, db: Session, fanout: FanOut, ledger: Optional[NotificationLedger] = None):
        self.db = db
        self.fanout = fanout
        self.ledger = ledger or NotificationLedger(db)

    # --- reading ---

    def _posts(self):
        return (
            self.db.query(Post)
            .options(joinedload(Post.user))
            .filter(Post.deleted.is_(False))
        )

    def _live_post(self, post_id: int) -> Post:
        post = self._posts().filter(Post.id == post_id).first()
        if post is None:
            raise NotFound("Post not found.")
        return post

    def _owned_post(self, user: User, post_id: int) -> Post:
        post = self._live_post(post_id)
        if post.user_id != user.id:
            raise NotFound("Post not found.")
        return post

    def can_view(self, viewer_id: int, post: Post) -> bool:
        if post.user_id == viewer_id or post.privacy == PostPrivacy.PUBLIC:
            return True
        if post.privacy == PostPrivacy.FRIENDS:
            return are_friends(self.db, viewer_id, post.user_id)
        return False

    def _visible_post(self, viewer: User, post_id: int) -> Post:
        # Posts the viewer may not see look exactly like missing ones
        post = self._live_post(post_id)
        if not self.can_view(viewer.id, post):
            raise NotFound("Post not found.")
        return post

    def _audience(self, post: Post) -> Optional[List[int]]:
        """Live recipients for events about ``post``; None means everyone online."""
        if post.privacy == PostPrivacy.PUBLIC:
            return None
        if post.privacy == PostPrivacy.FRIENDS:
            return [post.user_id] + friend_ids(self.db, post.user_id)
        return [post.user_id]

    def _with_liked(self, viewer_id: int, posts: List[Post]) -> List[PostRead]:
        if not posts:
            return []
        liked = {
            post_id
            for (post_id,) in self.db.query(Like.post_id).filter(
                Like.user_id == viewer_id,
                Like.post_id.in_([p.id for p in posts]),
            )
        }
        return [
            PostRead.model_validate(p).model_copy(update={"liked_by_me": p.id in liked})
            for p in posts
        ]

    @staticmethod
    def _page(query, page: int, limit: int):
        page = max(page, 1)
        return (
            query.order_by(Post.pinned.desc(), Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

    def feed(self, viewer: User, page: int = 1, limit: int = 10) -> List[PostRead]:
        """Public posts plus friends-only posts by the viewer's friends or the viewer."""
        authors = friend_ids(self.db, viewer.id) + [viewer.id]
        query = self._posts().filter(
            or_(
                Post.privacy == PostPrivacy.PUBLIC,
                and_(Post.privacy == PostPrivacy.FRIENDS, Post.user_id.in_(authors)),
            )
        )
        return self._with_liked(viewer.id, self._page(query, page, limit).all())

    def by_user(self, viewer: User, user_id: int, page: int = 1, limit: int = 10) -> List[PostRead]:
        query = self._posts().filter(Post.user_id == user_id)
        if user_id != viewer.id:
            visible = [PostPrivacy.PUBLIC]
            if are_friends(self.db, viewer.id, user_id):
                visible.append(PostPrivacy.FRIENDS)
            query = query.filter(Post.privacy.in_(visible))
        return self._with_liked(viewer.id, self._page(query, page, limit).all())

    def get(self, viewer: User, post_id: int) -> PostRead:
        post = self._visible_post(viewer, post_id)
        return self._with_liked(viewer.id, [post])[0]

    def likes(self, viewer: User, post_id: int, page: int = 1, limit: int = 20) -> List[Like]:
        self._visible_post(viewer, post_id)
        return (
            self.db.query(Like)
            .options(joinedload(Like.user))
            .filter(Like.post_id == post_id)
            .order_by(Like.created_at.desc(), Like.id.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
            .all()
        )

    def comments(
        self, viewer: User, post_id: int, page: int = 1, limit: int = 20
    ) -> Tuple[List[Comment], List[Comment]]:
        """Top-level comments (newest first, paged) and every reply (oldest first)."""
        self._visible_post(viewer, post_id)
        base = (
            self.db.query(Comment)
            .options(joinedload(Comment.user))
            .filter(Comment.post_id == post_id, Comment.deleted.is_(False))
        )
        top = (
            base.filter(Comment.parent_id.is_(None))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
            .all()
        )
        replies = (
            base.filter(Comment.parent_id.isnot(None))
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )
        return top, replies

    # --- writing ---

    async def create(self, user: User, body: PostCreate) -> PostRead:
        if not body.content and not body.media:
            raise InvalidRequest("Content or media is required.")
        post = Post(
            user_id=user.id,
            content=body.content,
            media=[m.model_dump() for m in body.media],
            privacy=body.privacy,
            background=body.background,
            feeling=body.feeling.model_dump(),
        )
        self.db.add(post)
        self.db.commit()

        created = PostRead.model_validate(self._live_post(post.id))
        if created.privacy != PostPrivacy.PRIVATE:
            try:
                await self.fanout.new_post(created, self._audience(post))
            except Exception:
                logger.exception("Live push of post %s failed", created.id)
        return created

    def update(self, user: User, post_id: int, body: PostUpdate) -> PostRead:
        post = self._owned_post(user, post_id)
        changes = body.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None:
                continue
            setattr(post, key, value)
        self.db.commit()
        return self._with_liked(user.id, [self._live_post(post_id)])[0]

    def delete(self, user: User, post_id: int) -> None:
        post = self._owned_post(user, post_id)
        post.deleted = True
        self.db.commit()

    def pin(self, user: User, post_id: int) -> PostRead:
        post = self._owned_post(user, post_id)
        post.pinned = True
        self.db.commit()
        return self._with_liked(user.id, [self._live_post(post_id)])[0]

    def change_privacy(self, user: User, post_id: int, privacy: PostPrivacy) -> PostRead:
        post = self._owned_post(user, post_id)
        post.privacy = privacy
        self.db.commit()
        return self._with_liked(user.id, [self._live_post(post_id)])[0]

    async def toggle_like(self, user: User, post_id: int) -> Tuple[bool, int]:
        """Like the post, or unlike it if already liked. Returns (liked, like_count)."""
        post = self._visible_post(user, post_id)
        existing = (
            self.db.query(Like)
            .filter(Like.post_id == post_id, Like.user_id == user.id)
            .first()
        )
        notification: Optional[Notification] = None
        if existing is not None:
            self.db.delete(existing)
            self._bump(Post.like_count, post_id, -1)
            liked = False
        else:
            self.db.add(Like(post_id=post_id, user_id=user.id))
            try:
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                raise Conflict("Post already liked.")
            self._bump(Post.like_count, post_id, 1)
            liked = True
            if post.user_id != user.id:
                notification = self.ledger.create(
                    post.user_id,
                    user.id,
                    NotificationType.POST_LIKE,
                    post_id=post_id,
                    commit=False,
                )
        self.db.commit()

        like_count = self.db.query(Post.like_count).filter(Post.id == post_id).scalar()
        try:
            await self.fanout.post_like_update(post_id, like_count, user.id, self._audience(post))
            if notification is not None:
                await self.fanout.notification(NotificationRead.model_validate(notification))
        except Exception:
            logger.exception("Live push of like on post %s failed", post_id)
        return liked, like_count

    async def comment(self, user: User, post_id: int, content: str) -> CommentRead:
        post = self._visible_post(user, post_id)
        return await self._add_comment(
            user, post, content, parent=None, notify_id=post.user_id, kind=NotificationType.POST_COMMENT
        )

    async def reply(self, user: User, comment_id: int, content: str) -> CommentRead:
        parent = (
            self.db.query(Comment)
            .filter(Comment.id == comment_id, Comment.deleted.is_(False))
            .first()
        )
        if parent is None:
            raise NotFound("Comment not found.")
        post = self._visible_post(user, parent.post_id)
        return await self._add_comment(
            user, post, content, parent=parent, notify_id=parent.user_id, kind=NotificationType.COMMENT_REPLY
        )

    async def _add_comment(
        self,
        user: User,
        post: Post,
        content: str,
        parent: Optional[Comment],
        notify_id: int,
        kind: NotificationType,
    ) -> CommentRead:
        if not content or not content.strip():
            raise InvalidRequest("Comment content must not be empty.")
        comment = Comment(
            post_id=post.id,
            user_id=user.id,
            content=content,
            parent_id=parent.id if parent is not None else None,
        )
        self.db.add(comment)
        self.db.flush()
        self._bump(Post.comment_count, post.id, 1)

        notification = None
        if notify_id != user.id:
            notification = self.ledger.create(
                notify_id,
                user.id,
                kind,
                post_id=post.id,
                comment_id=comment.id,
                commit=False,
            )
        self.db.commit()

        created = CommentRead.model_validate(
            self.db.query(Comment).options(joinedload(Comment.user)).filter(Comment.id == comment.id).one()
        )
        try:
            await self.fanout.post_comment_update(post.id, created, self._audience(post))
            if notification is not None:
                await self.fanout.notification(NotificationRead.model_validate(notification))
        except Exception:
            logger.exception("Live push of comment on post %s failed", post.id)
        return created

    def _bump(self, column, post_id: int, delta: int) -> None:
        # Counters are updated in SQL so concurrent likes do not overwrite each other
        value = column + delta if delta > 0 else case((column + delta < 0, 0), else_=column + delta)
        self.db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values({column: value})
            .execution_options(synchronize_session=False)
        )
