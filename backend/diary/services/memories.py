"""The shared photo feed: uploads, likes and threaded comments."""
from __future__ import annotations

import logging
import math
import secrets
from collections import deque
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from diary.core.clock import Clock, utcnow
from diary.core.errors import NotFoundError, PermissionDenied, StoreError, ValidationError
from diary.db.session import commit_or_raise
from diary.models.memory import Comment, Like, Memory
from diary.models.participant import Participant
from diary.schemas.memory import (
    CommentDeleteResponse,
    CommentOut,
    LikeInfo,
    LikeOut,
    LikeToggleResponse,
    MemoryListResponse,
    MemoryOut,
    MemoryUploadResponse,
)
from diary.security.sanitizer import InputSanitizer
from diary.storage.media import MEMORIES_BUCKET, MediaStorage

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_DESCRIPTION_LENGTH = 300
MAX_COMMENT_LENGTH = 500


def _clean_text(value: Optional[str], max_length: int, empty_error: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(empty_error)
    if len(value) > max_length:
        raise ValidationError(f"Text cannot exceed {max_length} characters")
    try:
        return InputSanitizer.sanitize_body(value, max_length=max_length)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def get_memory(db: Session, memory_id: str) -> Memory:
    memory = db.get(Memory, memory_id)
    if memory is None:
        raise NotFoundError("Memory not found")
    return memory


def _format_memory(memory: Memory, likes: List[Participant], comment_count: int) -> MemoryOut:
    uploader = Participant(memory.user_id)
    return MemoryOut(
        id=memory.id,
        user_id=uploader,
        image_url=memory.image_url,
        description=memory.description,
        created_at=memory.created_at,
        uploader_name=uploader.display_name,
        like_count=len(likes),
        comment_count=comment_count,
        liked_by_him=Participant.HIM in likes,
        liked_by_her=Participant.HER in likes,
    )


def upload_memory(
    db: Session,
    storage: MediaStorage,
    participant: Participant,
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    description: Optional[str],
    clock: Clock = utcnow,
) -> MemoryUploadResponse:
    if not data:
        raise ValidationError("Please choose a photo")
    if not InputSanitizer.validate_image_type(content_type):
        raise ValidationError("Supported formats: JPG, PNG, GIF, WebP, BMP, SVG, TIFF")
    if len(data) > MAX_IMAGE_SIZE:
        raise ValidationError("Photos cannot exceed 10 MB")
    description = _clean_text(description, MAX_DESCRIPTION_LENGTH, "Please add a few words about this moment")

    now = clock()
    ext = InputSanitizer.file_extension(filename, default="jpg")
    key = f"{participant.value}-{now.strftime('%Y%m%dT%H%M%S%f')}-{secrets.token_hex(4)}.{ext}"

    image_url = storage.put(MEMORIES_BUCKET, key, data, content_type)

    memory = Memory(
        user_id=participant,
        image_url=image_url,
        storage_key=key,
        description=description,
        created_at=now,
    )
    db.add(memory)
    try:
        commit_or_raise(db, "save memory")
    except StoreError:
        # don't leave an orphaned object behind
        storage.remove(MEMORIES_BUCKET, key)
        raise
    db.refresh(memory)

    logger.info("Memory %s uploaded by %s", memory.id, participant.value)
    return MemoryUploadResponse(
        memory=_format_memory(memory, [], 0),
        message="Added to our photo album",
    )


def list_memories(db: Session, limit: int = 20, offset: int = 0) -> MemoryListResponse:
    total = db.execute(select(func.count()).select_from(Memory)).scalar_one()
    memories = list(
        db.execute(
            select(Memory)
            .order_by(Memory.created_at.desc(), Memory.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars()
    )
    ids = [m.id for m in memories]

    likes: Dict[str, List[Participant]] = {mid: [] for mid in ids}
    comment_counts: Dict[str, int] = {}
    if ids:
        for memory_id, user_id in db.execute(
            select(Like.memory_id, Like.user_id).where(Like.memory_id.in_(ids))
        ):
            likes[memory_id].append(Participant(user_id))
        comment_counts = dict(
            db.execute(
                select(Comment.memory_id, func.count())
                .where(Comment.memory_id.in_(ids))
                .group_by(Comment.memory_id)
            ).all()
        )

    return MemoryListResponse(
        memories=[_format_memory(m, likes[m.id], comment_counts.get(m.id, 0)) for m in memories],
        total=total,
        has_more=offset + len(memories) < total,
        current_page=offset // limit + 1,
        total_pages=math.ceil(total / limit) if total else 0,
    )


def delete_memory(db: Session, storage: MediaStorage, viewer: Participant, memory_id: str) -> None:
    memory = get_memory(db, memory_id)
    if memory.user_id != viewer:
        raise PermissionDenied("You can only delete photos you uploaded")

    key = memory.storage_key
    # likes and comments go with it (relationship cascade)
    db.delete(memory)
    commit_or_raise(db, "delete memory")

    if key and not storage.remove(MEMORIES_BUCKET, key):
        logger.warning("Memory %s deleted but its image %s could not be removed", memory_id, key)


# ---- likes ----

def like_info(db: Session, memory_id: str) -> LikeInfo:
    get_memory(db, memory_id)
    likes = list(
        db.execute(
            select(Like).where(Like.memory_id == memory_id).order_by(Like.created_at.asc())
        ).scalars()
    )
    users = {Participant(l.user_id) for l in likes}
    return LikeInfo(
        like_count=len(likes),
        liked_by_him=Participant.HIM in users,
        liked_by_her=Participant.HER in users,
        likes=[LikeOut.model_validate(l) for l in likes],
    )


def toggle_like(db: Session, viewer: Participant, memory_id: str, clock: Clock = utcnow) -> LikeToggleResponse:
    get_memory(db, memory_id)
    existing = db.execute(
        select(Like).where(Like.memory_id == memory_id, Like.user_id == viewer)
    ).scalar_one_or_none()

    if existing is not None:
        db.delete(existing)
        liked = False
    else:
        db.add(Like(memory_id=memory_id, user_id=viewer, created_at=clock()))
        liked = True
    commit_or_raise(db, "update like")

    info = like_info(db, memory_id)
    return LikeToggleResponse(liked=liked, **info.model_dump())


# ---- comments ----

def _comment_levels(comments: List[Comment]) -> Dict[str, int]:
    """Depth of every comment (root comments are 0)."""
    parents = {c.id: c.parent_comment_id for c in comments}
    levels: Dict[str, int] = {}
    for comment in comments:
        depth = 0
        seen = {comment.id}
        parent = parents.get(comment.id)
        while parent is not None and parent in parents and parent not in seen:
            seen.add(parent)
            depth += 1
            parent = parents.get(parent)
        levels[comment.id] = depth
    return levels


def _format_comment(comment: Comment, level: int) -> CommentOut:
    author = Participant(comment.user_id)
    return CommentOut(
        id=comment.id,
        memory_id=comment.memory_id,
        user_id=author,
        user_name=author.display_name,
        content=comment.content,
        parent_comment_id=comment.parent_comment_id,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        level=level,
    )


def list_comments(db: Session, memory_id: str) -> List[CommentOut]:
    get_memory(db, memory_id)
    comments = list(
        db.execute(
            select(Comment)
            .where(Comment.memory_id == memory_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        ).scalars()
    )
    levels = _comment_levels(comments)
    return [_format_comment(c, levels[c.id]) for c in comments]


def _get_comment(db: Session, comment_id: str) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def add_comment(
    db: Session,
    viewer: Participant,
    memory_id: str,
    content: str,
    parent_comment_id: Optional[str] = None,
    clock: Clock = utcnow,
) -> CommentOut:
    get_memory(db, memory_id)
    content = _clean_text(content, MAX_COMMENT_LENGTH, "Comment cannot be empty")

    level = 0
    if parent_comment_id:
        parent = db.get(Comment, parent_comment_id)
        if parent is None or parent.memory_id != memory_id:
            raise ValidationError("The comment you are replying to does not exist")
        level = _comment_levels(
            list(db.execute(select(Comment).where(Comment.memory_id == memory_id)).scalars())
        ).get(parent.id, 0) + 1

    now = clock()
    comment = Comment(
        memory_id=memory_id,
        user_id=viewer,
        content=content,
        parent_comment_id=parent_comment_id or None,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    commit_or_raise(db, "add comment")
    db.refresh(comment)
    return _format_comment(comment, level)


def edit_comment(db: Session, viewer: Participant, comment_id: str, content: str, clock: Clock = utcnow) -> CommentOut:
    comment = _get_comment(db, comment_id)
    if comment.user_id != viewer:
        raise PermissionDenied("You can only edit your own comments")

    comment.content = _clean_text(content, MAX_COMMENT_LENGTH, "Comment cannot be empty")
    comment.updated_at = clock()
    commit_or_raise(db, "update comment")
    db.refresh(comment)

    siblings = list(db.execute(select(Comment).where(Comment.memory_id == comment.memory_id)).scalars())
    return _format_comment(comment, _comment_levels(siblings).get(comment.id, 0))


def delete_comment(db: Session, viewer: Participant, comment_id: str) -> CommentDeleteResponse:
    comment = _get_comment(db, comment_id)
    if comment.user_id != viewer:
        raise PermissionDenied("You can only delete your own comments")

    # collect the reply subtree breadth-first, then delete leaves first
    subtree: List[Comment] = []
    queue = deque([comment])
    seen = {comment.id}
    while queue:
        node = queue.popleft()
        subtree.append(node)
        for reply in db.execute(select(Comment).where(Comment.parent_comment_id == node.id)).scalars():
            if reply.id not in seen:
                seen.add(reply.id)
                queue.append(reply)

    for node in reversed(subtree):
        db.delete(node)
    commit_or_raise(db, "delete comment")
    return CommentDeleteResponse(deleted=True, deleted_count=len(subtree))
