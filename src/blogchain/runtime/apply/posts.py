# src/blogchain/runtime/apply/posts.py
from __future__ import annotations

"""
Post domain semantics.

Service operations (keeper level, operate on a BlogState):
- create_post / get_post / update_post / delete_post
- like_post / has_user_liked_post
- list_active_posts / active_post_count

Tx handlers (message level, validate the envelope then call a service):
- BLOG_POST_CREATE
- BLOG_POST_UPDATE
- BLOG_POST_DELETE
- BLOG_POST_LIKE

Posts are never physically removed. Deleting moves the id from the active
index to the deleted index; get_post still returns deleted posts, listing
does not.
"""

from typing import Any, Dict, List, Optional, Set

from blogchain.ledger import constants as C
from blogchain.ledger.state import BlogState
from blogchain.ledger.types import Post
from blogchain.runtime.apply import profiles
from blogchain.runtime.errors import INVALID_PAYLOAD, ApplyError
from blogchain.runtime.pagination import PageRequest, PageResponse, paginate
from blogchain.runtime.tx_admission_types import TxContext, TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return x if isinstance(x, str) else ""


def _as_str_list(x: Any) -> List[str]:
    if not isinstance(x, list):
        return []
    return [s for s in x if isinstance(s, str)]


def _as_id(payload: Json, key: str) -> int:
    v = payload.get(key)
    if isinstance(v, bool) or v is None:
        raise ApplyError(INVALID_PAYLOAD, f"missing {key}", {"field": key})
    if isinstance(v, float) and not v.is_integer():
        # NaN, Infinity and fractions are not ids.
        raise ApplyError(INVALID_PAYLOAD, f"invalid {key}", {"field": key, "value": str(v)})
    try:
        out = int(v)
    except (TypeError, ValueError, OverflowError) as e:
        raise ApplyError(INVALID_PAYLOAD, f"invalid {key}", {"field": key, "value": str(v)}) from e
    if out < 0 or out > C.MAX_ID:
        raise ApplyError(INVALID_PAYLOAD, f"invalid {key}", {"field": key, "value": v})
    return out


# ---------------------------
# Service
# ---------------------------


def create_post(
    st: BlogState,
    *,
    creator: str,
    title: str,
    body: str,
    tags: Optional[List[str]] = None,
    created_at: int = 0,
    content_blob_id: str = "",
    media_blob_ids: Optional[List[str]] = None,
) -> int:
    post_id = st.post_seq.next()
    post = Post(
        id=post_id,
        creator=creator,
        title=title,
        body=body,
        tags=list(tags or []),
        created_at=int(created_at),
        updated_at=int(created_at),
        content_blob_id=content_blob_id,
        media_blob_ids=list(media_blob_ids or []),
    )
    st.posts.set(post_id, post)
    st.active_posts.add(post_id)
    profiles.increment_post_count(st, creator)
    return post_id


def get_post(st: BlogState, post_id: int) -> Post:
    post = st.get_post(post_id)
    if post is None:
        raise ApplyError.not_found("post not found", {"post_id": post_id})
    return post


def update_post(
    st: BlogState,
    post_id: int,
    *,
    actor: str,
    title: str,
    body: str,
    tags: Optional[List[str]] = None,
    content_blob_id: str = "",
    media_blob_ids: Optional[List[str]] = None,
    updated_at: int = 0,
) -> Post:
    post = get_post(st, post_id)
    if post.creator != actor:
        raise ApplyError.unauthorized("only the post creator can update the post", {"post_id": post_id})
    if post.deleted:
        raise ApplyError.invalid_state("cannot update a deleted post", {"post_id": post_id})

    post.title = title
    post.body = body
    post.tags = list(tags or [])
    post.content_blob_id = content_blob_id
    post.media_blob_ids = list(media_blob_ids or [])
    post.updated_at = int(updated_at)
    st.posts.set(post.id, post)
    return post


def delete_post(st: BlogState, post_id: int, *, actor: str, deleted_at: int) -> Post:
    post = get_post(st, post_id)
    if post.creator != actor:
        raise ApplyError.unauthorized("only the post creator can delete the post", {"post_id": post_id})
    if post.deleted:
        raise ApplyError.invalid_state("post is already deleted", {"post_id": post_id})

    post.deleted = True
    post.deleted_at = int(deleted_at)
    st.posts.set(post.id, post)
    st.active_posts.remove(post.id)
    st.deleted_posts.add(post.id)
    profiles.decrement_post_count(st, post.creator)
    return post


def has_user_liked_post(st: BlogState, post_id: int, liker: str) -> bool:
    return st.post_likes.has((int(post_id), str(liker)))


def like_post(st: BlogState, post_id: int, *, liker: str) -> Post:
    post = get_post(st, post_id)
    if post.deleted:
        raise ApplyError.invalid_state("cannot like deleted post", {"post_id": post_id})
    if has_user_liked_post(st, post_id, liker):
        raise ApplyError.already_exists("user has already liked this post", {"post_id": post_id, "liker": liker})

    post.likes += 1
    st.posts.set(post.id, post)
    st.post_likes.add((post.id, liker))
    return post


def active_post_count(st: BlogState) -> int:
    return st.active_posts.count()


def list_active_posts(st: BlogState, page: Optional[PageRequest] = None) -> PageResponse[Post]:
    def _entries():
        for raw_key, post_id in st.active_posts.iterate():
            post = st.get_post(post_id)
            if post is None:
                # dangling index entry
                continue
            yield raw_key, post

    return paginate(_entries(), page)


# ---------------------------
# Tx handlers
# ---------------------------


def _apply_post_create(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    creator = ctx.addresses.validate(env.signer, field="creator address")

    post_id = create_post(
        st,
        creator=creator,
        title=_as_str(payload.get("title")),
        body=_as_str(payload.get("body")),
        tags=_as_str_list(payload.get("tags")),
        created_at=ctx.block_time,
        content_blob_id=_as_str(payload.get("content_blob_id")),
        media_blob_ids=_as_str_list(payload.get("media_blob_ids")),
    )
    ctx.events.emit("post_created", id=post_id, creator=creator)
    return {"applied": "BLOG_POST_CREATE", "post_id": post_id}


def _apply_post_update(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    creator = ctx.addresses.validate(env.signer, field="creator address")
    post_id = _as_id(payload, "post_id")

    post = update_post(
        st,
        post_id,
        actor=creator,
        title=_as_str(payload.get("title")),
        body=_as_str(payload.get("body")),
        tags=_as_str_list(payload.get("tags")),
        content_blob_id=_as_str(payload.get("content_blob_id")),
        media_blob_ids=_as_str_list(payload.get("media_blob_ids")),
        updated_at=ctx.block_time,
    )
    ctx.events.emit("post_updated", id=post.id, creator=post.creator, updated_at=post.updated_at)
    return {"applied": "BLOG_POST_UPDATE", "post_id": post.id}


def _apply_post_delete(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    creator = ctx.addresses.validate(env.signer, field="creator address")
    post_id = _as_id(payload, "post_id")

    post = delete_post(st, post_id, actor=creator, deleted_at=ctx.block_time)
    ctx.events.emit("post_deleted", id=post.id, creator=post.creator, deleted_at=post.deleted_at)
    return {"applied": "BLOG_POST_DELETE", "post_id": post.id}


def _apply_post_like(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    liker = ctx.addresses.validate(env.signer, field="liker address")
    post_id = _as_id(payload, "post_id")

    post = like_post(st, post_id, liker=liker)
    ctx.events.emit("post_liked", id=post.id, liker=liker, likes=post.likes)
    return {"applied": "BLOG_POST_LIKE", "post_id": post.id, "likes": post.likes}


POST_TX_TYPES: Set[str] = {
    "BLOG_POST_CREATE",
    "BLOG_POST_UPDATE",
    "BLOG_POST_DELETE",
    "BLOG_POST_LIKE",
}


def apply_posts(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Optional[Json]:
    """Apply post txs. Returns meta if handled, else None."""
    t = str(env.tx_type or "").strip()
    if t not in POST_TX_TYPES:
        return None

    if t == "BLOG_POST_CREATE":
        return _apply_post_create(st, env, ctx)
    if t == "BLOG_POST_UPDATE":
        return _apply_post_update(st, env, ctx)
    if t == "BLOG_POST_DELETE":
        return _apply_post_delete(st, env, ctx)
    if t == "BLOG_POST_LIKE":
        return _apply_post_like(st, env, ctx)

    return None
