# src/blogchain/runtime/apply/comments.py
from __future__ import annotations

"""
Threaded comment semantics.

A comment is either a root (parent_id == 0, depth 0) or a reply to a live
comment on the same post (depth = parent.depth + 1). A parent already at
MAX_COMMENT_DEPTH cannot be replied to, so the deepest reachable depth is
MAX_COMMENT_DEPTH itself.

Indexes written on create:
- active_comments       comment_id
- post_comments         (post_id, comment_id)
- child_comments        (parent_id, comment_id)   replies only

Delete is soft and one-way. It only drops the id from active_comments; the
post/child indexes keep the entry and readers filter on the record's own
deleted flag.

Tx types:
- BLOG_COMMENT_CREATE
- BLOG_COMMENT_UPDATE
- BLOG_COMMENT_DELETE
- BLOG_COMMENT_LIKE
"""

from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from blogchain.ledger import constants as C
from blogchain.ledger.state import BlogState
from blogchain.ledger.types import Comment, CommentThread
from blogchain.runtime.apply.posts import get_post
from blogchain.runtime.errors import INVALID_PAYLOAD, ApplyError
from blogchain.runtime.pagination import PageRequest, PageResponse, paginate
from blogchain.runtime.tx_admission_types import TxContext, TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return x if isinstance(x, str) else ""


def _as_id(payload: Json, key: str, *, default: Optional[int] = None) -> int:
    v = payload.get(key)
    if v is None and default is not None:
        return default
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


def validate_content(content: str) -> str:
    if len(content) == 0:
        raise ApplyError.invalid_argument("comment content cannot be empty")
    if len(content) > C.MAX_COMMENT_LENGTH:
        raise ApplyError.invalid_argument(f"comment content too long (max {C.MAX_COMMENT_LENGTH} characters)")
    return content


# ---------------------------
# Service
# ---------------------------


def create_comment(
    st: BlogState,
    *,
    post_id: int,
    creator: str,
    content: str,
    parent_id: int = 0,
    created_at: int = 0,
) -> Comment:
    post = get_post(st, post_id)
    if post.deleted:
        raise ApplyError.invalid_state("cannot comment on deleted post", {"post_id": post_id})

    if parent_id:
        parent = st.get_comment(parent_id)
        if parent is None:
            raise ApplyError.not_found("parent comment not found", {"parent_id": parent_id})
        if parent.deleted:
            raise ApplyError.invalid_state("cannot reply to deleted comment", {"parent_id": parent_id})
        if parent.depth >= C.MAX_COMMENT_DEPTH:
            raise ApplyError.invalid_state(
                f"maximum comment depth ({C.MAX_COMMENT_DEPTH}) reached", {"parent_id": parent_id, "depth": parent.depth}
            )
        if parent.post_id != post.id:
            raise ApplyError.invalid_argument(
                "reply must be on the same post as parent", {"post_id": post.id, "parent_post_id": parent.post_id}
            )
        depth = parent.depth + 1
    else:
        depth = 0

    comment_id = st.comment_seq.next()
    comment = Comment(
        id=comment_id,
        post_id=post.id,
        parent_id=int(parent_id),
        creator=creator,
        content=content,
        depth=depth,
        created_at=int(created_at),
        updated_at=int(created_at),
    )
    st.comments.set(comment_id, comment)

    st.active_comments.add(comment_id)
    st.post_comments.add((post.id, comment_id))
    if parent_id:
        st.child_comments.add((int(parent_id), comment_id))

    post.comment_count += 1
    st.posts.set(post.id, post)
    return comment


def get_comment(st: BlogState, comment_id: int) -> Comment:
    comment = st.get_comment(comment_id)
    if comment is None:
        raise ApplyError.not_found(f"comment not found: {comment_id}", {"comment_id": comment_id})
    return comment


def update_comment(st: BlogState, comment_id: int, *, actor: str, content: str, updated_at: int = 0) -> Comment:
    """Replace content only; post_id, parent_id, depth, likes and created_at are kept."""
    comment = get_comment(st, comment_id)
    if comment.creator != actor:
        raise ApplyError.unauthorized("only comment creator can update", {"comment_id": comment_id})
    if comment.deleted:
        raise ApplyError.invalid_state("cannot update deleted comment", {"comment_id": comment_id})

    comment.content = content
    comment.updated_at = int(updated_at)
    st.comments.set(comment.id, comment)
    return comment


def delete_comment(st: BlogState, comment_id: int, *, actor: str, deleted_at: int) -> Comment:
    comment = get_comment(st, comment_id)
    if comment.creator != actor:
        raise ApplyError.unauthorized("only comment creator can delete", {"comment_id": comment_id})
    if comment.deleted:
        raise ApplyError.invalid_state("comment already deleted", {"comment_id": comment_id})

    comment.deleted = True
    comment.deleted_at = int(deleted_at)
    st.comments.set(comment.id, comment)
    st.active_comments.remove(comment.id)

    # Missing or deleted post: nothing to decrement.
    post = st.get_post(comment.post_id)
    if post is not None and not post.deleted and post.comment_count > 0:
        post.comment_count -= 1
        st.posts.set(post.id, post)
    return comment


def has_user_liked_comment(st: BlogState, comment_id: int, liker: str) -> bool:
    return st.comment_likes.has((int(comment_id), str(liker)))


def like_comment(st: BlogState, comment_id: int, *, liker: str) -> Comment:
    comment = get_comment(st, comment_id)
    if comment.deleted:
        raise ApplyError.invalid_state("cannot like deleted comment", {"comment_id": comment_id})
    if has_user_liked_comment(st, comment_id, liker):
        raise ApplyError.already_exists("comment already liked by user", {"comment_id": comment_id, "liker": liker})

    comment.likes += 1
    st.comments.set(comment.id, comment)
    st.comment_likes.add((comment.id, liker))
    return comment


def _iter_comments(st: BlogState, post_id: int, parent_id: int) -> Iterator[Tuple[bytes, Comment]]:
    if parent_id == 0:
        for raw_key, (_pid, cid) in st.post_comments.iterate_prefixed(int(post_id)):
            c = st.get_comment(cid)
            if c is None or c.deleted or c.parent_id != 0:
                continue
            yield raw_key, c
    else:
        for raw_key, (_parent, cid) in st.child_comments.iterate_prefixed(int(parent_id)):
            c = st.get_comment(cid)
            if c is None or c.deleted:
                continue
            yield raw_key, c


def list_comments(st: BlogState, post_id: int, parent_id: int = 0) -> List[Comment]:
    """Live top-level comments of a post (parent_id == 0) or live replies to parent_id.

    Index (creation) order.
    """
    return [c for _k, c in _iter_comments(st, post_id, parent_id)]


def list_comments_page(
    st: BlogState, post_id: int, parent_id: int = 0, page: Optional[PageRequest] = None
) -> PageResponse[Comment]:
    get_post(st, post_id)
    return paginate(_iter_comments(st, post_id, parent_id), page)


def build_thread(st: BlogState, root_id: int, max_depth: int) -> CommentThread:
    """Fetch a comment and its live descendants.

    A node's replies are expanded only while node.depth < max_depth; with
    max_depth == 0 the root comes back alone. Deleted or unreadable children
    are dropped together with their subtree. Uses an explicit stack so deep
    threads never hit the recursion limit.
    """
    root = CommentThread(comment=get_comment(st, root_id))
    limit = int(max_depth)

    stack: List[CommentThread] = [root]
    while stack:
        node = stack.pop()
        if limit <= 0 or node.comment.depth >= limit:
            continue
        for _raw, (_parent, child_id) in st.child_comments.iterate_prefixed(node.comment.id):
            child = st.get_comment(child_id)
            if child is None or child.deleted:
                continue
            sub = CommentThread(comment=child)
            node.replies.append(sub)
            stack.append(sub)
    return root


# ---------------------------
# Tx handlers
# ---------------------------


def _apply_comment_create(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    creator = ctx.addresses.validate(env.signer, field="creator address")
    content = validate_content(_as_str(payload.get("content")))
    post_id = _as_id(payload, "post_id")
    parent_id = _as_id(payload, "parent_id", default=0)

    comment = create_comment(
        st, post_id=post_id, parent_id=parent_id, creator=creator, content=content, created_at=ctx.block_time
    )
    ctx.events.emit(
        "comment_created", id=comment.id, post_id=comment.post_id, parent_id=comment.parent_id, creator=creator
    )
    return {"applied": "BLOG_COMMENT_CREATE", "comment_id": comment.id, "depth": comment.depth}


def _apply_comment_update(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    creator = ctx.addresses.validate(env.signer, field="creator address")
    content = validate_content(_as_str(payload.get("content")))
    comment_id = _as_id(payload, "comment_id")

    comment = update_comment(st, comment_id, actor=creator, content=content, updated_at=ctx.block_time)
    ctx.events.emit("comment_updated", id=comment.id, creator=creator, updated_at=comment.updated_at)
    return {"applied": "BLOG_COMMENT_UPDATE", "comment_id": comment.id}


def _apply_comment_delete(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    creator = ctx.addresses.validate(env.signer, field="creator address")
    comment_id = _as_id(payload, "comment_id")

    comment = delete_comment(st, comment_id, actor=creator, deleted_at=ctx.block_time)
    ctx.events.emit("comment_deleted", id=comment.id, creator=creator)
    return {"applied": "BLOG_COMMENT_DELETE", "comment_id": comment.id}


def _apply_comment_like(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    liker = ctx.addresses.validate(env.signer, field="liker address")
    comment_id = _as_id(payload, "comment_id")

    comment = like_comment(st, comment_id, liker=liker)
    ctx.events.emit("comment_liked", comment_id=comment.id, liker=liker)
    return {"applied": "BLOG_COMMENT_LIKE", "comment_id": comment.id, "likes": comment.likes}


COMMENT_TX_TYPES: Set[str] = {
    "BLOG_COMMENT_CREATE",
    "BLOG_COMMENT_UPDATE",
    "BLOG_COMMENT_DELETE",
    "BLOG_COMMENT_LIKE",
}


def apply_comments(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Optional[Json]:
    """Apply comment txs. Returns meta if handled, else None."""
    t = str(env.tx_type or "").strip()
    if t not in COMMENT_TX_TYPES:
        return None

    if t == "BLOG_COMMENT_CREATE":
        return _apply_comment_create(st, env, ctx)
    if t == "BLOG_COMMENT_UPDATE":
        return _apply_comment_update(st, env, ctx)
    if t == "BLOG_COMMENT_DELETE":
        return _apply_comment_delete(st, env, ctx)
    if t == "BLOG_COMMENT_LIKE":
        return _apply_comment_like(st, env, ctx)

    return None
