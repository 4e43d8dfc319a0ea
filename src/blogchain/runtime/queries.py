# src/blogchain/runtime/queries.py
from __future__ import annotations

"""
Read-only queries over committed blog state.

These sit on top of the services but apply read-side policy: a soft-deleted
comment is reported as not found here even though the service layer still
returns it, and a thread request with max_depth 0 means "use the default".
Results are plain JSON so the HTTP layer can return them unchanged.
"""

from typing import Any, Dict, List, Optional

from blogchain.ledger import constants as C
from blogchain.ledger.state import BlogState
from blogchain.ledger.types import Comment
from blogchain.runtime.apply import comments, posts, profiles
from blogchain.runtime.errors import ApplyError
from blogchain.runtime.pagination import PageRequest

Json = Dict[str, Any]


def _id(v: int, field: str) -> int:
    # Ids come straight from URLs; the store only holds uint64 ids.
    i = int(v)
    if i < 0 or i > C.MAX_ID:
        raise ApplyError.invalid_argument(f"{field} out of range", {field: v})
    return i


def _live_comment(st: BlogState, comment_id: int) -> Comment:
    comment = comments.get_comment(st, comment_id)
    if comment.deleted:
        raise ApplyError.not_found(f"comment not found: {comment_id}", {"comment_id": comment_id})
    return comment


# Posts


def get_post(st: BlogState, post_id: int) -> Json:
    return posts.get_post(st, _id(post_id, "post_id")).to_json()


def list_active_posts(st: BlogState, page: Optional[PageRequest] = None) -> Json:
    return posts.list_active_posts(st, page).to_json(lambda p: p.to_json())


def has_user_liked_post(st: BlogState, post_id: int, liker: str) -> Json:
    pid = _id(post_id, "post_id")
    return {"post_id": pid, "liker": liker, "liked": posts.has_user_liked_post(st, pid, liker)}


# Comments


def get_comment(st: BlogState, comment_id: int) -> Json:
    return _live_comment(st, _id(comment_id, "comment_id")).to_json()


def comment_thread(st: BlogState, comment_id: int, max_depth: int = 0) -> Json:
    comment_id = _id(comment_id, "comment_id")
    depth = int(max_depth) if int(max_depth) > 0 else C.DEFAULT_THREAD_DEPTH
    _live_comment(st, comment_id)
    return comments.build_thread(st, comment_id, depth).to_json()


def list_comments(st: BlogState, post_id: int, parent_id: int = 0, page: Optional[PageRequest] = None) -> Json:
    post_id, parent_id = _id(post_id, "post_id"), _id(parent_id, "parent_id")
    return comments.list_comments_page(st, post_id, parent_id, page).to_json(lambda c: c.to_json())


# Profiles


def get_profile(st: BlogState, address: str) -> Json:
    return profiles.get_profile(st, address).to_json()


def get_profile_by_username(st: BlogState, username: str) -> Json:
    return profiles.get_profile_by_username(st, username).to_json()


def list_profiles(st: BlogState, page: Optional[PageRequest] = None) -> Json:
    return profiles.list_profiles(st, page).to_json(lambda p: p.to_json())


def is_following(st: BlogState, follower: str, following: str) -> Json:
    if "\x00" in follower:
        # Cannot be encoded as a key prefix, so no such edge exists.
        return {"follower": follower, "following": following, "is_following": False}
    return {"follower": follower, "following": following, "is_following": profiles.is_following(st, follower, following)}


def get_followers(st: BlogState, address: str) -> List[str]:
    profiles.get_profile(st, address)
    return profiles.get_followers(st, address)


def get_following(st: BlogState, address: str) -> List[str]:
    profiles.get_profile(st, address)
    return profiles.get_following(st, address)
