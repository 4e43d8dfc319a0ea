"""blogchain.ledger.types

Record types for the blog state.

Each record serializes to a flat JSON object (see store_collections.Map).
from_json() is lenient about missing keys so older records keep loading;
it is strict about types that would otherwise coerce silently (bool as int).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

Json = Dict[str, Any]


def _coerce_int(v: Any, *, field: str, default: int = 0) -> int:
    if v is None:
        return default
    try:
        # bool is an int subclass; disallow it explicitly
        if isinstance(v, bool):
            raise ValueError("bool is not a valid int")
        return int(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f"schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e


def _coerce_str(v: Any) -> str:
    return "" if v is None else str(v)


def _coerce_str_list(v: Any) -> List[str]:
    if not isinstance(v, list):
        return []
    return [str(x) for x in v]


@dataclass
class Post:
    id: int
    creator: str
    title: str = ""
    body: str = ""
    tags: List[str] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0
    likes: int = 0
    comment_count: int = 0
    deleted: bool = False
    deleted_at: int = 0
    content_blob_id: str = ""
    media_blob_ids: List[str] = field(default_factory=list)

    def to_json(self) -> Json:
        return asdict(self)

    @staticmethod
    def from_json(j: Json) -> "Post":
        return Post(
            id=_coerce_int(j.get("id"), field="id"),
            creator=_coerce_str(j.get("creator")),
            title=_coerce_str(j.get("title")),
            body=_coerce_str(j.get("body")),
            tags=_coerce_str_list(j.get("tags")),
            created_at=_coerce_int(j.get("created_at"), field="created_at"),
            updated_at=_coerce_int(j.get("updated_at"), field="updated_at"),
            likes=_coerce_int(j.get("likes"), field="likes"),
            comment_count=_coerce_int(j.get("comment_count"), field="comment_count"),
            deleted=bool(j.get("deleted", False)),
            deleted_at=_coerce_int(j.get("deleted_at"), field="deleted_at"),
            content_blob_id=_coerce_str(j.get("content_blob_id")),
            media_blob_ids=_coerce_str_list(j.get("media_blob_ids")),
        )


@dataclass
class Comment:
    id: int
    post_id: int
    creator: str
    content: str = ""
    parent_id: int = 0
    depth: int = 0
    created_at: int = 0
    updated_at: int = 0
    likes: int = 0
    deleted: bool = False
    deleted_at: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent_id == 0

    def to_json(self) -> Json:
        return asdict(self)

    @staticmethod
    def from_json(j: Json) -> "Comment":
        return Comment(
            id=_coerce_int(j.get("id"), field="id"),
            post_id=_coerce_int(j.get("post_id"), field="post_id"),
            creator=_coerce_str(j.get("creator")),
            content=_coerce_str(j.get("content")),
            parent_id=_coerce_int(j.get("parent_id"), field="parent_id"),
            depth=_coerce_int(j.get("depth"), field="depth"),
            created_at=_coerce_int(j.get("created_at"), field="created_at"),
            updated_at=_coerce_int(j.get("updated_at"), field="updated_at"),
            likes=_coerce_int(j.get("likes"), field="likes"),
            deleted=bool(j.get("deleted", False)),
            deleted_at=_coerce_int(j.get("deleted_at"), field="deleted_at"),
        )


@dataclass
class CommentThread:
    comment: Comment
    replies: List["CommentThread"] = field(default_factory=list)

    def to_json(self) -> Json:
        return {"comment": self.comment.to_json(), "replies": [r.to_json() for r in self.replies]}

    def size(self) -> int:
        n = 0
        stack = [self]
        while stack:
            node = stack.pop()
            n += 1
            stack.extend(node.replies)
        return n


@dataclass
class Profile:
    address: str
    username: str
    display_name: str = ""
    bio: str = ""
    avatar_url: str = ""
    website: str = ""
    followers: int = 0
    following: int = 0
    post_count: int = 0
    verified: bool = False
    created_at: int = 0
    updated_at: int = 0

    def to_json(self) -> Json:
        return asdict(self)

    @staticmethod
    def from_json(j: Json) -> "Profile":
        return Profile(
            address=_coerce_str(j.get("address")),
            username=_coerce_str(j.get("username")),
            display_name=_coerce_str(j.get("display_name")),
            bio=_coerce_str(j.get("bio")),
            avatar_url=_coerce_str(j.get("avatar_url")),
            website=_coerce_str(j.get("website")),
            followers=_coerce_int(j.get("followers"), field="followers"),
            following=_coerce_int(j.get("following"), field="following"),
            post_count=_coerce_int(j.get("post_count"), field="post_count"),
            verified=bool(j.get("verified", False)),
            created_at=_coerce_int(j.get("created_at"), field="created_at"),
            updated_at=_coerce_int(j.get("updated_at"), field="updated_at"),
        )
