# src/blogchain/ledger/constants.py
from __future__ import annotations

"""Blog state limits and key layout."""

# Comment threading: a parent at this depth cannot be replied to.
MAX_COMMENT_DEPTH: int = 5

# Thread queries asking for depth 0 get this instead.
DEFAULT_THREAD_DEPTH: int = 10

MAX_COMMENT_LENGTH: int = 5000

# Profile field limits
USERNAME_PATTERN: str = r"^[a-zA-Z0-9_]{3,20}$"
WEBSITE_PATTERN: str = r"^(https?://)?([\da-z\.-]+)\.([a-z\.]{2,6})([/\w \.-]*)/?$"
MAX_DISPLAY_NAME_LENGTH: int = 50
MAX_BIO_LENGTH: int = 500
MAX_AVATAR_URL_LENGTH: int = 500
MAX_WEBSITE_LENGTH: int = 200

# Sequences. Comment ids start at 1 so parent_id == 0 always means "root".
# Nothing refers to a post by a sentinel id, so posts keep the zero-based count.
POST_ID_START: int = 0
COMMENT_ID_START: int = 1

# Ids are stored as 8-byte big-endian keys.
MAX_ID: int = 2**64 - 1

# One prefix per collection. Never reuse or reorder these bytes.
PREFIX_POSTS: bytes = b"\x01"
PREFIX_ACTIVE_POSTS: bytes = b"\x02"
PREFIX_DELETED_POSTS: bytes = b"\x03"
PREFIX_POST_SEQ: bytes = b"\x04"
PREFIX_POST_LIKES: bytes = b"\x05"

PREFIX_COMMENTS: bytes = b"\x10"
PREFIX_ACTIVE_COMMENTS: bytes = b"\x11"
PREFIX_POST_COMMENTS: bytes = b"\x12"
PREFIX_CHILD_COMMENTS: bytes = b"\x13"
PREFIX_COMMENT_SEQ: bytes = b"\x14"
PREFIX_COMMENT_LIKES: bytes = b"\x15"

PREFIX_PROFILES: bytes = b"\x20"
PREFIX_USERNAMES: bytes = b"\x21"
PREFIX_FOLLOWS: bytes = b"\x22"
PREFIX_FOLLOWERS: bytes = b"\x23"
