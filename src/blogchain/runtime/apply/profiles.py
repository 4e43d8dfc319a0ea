# src/blogchain/runtime/apply/profiles.py
from __future__ import annotations

"""
Profile and social-graph semantics.

Covers:
- BLOG_PROFILE_CREATE / BLOG_PROFILE_UPDATE
- BLOG_FOLLOW / BLOG_UNFOLLOW

Usernames are case-folded to lowercase before they are stored or looked up;
the username -> address table is written in the same transaction as the
profile so the two never disagree. Usernames are immutable after creation.

Follow edges are stored twice: (follower, following) for "who do I follow"
and (following, follower) for "who follows me", so both lookups are prefix
scans.
"""

import re
from typing import Any, Dict, List, Optional, Set

from blogchain.ledger import constants as C
from blogchain.ledger.state import BlogState
from blogchain.ledger.types import Profile
from blogchain.runtime.errors import ApplyError
from blogchain.runtime.pagination import PageRequest, PageResponse, paginate
from blogchain.runtime.tx_admission_types import TxContext, TxEnvelope

Json = Dict[str, Any]

_USERNAME_RE = re.compile(C.USERNAME_PATTERN)
_WEBSITE_RE = re.compile(C.WEBSITE_PATTERN)


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return x if isinstance(x, str) else ""


def normalize_username(username: str) -> str:
    return str(username or "").strip().lower()


# ---------------------------------------------------------------------------
# Field validation (message level)
# ---------------------------------------------------------------------------


def validate_username(username: str) -> str:
    if not _USERNAME_RE.match(username or ""):
        raise ApplyError.invalid_argument(
            "invalid username format (3-20 chars, alphanumeric and underscore only)", {"username": username}
        )
    return username


def validate_profile_fields(*, display_name: str, bio: str, avatar_url: str, website: str) -> None:
    if len(display_name) > C.MAX_DISPLAY_NAME_LENGTH:
        raise ApplyError.invalid_argument(f"display name too long (max {C.MAX_DISPLAY_NAME_LENGTH} characters)")
    if len(bio) > C.MAX_BIO_LENGTH:
        raise ApplyError.invalid_argument(f"bio too long (max {C.MAX_BIO_LENGTH} characters)")
    if avatar_url and len(avatar_url) > C.MAX_AVATAR_URL_LENGTH:
        raise ApplyError.invalid_argument(f"avatar URL too long (max {C.MAX_AVATAR_URL_LENGTH} characters)")
    if website:
        if len(website) > C.MAX_WEBSITE_LENGTH:
            raise ApplyError.invalid_argument(f"website URL too long (max {C.MAX_WEBSITE_LENGTH} characters)")
        if not _WEBSITE_RE.match(website):
            raise ApplyError.invalid_argument("invalid website URL format", {"website": website})


# ---------------------------------------------------------------------------
# Service: profiles
# ---------------------------------------------------------------------------


def create_profile(
    st: BlogState,
    *,
    address: str,
    username: str,
    display_name: str = "",
    bio: str = "",
    avatar_url: str = "",
    website: str = "",
    created_at: int = 0,
) -> Profile:
    if st.profiles.has(address):
        raise ApplyError.already_exists(f"profile already exists for address {address}", {"address": address})

    uname = normalize_username(username)
    if st.usernames.get(uname) is not None:
        raise ApplyError.already_exists(f"username {uname} is already taken", {"username": uname})

    profile = Profile(
        address=address,
        username=uname,
        display_name=display_name,
        bio=bio,
        avatar_url=avatar_url,
        website=website,
        created_at=int(created_at),
        updated_at=int(created_at),
    )
    st.profiles.set(address, profile)
    st.usernames.set(uname, address)
    return profile


def get_profile(st: BlogState, address: str) -> Profile:
    profile = st.get_profile(address)
    if profile is None:
        raise ApplyError.not_found(f"profile not found for address {address}", {"address": address})
    return profile


def get_profile_by_username(st: BlogState, username: str) -> Profile:
    uname = normalize_username(username)
    address = st.usernames.get(uname)
    if address is None:
        raise ApplyError.not_found(f"profile not found for username {uname}", {"username": uname})
    return get_profile(st, address)


def update_profile(
    st: BlogState,
    address: str,
    *,
    display_name: str,
    bio: str,
    avatar_url: str,
    website: str,
    updated_at: int,
) -> Profile:
    profile = get_profile(st, address)
    profile.display_name = display_name
    profile.bio = bio
    profile.avatar_url = avatar_url
    profile.website = website
    profile.updated_at = int(updated_at)
    st.profiles.set(address, profile)
    return profile


def list_profiles(st: BlogState, page: Optional[PageRequest] = None) -> PageResponse[Profile]:
    return paginate(((raw_key, p) for raw_key, _addr, p in st.profiles.iterate()), page)


def increment_post_count(st: BlogState, address: str) -> None:
    """Best-effort: posting does not require a profile."""
    profile = st.get_profile(address)
    if profile is None:
        return
    profile.post_count += 1
    st.profiles.set(address, profile)


def decrement_post_count(st: BlogState, address: str) -> None:
    profile = st.get_profile(address)
    if profile is None or profile.post_count <= 0:
        return
    profile.post_count -= 1
    st.profiles.set(address, profile)


# ---------------------------------------------------------------------------
# Service: social graph
# ---------------------------------------------------------------------------


def is_following(st: BlogState, follower: str, following: str) -> bool:
    return st.follows.has((follower, following))


def follow(st: BlogState, follower: str, following: str) -> None:
    if follower == following:
        raise ApplyError.invalid_argument("cannot follow yourself", {"address": follower})

    follower_profile = st.get_profile(follower)
    if follower_profile is None:
        raise ApplyError.not_found("follower profile not found", {"address": follower})
    following_profile = st.get_profile(following)
    if following_profile is None:
        raise ApplyError.not_found("following profile not found", {"address": following})

    if is_following(st, follower, following):
        raise ApplyError.already_exists("already following this user", {"follower": follower, "following": following})

    st.follows.add((follower, following))
    st.followers.add((following, follower))

    following_profile.followers += 1
    st.profiles.set(following, following_profile)
    follower_profile.following += 1
    st.profiles.set(follower, follower_profile)


def unfollow(st: BlogState, follower: str, following: str) -> None:
    if follower == following:
        raise ApplyError.invalid_argument("cannot unfollow yourself", {"address": follower})
    if not is_following(st, follower, following):
        raise ApplyError.not_found("not following this user", {"follower": follower, "following": following})

    st.follows.remove((follower, following))
    st.followers.remove((following, follower))

    following_profile = st.get_profile(following)
    if following_profile is not None and following_profile.followers > 0:
        following_profile.followers -= 1
        st.profiles.set(following, following_profile)

    follower_profile = st.get_profile(follower)
    if follower_profile is not None and follower_profile.following > 0:
        follower_profile.following -= 1
        st.profiles.set(follower, follower_profile)


def get_following(st: BlogState, address: str) -> List[str]:
    return [k[1] for _raw, k in st.follows.iterate_prefixed(address)]


def get_followers(st: BlogState, address: str) -> List[str]:
    return [k[1] for _raw, k in st.followers.iterate_prefixed(address)]


# ---------------------------------------------------------------------------
# Tx handlers
# ---------------------------------------------------------------------------


def _profile_fields(payload: Json) -> Json:
    fields = {
        "display_name": _as_str(payload.get("display_name")),
        "bio": _as_str(payload.get("bio")),
        "avatar_url": _as_str(payload.get("avatar_url")),
        "website": _as_str(payload.get("website")),
    }
    validate_profile_fields(**fields)
    return fields


def _apply_profile_create(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    address = ctx.addresses.validate(env.signer, field="creator address")
    username = validate_username(_as_str(payload.get("username")))
    fields = _profile_fields(payload)

    profile = create_profile(st, address=address, username=username, created_at=ctx.block_time, **fields)
    ctx.events.emit("profile_created", address=address, username=profile.username)
    return {"applied": "BLOG_PROFILE_CREATE", "address": address, "username": profile.username}


def _apply_profile_update(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    address = ctx.addresses.validate(env.signer, field="creator address")
    fields = _profile_fields(payload)

    update_profile(st, address, updated_at=ctx.block_time, **fields)
    ctx.events.emit("profile_updated", address=address)
    return {"applied": "BLOG_PROFILE_UPDATE", "address": address}


def _follow_target(payload: Json, ctx: TxContext) -> str:
    target = _as_str(payload.get("following") or payload.get("target")).strip()
    return ctx.addresses.validate(target, field="following address")


def _apply_follow(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    follower = ctx.addresses.validate(env.signer, field="follower address")
    following = _follow_target(payload, ctx)

    follow(st, follower, following)
    ctx.events.emit("user_followed", follower=follower, following=following)
    return {"applied": "BLOG_FOLLOW", "follower": follower, "following": following}


def _apply_unfollow(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Json:
    payload = _as_dict(env.payload)
    follower = ctx.addresses.validate(env.signer, field="follower address")
    following = _follow_target(payload, ctx)

    unfollow(st, follower, following)
    ctx.events.emit("user_unfollowed", follower=follower, following=following)
    return {"applied": "BLOG_UNFOLLOW", "follower": follower, "following": following}


PROFILE_TX_TYPES: Set[str] = {
    "BLOG_PROFILE_CREATE",
    "BLOG_PROFILE_UPDATE",
    "BLOG_FOLLOW",
    "BLOG_UNFOLLOW",
}


def apply_profiles(st: BlogState, env: TxEnvelope, ctx: TxContext) -> Optional[Json]:
    t = str(env.tx_type or "").strip()
    if t not in PROFILE_TX_TYPES:
        return None

    if t == "BLOG_PROFILE_CREATE":
        return _apply_profile_create(st, env, ctx)
    if t == "BLOG_PROFILE_UPDATE":
        return _apply_profile_update(st, env, ctx)
    if t == "BLOG_FOLLOW":
        return _apply_follow(st, env, ctx)
    if t == "BLOG_UNFOLLOW":
        return _apply_unfollow(st, env, ctx)

    return None
