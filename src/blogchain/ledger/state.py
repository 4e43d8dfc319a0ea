from __future__ import annotations

from typing import Optional

from blogchain.ledger import constants as C
from blogchain.ledger.types import Comment, Post, Profile
from blogchain.runtime.kv_store import KVStore
from blogchain.runtime.sequence import Sequence
from blogchain.runtime.store_collections import (
    KeySet,
    Map,
    PairKeyCodec,
    StringKey,
    StringMap,
    Uint64Key,
)


class BlogState:
    """All blog collections bound to one KVStore.

    Build one per transaction over a StagedKVStore so primary records and
    their secondary indexes are committed (or dropped) together. Nothing
    here enforces invariants; that is the services' job.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

        # Posts
        self.posts: Map[int, Post] = Map(
            store, C.PREFIX_POSTS, "posts", Uint64Key, to_json=Post.to_json, from_json=Post.from_json
        )
        self.active_posts: KeySet[int] = KeySet(store, C.PREFIX_ACTIVE_POSTS, "active_posts", Uint64Key)
        self.deleted_posts: KeySet[int] = KeySet(store, C.PREFIX_DELETED_POSTS, "deleted_posts", Uint64Key)
        self.post_seq = Sequence(store, C.PREFIX_POST_SEQ, "post_seq", start=C.POST_ID_START)
        # (post_id, liker)
        self.post_likes = KeySet(store, C.PREFIX_POST_LIKES, "post_likes", PairKeyCodec(Uint64Key, StringKey))

        # Comments
        self.comments: Map[int, Comment] = Map(
            store, C.PREFIX_COMMENTS, "comments", Uint64Key, to_json=Comment.to_json, from_json=Comment.from_json
        )
        self.active_comments: KeySet[int] = KeySet(store, C.PREFIX_ACTIVE_COMMENTS, "active_comments", Uint64Key)
        # (post_id, comment_id) and (parent_id, comment_id)
        self.post_comments = KeySet(store, C.PREFIX_POST_COMMENTS, "post_comments", PairKeyCodec(Uint64Key, Uint64Key))
        self.child_comments = KeySet(
            store, C.PREFIX_CHILD_COMMENTS, "child_comments", PairKeyCodec(Uint64Key, Uint64Key)
        )
        self.comment_seq = Sequence(store, C.PREFIX_COMMENT_SEQ, "comment_seq", start=C.COMMENT_ID_START)
        # (comment_id, liker)
        self.comment_likes = KeySet(
            store, C.PREFIX_COMMENT_LIKES, "comment_likes", PairKeyCodec(Uint64Key, StringKey)
        )

        # Profiles / social graph
        self.profiles: Map[str, Profile] = Map(
            store, C.PREFIX_PROFILES, "profiles", StringKey, to_json=Profile.to_json, from_json=Profile.from_json
        )
        self.usernames = StringMap(store, C.PREFIX_USERNAMES, "usernames")
        # (follower, following) and the reverse (following, follower)
        self.follows = KeySet(store, C.PREFIX_FOLLOWS, "follows", PairKeyCodec(StringKey, StringKey))
        self.followers = KeySet(store, C.PREFIX_FOLLOWERS, "followers", PairKeyCodec(StringKey, StringKey))

    # Convenience lookups used by several services.

    def get_post(self, post_id: int) -> Optional[Post]:
        return self.posts.get(int(post_id))

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        return self.comments.get(int(comment_id))

    def get_profile(self, address: str) -> Optional[Profile]:
        return self.profiles.get(str(address))
