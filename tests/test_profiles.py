from __future__ import annotations

import pytest

from blogchain.ledger.state import BlogState
from blogchain.runtime import queries
from blogchain.runtime.apply import profiles
from blogchain.runtime.errors import ApplyError
from blogchain.runtime.kv_store import MemoryKVStore

A1 = "blog1alice000"
A2 = "blog1bob0000"
A3 = "blog1carol000"


@pytest.fixture()
def st() -> BlogState:
    return BlogState(MemoryKVStore())


def _mk(st: BlogState, address: str, username: str) -> None:
    profiles.create_profile(st, address=address, username=username, created_at=1)


def test_create_and_lookup_profile(st: BlogState) -> None:
    p = profiles.create_profile(
        st, address=A1, username="Alice_01", display_name="Alice", bio="hi", website="https://alice.dev", created_at=7
    )
    assert p.username == "alice_01"
    assert (p.followers, p.following, p.post_count, p.verified) == (0, 0, 0, False)

    assert profiles.get_profile(st, A1).display_name == "Alice"
    assert profiles.get_profile_by_username(st, "ALICE_01").address == A1

    with pytest.raises(ApplyError) as e:
        profiles.get_profile(st, A2)
    assert e.value.code == "not_found"
    with pytest.raises(ApplyError) as e:
        profiles.get_profile_by_username(st, "nobody")
    assert e.value.code == "not_found"


def test_username_uniqueness_is_case_folded(st: BlogState) -> None:
    _mk(st, A1, "alice")

    with pytest.raises(ApplyError) as e:
        _mk(st, A2, "alice")
    assert e.value.code == "already_exists"

    with pytest.raises(ApplyError) as e:
        _mk(st, A2, "ALICE")
    assert e.value.code == "already_exists"

    with pytest.raises(ApplyError) as e:
        _mk(st, A1, "another")
    assert e.value.code == "already_exists"


def test_update_profile_keeps_username_and_counters(st: BlogState) -> None:
    _mk(st, A1, "alice")
    _mk(st, A2, "bob")
    profiles.follow(st, A2, A1)

    p = profiles.update_profile(st, A1, display_name="A", bio="b", avatar_url="", website="", updated_at=9)
    assert (p.username, p.display_name, p.followers, p.created_at, p.updated_at) == ("alice", "A", 1, 1, 9)

    with pytest.raises(ApplyError) as e:
        profiles.update_profile(st, A3, display_name="", bio="", avatar_url="", website="", updated_at=1)
    assert e.value.code == "not_found"


def test_follow_then_unfollow_restores_counters(st: BlogState) -> None:
    _mk(st, A1, "alice")
    _mk(st, A2, "bob")

    profiles.follow(st, A1, A2)
    assert profiles.is_following(st, A1, A2)
    assert not profiles.is_following(st, A2, A1)
    assert profiles.get_profile(st, A1).following == 1
    assert profiles.get_profile(st, A2).followers == 1
    assert profiles.get_following(st, A1) == [A2]
    assert profiles.get_followers(st, A2) == [A1]

    with pytest.raises(ApplyError) as e:
        profiles.follow(st, A1, A2)
    assert e.value.code == "already_exists"

    profiles.unfollow(st, A1, A2)
    assert profiles.get_profile(st, A1).following == 0
    assert profiles.get_profile(st, A2).followers == 0
    assert profiles.get_following(st, A1) == []
    assert profiles.get_followers(st, A2) == []

    with pytest.raises(ApplyError) as e:
        profiles.unfollow(st, A1, A2)
    assert e.value.code == "not_found"


def test_follow_requires_both_profiles_and_distinct_parties(st: BlogState) -> None:
    _mk(st, A1, "alice")

    with pytest.raises(ApplyError) as e:
        profiles.follow(st, A1, A1)
    assert e.value.code == "invalid_argument"

    with pytest.raises(ApplyError) as e:
        profiles.follow(st, A1, A2)
    assert e.value.code == "not_found"

    with pytest.raises(ApplyError) as e:
        profiles.follow(st, A2, A1)
    assert e.value.code == "not_found"

    with pytest.raises(ApplyError) as e:
        profiles.unfollow(st, A1, A1)
    assert e.value.code == "invalid_argument"


def test_followers_of_many(st: BlogState) -> None:
    _mk(st, A1, "alice")
    _mk(st, A2, "bob")
    _mk(st, A3, "carol")

    profiles.follow(st, A2, A1)
    profiles.follow(st, A3, A1)
    profiles.follow(st, A1, A3)

    assert sorted(profiles.get_followers(st, A1)) == sorted([A2, A3])
    assert profiles.get_profile(st, A1).followers == 2
    assert profiles.get_profile(st, A1).following == 1


def test_post_count_helpers_are_best_effort(st: BlogState) -> None:
    profiles.increment_post_count(st, A1)
    profiles.decrement_post_count(st, A1)
    assert st.get_profile(A1) is None

    _mk(st, A1, "alice")
    profiles.decrement_post_count(st, A1)
    assert profiles.get_profile(st, A1).post_count == 0
    profiles.increment_post_count(st, A1)
    assert profiles.get_profile(st, A1).post_count == 1


@pytest.mark.parametrize("username", ["ab", "a" * 21, "has space", "dash-name", ""])
def test_invalid_usernames(username: str) -> None:
    with pytest.raises(ApplyError) as e:
        profiles.validate_username(username)
    assert e.value.code == "invalid_argument"


def test_profile_field_limits() -> None:
    ok = {"display_name": "", "bio": "", "avatar_url": "", "website": ""}
    profiles.validate_profile_fields(**ok)
    profiles.validate_profile_fields(**{**ok, "website": "example.com/blog"})

    for bad in (
        {"display_name": "x" * 51},
        {"bio": "x" * 501},
        {"avatar_url": "x" * 501},
        {"website": "not a url"},
        {"website": "https://" + "a" * 200 + ".com"},
    ):
        with pytest.raises(ApplyError) as e:
            profiles.validate_profile_fields(**{**ok, **bad})
        assert e.value.code == "invalid_argument"


def test_is_following_query_with_unencodable_follower(st: BlogState) -> None:
    _mk(st, A1, "alice")
    assert queries.is_following(st, "blog1\x00x", A1)["is_following"] is False
