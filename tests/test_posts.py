from __future__ import annotations

import pytest

from blogchain.ledger.state import BlogState
from blogchain.runtime.apply import posts, profiles
from blogchain.runtime.errors import ApplyError
from blogchain.runtime.kv_store import MemoryKVStore
from blogchain.runtime.pagination import PageRequest

ALICE = "blog1alice000"
BOB = "blog1bob0000"


def _state() -> BlogState:
    return BlogState(MemoryKVStore())


def test_create_post_assigns_sequential_ids_from_zero() -> None:
    st = _state()
    a = posts.create_post(st, creator=ALICE, title="A", body="a", tags=["x"], created_at=100)
    b = posts.create_post(st, creator=ALICE, title="B", body="b", created_at=101)

    assert (a, b) == (0, 1)
    p = posts.get_post(st, a)
    assert p.title == "A" and p.tags == ["x"]
    assert p.created_at == p.updated_at == 100
    assert p.likes == 0 and p.comment_count == 0 and not p.deleted
    assert posts.active_post_count(st) == 2


def test_get_missing_post_is_not_found() -> None:
    with pytest.raises(ApplyError) as e:
        posts.get_post(_state(), 42)
    assert e.value.code == "not_found"


def test_update_post_checks_creator_and_keeps_counters() -> None:
    st = _state()
    pid = posts.create_post(st, creator=ALICE, title="A", body="a", created_at=1)
    posts.like_post(st, pid, liker=BOB)

    with pytest.raises(ApplyError) as e:
        posts.update_post(st, pid, actor=BOB, title="X", body="x", updated_at=2)
    assert e.value.code == "unauthorized"

    p = posts.update_post(st, pid, actor=ALICE, title="A2", body="a2", tags=["t"], updated_at=5)
    assert (p.title, p.body, p.tags, p.updated_at) == ("A2", "a2", ["t"], 5)
    assert p.created_at == 1 and p.likes == 1 and p.creator == ALICE


def test_delete_post_moves_between_indexes() -> None:
    st = _state()
    pid = posts.create_post(st, creator=ALICE, title="A", body="a")
    keep = posts.create_post(st, creator=ALICE, title="B", body="b")

    p = posts.delete_post(st, pid, actor=ALICE, deleted_at=9)
    assert p.deleted and p.deleted_at == 9
    assert not st.active_posts.has(pid)
    assert st.deleted_posts.has(pid)

    # Still readable by id, gone from listings.
    assert posts.get_post(st, pid).deleted
    assert [x.id for x in posts.list_active_posts(st).items] == [keep]
    assert posts.active_post_count(st) == 1

    with pytest.raises(ApplyError) as e:
        posts.delete_post(st, pid, actor=ALICE, deleted_at=10)
    assert e.value.code == "invalid_state"

    with pytest.raises(ApplyError) as e:
        posts.update_post(st, pid, actor=ALICE, title="x", body="x")
    assert e.value.code == "invalid_state"


def test_delete_post_by_non_creator_is_unauthorized() -> None:
    st = _state()
    pid = posts.create_post(st, creator=ALICE, title="A", body="a")
    with pytest.raises(ApplyError) as e:
        posts.delete_post(st, pid, actor=BOB, deleted_at=1)
    assert e.value.code == "unauthorized"
    assert st.active_posts.has(pid)


def test_like_post_once_per_user() -> None:
    st = _state()
    pid = posts.create_post(st, creator=ALICE, title="A", body="a")

    assert not posts.has_user_liked_post(st, pid, BOB)
    assert posts.like_post(st, pid, liker=BOB).likes == 1
    assert posts.has_user_liked_post(st, pid, BOB)

    with pytest.raises(ApplyError) as e:
        posts.like_post(st, pid, liker=BOB)
    assert e.value.code == "already_exists"
    assert posts.like_post(st, pid, liker=ALICE).likes == 2


def test_like_deleted_post_is_rejected() -> None:
    st = _state()
    pid = posts.create_post(st, creator=ALICE, title="A", body="a")
    posts.delete_post(st, pid, actor=ALICE, deleted_at=1)
    with pytest.raises(ApplyError) as e:
        posts.like_post(st, pid, liker=BOB)
    assert e.value.code == "invalid_state"


def test_post_count_tracks_profile_when_present() -> None:
    st = _state()
    profiles.create_profile(st, address=ALICE, username="alice")

    pid = posts.create_post(st, creator=ALICE, title="A", body="a")
    posts.create_post(st, creator=ALICE, title="B", body="b")
    assert profiles.get_profile(st, ALICE).post_count == 2

    posts.delete_post(st, pid, actor=ALICE, deleted_at=1)
    assert profiles.get_profile(st, ALICE).post_count == 1

    # No profile: posting still works.
    posts.create_post(st, creator=BOB, title="C", body="c")
    assert st.get_profile(BOB) is None


def test_list_active_posts_pages_in_id_order() -> None:
    st = _state()
    for i in range(5):
        posts.create_post(st, creator=ALICE, title=f"p{i}", body="")

    first = posts.list_active_posts(st, PageRequest.build(2))
    assert [p.id for p in first.items] == [0, 1]
    assert first.total == 5

    second = posts.list_active_posts(st, PageRequest.build(2, key=first.next_key))
    assert [p.id for p in second.items] == [2, 3]
