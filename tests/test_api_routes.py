from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from blogchain.api.app import create_app
from blogchain.runtime.executor import BlogExecutor

ALICE = "blog1alice000"
BOB = "blog1bob0000"

Json = Dict[str, Any]


@pytest.fixture()
def client() -> TestClient:
    app = create_app(boot_runtime=False)
    app.state.executor = BlogExecutor.in_memory()
    return TestClient(app)


def _submit(client: TestClient, tx_type: str, signer: str, payload: Json, *, expect: int = 200) -> Json:
    r = client.post(
        "/v1/tx/submit",
        json={"tx_type": tx_type, "signer": signer, "nonce": 1, "payload": payload, "block_time": 1000},
    )
    assert r.status_code == expect, r.text
    return r.json()


def test_post_lifecycle_over_http(client: TestClient) -> None:
    r = _submit(client, "BLOG_POST_CREATE", ALICE, {"title": "Hello", "body": "world"})
    assert r["ok"] is True and r["meta"]["post_id"] == 0
    _submit(client, "BLOG_POST_CREATE", ALICE, {"title": "Second", "body": ""})

    body = client.get("/v1/posts").json()
    assert body["total"] == 2
    assert [p["title"] for p in body["items"]] == ["Hello", "Second"]

    assert client.get("/v1/posts/0").json()["post"]["created_at"] == 1000

    _submit(client, "BLOG_POST_LIKE", BOB, {"post_id": 0})
    assert client.get(f"/v1/posts/0/likes/{BOB}").json()["liked"] is True

    err = _submit(client, "BLOG_POST_DELETE", BOB, {"post_id": 0}, expect=403)
    assert err == {
        "ok": False,
        "error": {
            "code": "unauthorized",
            "message": "only the post creator can delete the post",
            "details": {"post_id": 0},
        },
    }

    _submit(client, "BLOG_POST_DELETE", ALICE, {"post_id": 0})
    assert [p["id"] for p in client.get("/v1/posts").json()["items"]] == [1]
    assert client.get("/v1/posts/0").json()["post"]["deleted"] is True


def test_error_status_mapping(client: TestClient) -> None:
    assert client.get("/v1/posts/9").status_code == 404

    _submit(client, "BLOG_POST_CREATE", ALICE, {"title": "P", "body": ""})
    _submit(client, "BLOG_POST_LIKE", BOB, {"post_id": 0})
    dup = _submit(client, "BLOG_POST_LIKE", BOB, {"post_id": 0}, expect=409)
    assert dup["error"]["code"] == "already_exists"

    bad = _submit(client, "BLOG_POST_CREATE", "not-an-address", {}, expect=400)
    assert bad["error"]["code"] == "invalid_argument"

    unknown = _submit(client, "BLOG_POST_REPOST", ALICE, {}, expect=400)
    assert unknown["error"]["code"] == "tx_unimplemented"


def test_system_tx_is_forbidden(client: TestClient) -> None:
    r = client.post(
        "/v1/tx/submit", json={"tx_type": "BLOG_POST_CREATE", "signer": ALICE, "payload": {}, "system": True}
    )
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "system_tx_forbidden"


def test_malformed_body_is_rejected_by_schema(client: TestClient) -> None:
    r = client.post("/v1/tx/submit", json={"signer": ALICE})
    assert r.status_code == 422


def test_comment_routes(client: TestClient) -> None:
    _submit(client, "BLOG_POST_CREATE", ALICE, {"title": "P", "body": ""})
    root = _submit(client, "BLOG_COMMENT_CREATE", BOB, {"post_id": 0, "content": "root"})["meta"]["comment_id"]
    child = _submit(client, "BLOG_COMMENT_CREATE", ALICE, {"post_id": 0, "parent_id": root, "content": "child"})
    child_id = child["meta"]["comment_id"]
    assert child["meta"]["depth"] == 1

    top = client.get("/v1/posts/0/comments").json()
    assert [c["id"] for c in top["items"]] == [root]
    replies = client.get(f"/v1/posts/0/comments?parent_id={root}").json()
    assert [c["id"] for c in replies["items"]] == [child_id]

    thread = client.get(f"/v1/comments/{root}/thread").json()["thread"]
    assert thread["comment"]["content"] == "root"
    assert thread["replies"][0]["comment"]["id"] == child_id

    assert client.get(f"/v1/comments/{child_id}").json()["comment"]["depth"] == 1
    assert client.get("/v1/posts/0").json()["post"]["comment_count"] == 2

    _submit(client, "BLOG_COMMENT_DELETE", ALICE, {"comment_id": child_id})
    assert client.get(f"/v1/comments/{child_id}").status_code == 404
    assert client.get(f"/v1/comments/{root}/thread").json()["thread"]["replies"] == []


def test_profile_routes(client: TestClient) -> None:
    _submit(client, "BLOG_PROFILE_CREATE", ALICE, {"username": "Alice", "bio": "hi"})
    _submit(client, "BLOG_PROFILE_CREATE", BOB, {"username": "bob"})
    _submit(client, "BLOG_FOLLOW", BOB, {"following": ALICE})

    dup = _submit(client, "BLOG_PROFILE_CREATE", "blog1other00", {"username": "ALICE"}, expect=409)
    assert dup["error"]["code"] == "already_exists"

    p = client.get(f"/v1/profiles/{ALICE}").json()["profile"]
    assert (p["username"], p["followers"]) == ("alice", 1)
    assert client.get("/v1/profiles/by-username/ALICE").json()["profile"]["address"] == ALICE

    assert client.get(f"/v1/profiles/{ALICE}/followers").json()["items"] == [BOB]
    assert client.get(f"/v1/profiles/{BOB}/following").json()["items"] == [ALICE]
    assert client.get(f"/v1/profiles/{BOB}/following/{ALICE}").json()["is_following"] is True

    listing = client.get("/v1/profiles?limit=1").json()
    assert listing["total"] == 2 and len(listing["items"]) == 1 and listing["next_key"]
    nxt = client.get("/v1/profiles", params={"limit": 1, "key": listing["next_key"]}).json()
    assert nxt["items"][0]["address"] != listing["items"][0]["address"]

    assert client.get("/v1/profiles/blog1nobody00").status_code == 404
    assert client.get("/v1/profiles/by-username/nobody").status_code == 404

    again = _submit(client, "BLOG_UNFOLLOW", BOB, {"following": ALICE})
    assert again["events"][0]["type"] == "user_unfollowed"
    gone = _submit(client, "BLOG_UNFOLLOW", BOB, {"following": ALICE}, expect=404)
    assert gone["error"]["code"] == "not_found"


@pytest.mark.parametrize(
    "path",
    [
        "/v1/posts/-1",
        "/v1/posts/1180591620717411303424",
        f"/v1/posts/-1/likes/{BOB}",
        "/v1/posts/-1/comments",
        "/v1/posts/0/comments?parent_id=-1",
        "/v1/comments/-5",
        f"/v1/comments/{2**64}",
        "/v1/comments/-5/thread",
    ],
)
def test_out_of_range_ids_are_bad_requests(client: TestClient, path: str) -> None:
    _submit(client, "BLOG_POST_CREATE", ALICE, {"title": "P", "body": ""})
    r = client.get(path)
    assert r.status_code == 400, r.text
    assert r.json()["error"]["code"] == "invalid_argument"


def test_largest_id_is_simply_not_found(client: TestClient) -> None:
    assert client.get(f"/v1/posts/{2**64 - 1}").status_code == 404


@pytest.mark.parametrize("number", ["Infinity", "-Infinity", "NaN", "1e400", "2.5"])
def test_non_finite_payload_numbers_are_rejected(client: TestClient, number: str) -> None:
    _submit(client, "BLOG_POST_CREATE", ALICE, {"title": "P", "body": ""})
    raw = '{"tx_type": "BLOG_POST_LIKE", "signer": "%s", "nonce": 1, "payload": {"post_id": %s}}' % (BOB, number)
    r = client.post("/v1/tx/submit", content=raw, headers={"content-type": "application/json"})
    assert r.status_code == 400, r.text
    assert r.json()["error"]["code"] == "invalid_payload"
    assert client.get("/v1/posts/0").json()["post"]["likes"] == 0

