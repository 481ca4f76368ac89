"""Photo feed, likes and threaded comments."""
import pytest
from sqlalchemy.exc import SQLAlchemyError

from diary.core.errors import StoreError
from diary.models.participant import Participant
from diary.services.memories import upload_memory
from diary.storage.media import MEMORIES_BUCKET, InMemoryMediaStorage

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(client, headers, description="Sunset from the balcony", name="sunset.png", data=PNG, content_type="image/png"):
    return client.post(
        "/memories/upload",
        files={"file": (name, data, content_type)},
        data={"description": description},
        headers=headers,
    )


@pytest.fixture
def memory(client, him):
    resp = _upload(client, him)
    assert resp.status_code == 201, resp.text
    return resp.json()["memory"]


def test_upload_stores_the_image(client, clock, him, memory):
    assert memory["user_id"] == "him"
    assert memory["uploader_name"] == "Him"
    assert memory["description"] == "Sunset from the balcony"
    assert memory["like_count"] == 0

    url = memory["image_url"]
    assert url.startswith(f"/media/{MEMORIES_BUCKET}/him-20260301T090000")
    assert url.endswith(".png")

    img = client.get(url)
    assert img.status_code == 200
    assert img.content == PNG
    assert img.headers["content-type"] == "image/png"


def test_upload_validation(client, him):
    assert _upload(client, him, content_type="text/plain").status_code == 400
    assert _upload(client, him, description="   ").status_code == 400
    assert _upload(client, him, description="x" * 301).status_code == 400
    assert _upload(client, him, data=b"").status_code == 400

    too_big = b"\x00" * (10 * 1024 * 1024 + 1)
    resp = _upload(client, him, data=too_big)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Photos cannot exceed 10 MB"


def test_upload_removes_the_object_when_the_row_cannot_be_saved(db, monkeypatch, clock):
    class RecordingStorage(InMemoryMediaStorage):
        def __init__(self):
            super().__init__()
            self.removed = []

        def remove(self, bucket, key):
            self.removed.append((bucket, key))
            return super().remove(bucket, key)

    def broken_commit():
        raise SQLAlchemyError("disk full")

    storage = RecordingStorage()
    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(StoreError):
        upload_memory(db, storage, Participant.HER, PNG, "a.png", "image/png", "hello", clock=clock)

    assert len(storage.removed) == 1
    bucket, key = storage.removed[0]
    assert bucket == MEMORIES_BUCKET
    assert storage.get(bucket, key) is None


def test_feed_is_newest_first_with_pages(client, clock, him, her):
    for i in range(3):
        assert _upload(client, her if i % 2 else him, description=f"photo {i}").status_code == 201
        clock.advance(minutes=10)

    page1 = client.get("/memories", params={"limit": 2}, headers=him).json()
    assert [m["description"] for m in page1["memories"]] == ["photo 2", "photo 1"]
    assert page1["total"] == 3
    assert page1["has_more"] is True
    assert page1["current_page"] == 1
    assert page1["total_pages"] == 2

    page2 = client.get("/memories", params={"limit": 2, "offset": 2}, headers=him).json()
    assert [m["description"] for m in page2["memories"]] == ["photo 0"]
    assert page2["has_more"] is False
    assert page2["current_page"] == 2


def test_only_the_uploader_can_delete(client, him, her, memory):
    assert client.delete(f"/memories/{memory['id']}", headers=her).status_code == 403

    resp = client.delete(f"/memories/{memory['id']}", headers=him)
    assert resp.status_code == 200
    assert client.get("/memories", headers=him).json()["total"] == 0
    assert client.get(memory["image_url"]).status_code == 404
    assert client.delete(f"/memories/{memory['id']}", headers=him).status_code == 404


def test_like_toggle(client, him, her, memory):
    url = f"/memories/{memory['id']}/likes"

    resp = client.post(url, headers=her).json()
    assert resp["liked"] is True
    assert resp["like_count"] == 1
    assert resp["liked_by_her"] is True
    assert resp["liked_by_him"] is False

    client.post(url, headers=him)
    info = client.get(url, headers=him).json()
    assert info["like_count"] == 2
    assert {l["user_id"] for l in info["likes"]} == {"him", "her"}

    resp = client.post(url, headers=her).json()
    assert resp["liked"] is False
    assert resp["like_count"] == 1
    assert resp["liked_by_her"] is False

    feed = client.get("/memories", headers=him).json()["memories"][0]
    assert feed["like_count"] == 1
    assert feed["liked_by_him"] is True

    assert client.post("/memories/nope/likes", headers=him).status_code == 404


def test_comment_thread(client, clock, him, her, memory):
    url = f"/memories/{memory['id']}/comments"

    first = client.post(url, json={"content": "Beautiful!"}, headers=her)
    assert first.status_code == 201
    first = first.json()
    assert first["level"] == 0
    assert first["user_name"] == "Her"

    clock.advance(minutes=1)
    reply = client.post(url, json={"content": "Wish you were here", "parent_comment_id": first["id"]}, headers=him).json()
    assert reply["level"] == 1

    clock.advance(minutes=1)
    deeper = client.post(url, json={"content": "Next time", "parent_comment_id": reply["id"]}, headers=her).json()
    assert deeper["level"] == 2

    comments = client.get(url, headers=him).json()
    assert [c["content"] for c in comments] == ["Beautiful!", "Wish you were here", "Next time"]
    assert [c["level"] for c in comments] == [0, 1, 2]

    feed = client.get("/memories", headers=him).json()["memories"][0]
    assert feed["comment_count"] == 3


def test_comment_validation(client, him, her, memory):
    url = f"/memories/{memory['id']}/comments"
    assert client.post(url, json={"content": ""}, headers=her).status_code == 400
    assert client.post(url, json={"content": "x" * 501}, headers=her).status_code == 400
    assert client.post(url, json={"content": "hi", "parent_comment_id": "missing"}, headers=her).status_code == 400

    other = _upload(client, her, description="another one").json()["memory"]
    foreign = client.post(f"/memories/{other['id']}/comments", json={"content": "hello"}, headers=him).json()
    resp = client.post(url, json={"content": "wrong place", "parent_comment_id": foreign["id"]}, headers=her)
    assert resp.status_code == 400


def test_edit_and_delete_comments(client, clock, him, her, memory):
    url = f"/memories/{memory['id']}/comments"
    root = client.post(url, json={"content": "Lovely"}, headers=him).json()
    child = client.post(url, json={"content": "Agreed", "parent_comment_id": root["id"]}, headers=her).json()
    client.post(url, json={"content": ":)", "parent_comment_id": child["id"]}, headers=him)
    keep = client.post(url, json={"content": "Separate thought"}, headers=her).json()

    assert client.put(f"/comments/{root['id']}", json={"content": "hijack"}, headers=her).status_code == 403

    clock.advance(minutes=5)
    edited = client.put(f"/comments/{root['id']}", json={"content": "Lovely light"}, headers=him)
    assert edited.status_code == 200
    assert edited.json()["content"] == "Lovely light"
    assert edited.json()["updated_at"] != edited.json()["created_at"]

    assert client.delete(f"/comments/{root['id']}", headers=her).status_code == 403

    resp = client.delete(f"/comments/{root['id']}", headers=him)
    assert resp.status_code == 200
    assert resp.json() == {"deleted": True, "deleted_count": 3}

    remaining = client.get(url, headers=him).json()
    assert [c["id"] for c in remaining] == [keep["id"]]
    assert client.delete(f"/comments/{root['id']}", headers=him).status_code == 404


def test_deleting_a_memory_takes_likes_and_comments(client, him, her, memory):
    client.post(f"/memories/{memory['id']}/likes", headers=her)
    client.post(f"/memories/{memory['id']}/comments", json={"content": "nice"}, headers=her)

    assert client.delete(f"/memories/{memory['id']}", headers=him).status_code == 200
    assert client.get(f"/memories/{memory['id']}/comments", headers=him).status_code == 404
    assert client.get(f"/memories/{memory['id']}/likes", headers=him).status_code == 404
