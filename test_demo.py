"""Demo data, health check and error plumbing."""
from sqlalchemy import func, select

from diary.db.seed import seed_demo_data
from diary.models import DailyLocation, Letter, Memory


def test_seed_fills_an_empty_database_once(db, clock):
    assert seed_demo_data(db, clock) is True
    assert seed_demo_data(db, clock) is False

    count = lambda model: db.execute(select(func.count()).select_from(model)).scalar_one()
    assert count(Letter) == 2
    assert count(Memory) == 3
    assert count(DailyLocation) == 2


def test_seeded_diary_is_usable(client, db, clock, him, her):
    seed_demo_data(db, clock)
    db.close()

    status = client.get("/location/status", headers=him).json()
    assert status["both_synced"] is True
    assert 10900 < status["distance"] < 11100

    inbox = client.get("/letters", params={"box": "inbox"}, headers=him).json()
    assert inbox["total"] == 1
    assert inbox["unread_count"] == 1

    memories = client.get("/memories", headers=her).json()
    assert memories["total"] == 3
    assert memories["memories"][0]["image_url"].startswith("https://picsum.photos/")


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_media_route_only_serves_known_buckets(client):
    assert client.get("/media/secrets/passwords.txt").status_code == 404
    assert client.get("/media/memories/missing.png").status_code == 404
