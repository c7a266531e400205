from vidcat.core.rate_limit import MemoryRateLimiter, get_rate_limiter
from vidcat.db.models import Rating
from vidcat.main import app


def _rate(client, headers, video_id, score):
    return client.post("/api/v1/ratings", json={"videoId": video_id, "score": score}, headers=headers)


def test_second_rating_replaces_first(client, db, user, user_headers, video):
    video_id, user_id = video.id, user.id

    first = _rate(client, user_headers, video_id, 4)
    assert first.status_code == 201
    assert first.json()["averageRating"] == 4.0

    second = _rate(client, user_headers, video_id, 2)
    assert second.status_code == 201
    assert second.json()["rating"]["score"] == 2
    assert second.json()["averageRating"] == 2.0
    assert second.json()["ratingCount"] == 1

    rows = db.query(Rating).filter(Rating.video_id == video_id, Rating.user_id == user_id).all()
    assert len(rows) == 1
    assert rows[0].score == 2


def test_average_across_users(client, user_headers, other_headers, video):
    _rate(client, user_headers, video.id, 4)
    response = _rate(client, other_headers, video.id, 5)

    assert response.json()["averageRating"] == 4.5
    assert response.json()["ratingCount"] == 2


def test_summary_for_signed_in_and_anonymous_callers(client, user_headers, video):
    _rate(client, user_headers, video.id, 3)

    mine = client.get("/api/v1/ratings", params={"videoId": video.id}, headers=user_headers).json()
    anonymous = client.get("/api/v1/ratings", params={"videoId": video.id}).json()

    assert mine == {"userRating": 3, "averageRating": 3.0, "ratingCount": 1}
    assert anonymous["userRating"] is None
    assert anonymous["averageRating"] == 3.0


def test_average_is_rounded(client, user_headers, other_headers, admin_headers, video):
    _rate(client, user_headers, video.id, 1)
    _rate(client, other_headers, video.id, 1)
    response = _rate(client, admin_headers, video.id, 2)

    assert response.json()["averageRating"] == 1.33


def test_score_must_be_in_range(client, user_headers, video):
    assert _rate(client, user_headers, video.id, 0).status_code == 400
    assert _rate(client, user_headers, video.id, 6).status_code == 400


def test_rating_requires_login(client, video):
    assert client.post("/api/v1/ratings", json={"videoId": video.id, "score": 3}).status_code == 401


def test_rating_missing_video(client, user_headers, db):
    assert _rate(client, user_headers, 12345, 3).status_code == 404


def test_rapid_ratings_are_rate_limited(client, user_headers, video):
    limiter = MemoryRateLimiter(60_000)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    assert _rate(client, user_headers, video.id, 3).status_code == 201
    response = _rate(client, user_headers, video.id, 4)

    assert response.status_code == 429
    assert response.json()["details"]["retryAfter"] > 0


def test_rejected_ratings_do_not_use_up_the_window(client, user_headers, video):
    limiter = MemoryRateLimiter(60_000)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    assert _rate(client, user_headers, 12345, 3).status_code == 404
    assert _rate(client, user_headers, video.id, 9).status_code == 400

    assert _rate(client, user_headers, video.id, 3).status_code == 201
