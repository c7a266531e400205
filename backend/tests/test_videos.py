from vidcat.db.models import Comment, Rating, Video, VideoTag


def _youtube_id(n):
    return f"vid{n:08d}"


def test_create_then_get_returns_same_payload(client, admin_headers, storage, category, subcategory):
    tag = storage.create_tag({"name": "Beginner", "slug": "beginner"})
    payload = {
        "title": "Generators explained",
        "description": "yield and friends",
        "youtubeId": "abcdefghijk",
        "duration": 754,
        "categoryId": category.id,
        "subcategoryId": subcategory.id,
        "tagIds": [tag.id],
    }

    created = client.post("/api/v1/videos", json=payload, headers=admin_headers)
    assert created.status_code == 201

    fetched = client.get(f"/api/v1/videos/{created.json()['id']}").json()
    for key in ("title", "description", "youtubeId", "duration", "categoryId", "subcategoryId"):
        assert fetched[key] == payload[key]
    assert [t["slug"] for t in fetched["tags"]] == ["beginner"]
    assert fetched["views"] == 0
    assert fetched["averageRating"] is None
    assert fetched["ratingCount"] == 0


def test_create_requires_admin(client, user_headers, db):
    payload = {"title": "T", "youtubeId": "abcdefghijk"}
    assert client.post("/api/v1/videos", json=payload, headers=user_headers).status_code == 403


def test_duplicate_youtube_id_conflicts(client, admin_headers, video):
    response = client.post(
        "/api/v1/videos",
        json={"title": "Again", "youtubeId": "dQw4w9WgXcQ"},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_malformed_youtube_id_is_rejected(client, admin_headers, db):
    response = client.post(
        "/api/v1/videos",
        json={"title": "Bad", "youtubeId": "short"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_subcategory_must_belong_to_category(client, admin_headers, storage, subcategory):
    other = storage.create_category({"name": "Music", "slug": "music"})

    response = client.post(
        "/api/v1/videos",
        json={
            "title": "Mismatch",
            "youtubeId": "abcdefghijk",
            "categoryId": other.id,
            "subcategoryId": subcategory.id,
        },
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_unknown_tags_are_reported(client, admin_headers, db):
    response = client.post(
        "/api/v1/videos",
        json={"title": "Tagged", "youtubeId": "abcdefghijk", "tagIds": [41, 42]},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["details"] == {"tagIds": [41, 42]}


def test_pagination(client, storage):
    for n in range(15):
        storage.create_video({"youtube_id": _youtube_id(n), "title": f"Video {n}"})

    first = client.get("/api/v1/videos", params={"page": 1, "limit": 10}).json()
    second = client.get("/api/v1/videos", params={"page": 2, "limit": 10}).json()

    assert first["total"] == 15 and second["total"] == 15
    assert first["page"] == 1 and second["page"] == 2
    assert len(first["data"]) == 10
    assert len(second["data"]) == 5
    ids = {v["id"] for v in first["data"]} | {v["id"] for v in second["data"]}
    assert len(ids) == 15


def test_default_page_size(client, storage):
    for n in range(12):
        storage.create_video({"youtube_id": _youtube_id(n), "title": f"Video {n}"})

    body = client.get("/api/v1/videos").json()
    assert body["limit"] == 10
    assert len(body["data"]) == 10


def test_invalid_pagination_is_rejected(client, db):
    assert client.get("/api/v1/videos", params={"page": 0}).status_code == 400
    assert client.get("/api/v1/videos", params={"limit": 1000}).status_code == 400
    assert client.get("/api/v1/videos", params={"page": "x"}).status_code == 400


def test_filters(client, storage, category, subcategory):
    tag = storage.create_tag({"name": "Beginner", "slug": "beginner"})
    storage.create_video(
        {"youtube_id": _youtube_id(1), "title": "Python basics",
         "category_id": category.id, "subcategory_id": subcategory.id},
        tag_ids=[tag.id],
    )
    storage.create_video({"youtube_id": _youtube_id(2), "title": "Jazz chords"})

    by_category = client.get("/api/v1/videos", params={"categoryId": category.id}).json()
    by_subcategory = client.get("/api/v1/videos", params={"subcategoryId": subcategory.id}).json()
    by_tag = client.get("/api/v1/videos", params={"tagId": tag.id}).json()
    by_search = client.get("/api/v1/videos", params={"q": "jazz"}).json()

    assert [v["title"] for v in by_category["data"]] == ["Python basics"]
    assert by_subcategory["total"] == 1
    assert [v["title"] for v in by_tag["data"]] == ["Python basics"]
    assert [v["title"] for v in by_search["data"]] == ["Jazz chords"]


def test_update_replaces_tags_and_merges_fields(client, admin_headers, storage, video):
    old = storage.create_tag({"name": "Old", "slug": "old"})
    new = storage.create_tag({"name": "New", "slug": "new"})
    storage.set_video_tags(video.id, [old.id])

    response = client.patch(
        f"/api/v1/videos/{video.id}",
        json={"duration": 300, "tagIds": [new.id]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["duration"] == 300
    assert body["title"] == "Intro to Python"
    assert [t["slug"] for t in body["tags"]] == ["new"]


def test_update_without_tag_ids_keeps_tags(client, admin_headers, storage, video):
    tag = storage.create_tag({"name": "Keep", "slug": "keep"})
    storage.set_video_tags(video.id, [tag.id])

    response = client.put(f"/api/v1/videos/{video.id}", json={"title": "Renamed"}, headers=admin_headers)

    assert response.status_code == 200
    assert [t["slug"] for t in response.json()["tags"]] == ["keep"]


def test_update_to_taken_youtube_id_conflicts(client, admin_headers, storage, video):
    other = storage.create_video({"youtube_id": _youtube_id(9), "title": "Other"})

    response = client.patch(
        f"/api/v1/videos/{other.id}",
        json={"youtubeId": "dQw4w9WgXcQ"},
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_record_view(client, video):
    client.post(f"/api/v1/videos/{video.id}/views")
    response = client.post(f"/api/v1/videos/{video.id}/views")

    assert response.status_code == 200
    assert response.json()["views"] == 2


def test_record_view_for_missing_video(client, db):
    assert client.post("/api/v1/videos/404/views").status_code == 404


def test_delete_removes_dependents(client, admin_headers, db, storage, user, video):
    video_id = video.id
    tag = storage.create_tag({"name": "Beginner", "slug": "beginner"})
    storage.set_video_tags(video_id, [tag.id])
    storage.create_comment(video_id, user.id, "Nice")
    storage.upsert_rating(video_id, user.id, 5)

    response = client.delete(f"/api/v1/videos/{video_id}", headers=admin_headers)

    assert response.status_code == 204
    db.expire_all()
    assert db.query(Video).filter(Video.id == video_id).count() == 0
    assert db.query(VideoTag).count() == 0
    assert db.query(Comment).count() == 0
    assert db.query(Rating).count() == 0


def test_oversized_page_and_ids_are_rejected(client, admin_headers, db):
    huge = 10**19

    assert client.get("/api/v1/videos", params={"page": huge}).status_code == 400
    assert client.get(f"/api/v1/videos/{huge}").status_code == 400
    assert client.get("/api/v1/videos", params={"categoryId": huge}).status_code == 400
    assert client.delete(f"/api/v1/videos/{huge}", headers=admin_headers).status_code == 400

    response = client.post(
        "/api/v1/videos",
        json={"title": "Big", "youtubeId": _youtube_id(1), "categoryId": huge},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_largest_valid_id_is_not_found(client, db):
    assert client.get(f"/api/v1/videos/{2**31 - 1}").status_code == 404


def test_search_treats_wildcards_literally(client, storage):
    storage.create_video({"youtube_id": _youtube_id(1), "title": "100% Python"})
    storage.create_video({"youtube_id": _youtube_id(2), "title": "1000 Python tips"})
    storage.create_video({"youtube_id": _youtube_id(3), "title": "snake_case names"})
    storage.create_video({"youtube_id": _youtube_id(4), "title": "snakeXcase names"})

    by_percent = client.get("/api/v1/videos", params={"q": "100%"}).json()
    by_underscore = client.get("/api/v1/videos", params={"q": "snake_case"}).json()

    assert [v["title"] for v in by_percent["data"]] == ["100% Python"]
    assert [v["title"] for v in by_underscore["data"]] == ["snake_case names"]
