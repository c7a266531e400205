import pytest


@pytest.mark.parametrize("name, slug", [
    ("Machine Learning", "machine-learning"),
    ("  C++ / Rust  ", "c-rust"),
    ("Café", "cafe"),
])
def test_slug_is_derived_from_name(client, admin_headers, name, slug):
    response = client.post("/api/v1/tags", json={"name": name}, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["slug"] == slug


def test_explicit_slug_is_kept(client, admin_headers):
    response = client.post("/api/v1/tags", json={"name": "ML", "slug": "ml"}, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["slug"] == "ml"


def test_duplicate_name_conflicts(client, admin_headers, storage):
    storage.create_tag({"name": "Beginner", "slug": "beginner"})

    response = client.post("/api/v1/tags", json={"name": "Beginner"}, headers=admin_headers)
    assert response.status_code == 409


def test_name_without_slug_characters_is_rejected(client, admin_headers):
    response = client.post("/api/v1/tags", json={"name": "???"}, headers=admin_headers)
    assert response.status_code == 400


def test_rename_tag(client, admin_headers, storage):
    tag = storage.create_tag({"name": "Beginner", "slug": "beginner"})

    response = client.put(f"/api/v1/tags/{tag.id}", json={"name": "Novice"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["name"] == "Novice"
    assert response.json()["slug"] == "beginner"


def test_tag_attached_to_video_cannot_be_deleted(client, admin_headers, storage, video):
    tag = storage.create_tag({"name": "Beginner", "slug": "beginner"})
    storage.set_video_tags(video.id, [tag.id])

    assert client.delete(f"/api/v1/tags/{tag.id}", headers=admin_headers).status_code == 409
    assert client.get(f"/api/v1/tags/{tag.id}").status_code == 200


def test_delete_unused_tag(client, admin_headers, storage):
    tag = storage.create_tag({"name": "Beginner", "slug": "beginner"})
    tag_id = tag.id

    assert client.delete(f"/api/v1/tags/{tag_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/v1/tags/{tag_id}").status_code == 404
