#!/usr/bin/env python3
"""
Seed script to create a starter taxonomy (categories, subcategories, tags)
through the Vidcat API, and optionally import a YouTube playlist.

Requires an admin account, e.g. the bootstrap one from ADMIN_USERNAME /
ADMIN_PASSWORD.
"""

import asyncio
import httpx
import os
from datetime import datetime

# Configuration
API_BASE_URL = os.getenv("API_URL", "http://localhost:8000/api/v1")
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
SEED_PLAYLIST_URL = os.getenv("SEED_PLAYLIST_URL")

# Categories to seed, each with its subcategories
SEED_CATEGORIES = [
    {
        "name": "Programming", "slug": "programming",
        "description": "Languages, tooling and software design.",
        "subcategories": [
            {"name": "Python", "slug": "python"},
            {"name": "JavaScript", "slug": "javascript"},
            {"name": "Databases", "slug": "databases"},
        ],
    },
    {
        "name": "Science", "slug": "science",
        "description": "Lectures and explainers.",
        "subcategories": [
            {"name": "Physics", "slug": "physics"},
            {"name": "Biology", "slug": "biology"},
        ],
    },
    {
        "name": "Music", "slug": "music",
        "description": "Lessons, theory and performances.",
        "subcategories": [
            {"name": "Guitar", "slug": "guitar"},
            {"name": "Music Theory", "slug": "music-theory"},
        ],
    },
]

SEED_TAGS = ["Beginner", "Advanced", "Tutorial", "Lecture", "Live"]


async def wait_for_api(client: httpx.AsyncClient, max_retries: int = 30) -> bool:
    """Wait for the API to be ready."""
    for i in range(max_retries):
        try:
            response = await client.get(f"{API_BASE_URL.replace('/api/v1', '')}/health")
            if response.status_code == 200:
                print("✅ API is ready!")
                return True
        except httpx.HTTPError:
            pass
        print(f"⏳ Waiting for API... ({i + 1}/{max_retries})")
        await asyncio.sleep(2)
    return False


async def login(client: httpx.AsyncClient) -> bool:
    response = await client.post(
        f"{API_BASE_URL}/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    if response.status_code != 200:
        print(f"  ❌ Login failed: {response.json().get('error', response.text)}")
        return False

    data = response.json()
    if not data["user"]["isAdmin"]:
        print(f"  ❌ {ADMIN_USERNAME} is not an administrator")
        return False

    client.headers["Authorization"] = f"Bearer {data['accessToken']}"
    print(f"  ✅ Logged in as {ADMIN_USERNAME}")
    return True


async def create(client: httpx.AsyncClient, path: str, payload: dict, label: str):
    """POST one entity; an existing one (409) is looked up and reused"""
    response = await client.post(f"{API_BASE_URL}{path}", json=payload)

    if response.status_code == 201:
        print(f"  ✅ {label}")
        return response.json()
    if response.status_code == 409:
        print(f"  ⚠️  {label} already exists")
        existing = await client.get(f"{API_BASE_URL}{path}")
        for item in existing.json():
            if item.get("slug") == payload.get("slug") or item.get("name") == payload.get("name"):
                return item
        return None

    print(f"  ❌ {label}: {response.text}")
    return None


async def seed_taxonomy(client: httpx.AsyncClient) -> dict:
    print("\n📂 Seeding categories...")
    created = {"categories": 0, "subcategories": 0, "tags": 0}

    for cat_data in SEED_CATEGORIES:
        subcategories = cat_data["subcategories"]
        category = await create(
            client, "/categories",
            {k: v for k, v in cat_data.items() if k != "subcategories"},
            f"Category {cat_data['name']}",
        )
        if not category:
            continue
        created["categories"] += 1

        for sub_data in subcategories:
            sub = await create(
                client, "/subcategories",
                {**sub_data, "categoryId": category["id"]},
                f"  Subcategory {sub_data['name']}",
            )
            if sub:
                created["subcategories"] += 1

    print("\n🏷️  Seeding tags...")
    for name in SEED_TAGS:
        if await create(client, "/tags", {"name": name}, f"Tag {name}"):
            created["tags"] += 1

    return created


async def import_playlist(client: httpx.AsyncClient, playlist_url: str) -> None:
    print(f"\n📺 Importing playlist {playlist_url}...")
    response = await client.post(
        f"{API_BASE_URL}/import/youtube",
        json={"playlistUrl": playlist_url},
        timeout=300.0,
    )
    if response.status_code == 200:
        data = response.json()
        print(
            f"  ✅ {data['succeeded']}/{data['total']} imported "
            f"({data['created']} new, {data['updated']} updated, {data['failed']} failed)"
        )
    else:
        print(f"  ❌ Import failed: {response.text}")


async def main():
    print("=" * 60)
    print("🎯 Vidcat Seed Script")
    print(f"   Started at: {datetime.now().isoformat()}")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Wait for API
        if not await wait_for_api(client):
            print("❌ API is not available. Please start the services first.")
            return

        if not await login(client):
            print("\n❌ Seeding needs an admin account. Exiting.")
            return

        counts = await seed_taxonomy(client)

        if SEED_PLAYLIST_URL:
            await import_playlist(client, SEED_PLAYLIST_URL)

        print("\n" + "=" * 60)
        print("🚀 Seed complete!")
        print(
            f"   {counts['categories']} categories, {counts['subcategories']} subcategories, "
            f"{counts['tags']} tags"
        )
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
