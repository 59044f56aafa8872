#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for trying out the photo feed.

Creates:
  • 10 users (provisioned through POST /users/sync)
  • A follow graph (each user follows 4 others)
  • 3 photo posts per user (30 total), each a small solid-colour PNG
  • Some likes, comments and comment likes

Tokens are minted locally with AUTH_JWT_SECRET, so run it with the same
environment as the API:
  python scripts/seed_data.py --api-url http://localhost:8000

All IDs are printed so you can use them in curl commands.
"""
import argparse
import asyncio
import random
import struct
import zlib

import httpx

from photofeed.auth import create_access_token
from photofeed.sdk.api_client import ApiRequestError, FeedApiClient

BASE_USERS = [
    ("alice_ai", "Alice Chen"),
    ("bob_builder", "Bob Martinez"),
    ("carol_codes", "Carol Singh"),
    ("dave_designs", "Dave Kim"),
    ("eve_engineer", "Eve Johnson"),
    ("frank_feeds", "Frank Williams"),
    ("grace_graphs", "Grace Li"),
    ("henry_hpc", "Henry Brown"),
    ("iris_infra", "Iris Davis"),
    ("jack_ml", "Jack Wilson"),
]

SAMPLE_CAPTIONS = [
    "Golden hour over the harbour 🌅",
    "Sunday market haul. The peaches were unreal.",
    "First snow of the season ❄️",
    "New desk setup, finally cable-managed.",
    "Trail run at dawn. Worth the 5am alarm.",
    "Latte art attempt #14. Getting there.",
    "Street corner in the old town",
    "Rainy afternoon, good book.",
    None,
    "Weekend build: a tiny bookshelf from offcuts 🪵",
    "Concert lights",
    "Grandma's dumpling recipe, finally written down.",
]

SAMPLE_COMMENTS = [
    "Love this!",
    "Where was this taken?",
    "The colours 😍",
    "Need the recipe",
    "So good",
    "This made my day",
]


def solid_png(rgb: tuple[int, int, int], size: int = 8) -> bytes:
    """A size×size single-colour PNG, small enough to upload quickly."""

    def chunk(tag: bytes, data: bytes) -> bytes:
        body = tag + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))

    row = b"\x00" + bytes(rgb) * size
    header = struct.pack(">IIBBBBB", size, size, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(row * size))
        + chunk(b"IEND", b"")
    )


async def wait_for_api(api_url: str, retries: int = 15) -> None:
    print(f"Waiting for API at {api_url} ...")
    async with httpx.AsyncClient(base_url=api_url, timeout=5) as http:
        for _ in range(retries):
            try:
                resp = await http.get("/health")
                if resp.status_code == 200 and resp.json().get("status") == "ok":
                    print("  API is ready!\n")
                    return
            except httpx.TransportError:
                pass
            await asyncio.sleep(3)
    raise RuntimeError(f"API not reachable at {api_url} after {retries} retries")


async def main(api_url: str) -> None:
    await wait_for_api(api_url)

    clients: dict[str, FeedApiClient] = {}
    try:
        # ── Provision users ──────────────────────────────────────────────
        print("Provisioning users...")
        for principal, display_name in BASE_USERS:
            api = FeedApiClient(create_access_token(principal), base_url=api_url)
            await api.start()
            try:
                user = await api.sync_user(display_name)
            except ApiRequestError as exc:
                print(f"  ✗ Failed to provision {principal}: {exc.message}")
                await api.stop()
                continue
            clients[user["id"]] = api
            print(f"  ✓ {principal} ({user['id']})")

        if not clients:
            print("No users provisioned — aborting")
            return
        user_ids = list(clients)

        # ── Follow graph ─────────────────────────────────────────────────
        print("\nCreating follow relationships...")
        follows = 0
        for follower_id, api in clients.items():
            others = [u for u in user_ids if u != follower_id]
            for followee_id in random.sample(others, k=min(4, len(others))):
                await api.set_follow(followee_id, True)
                follows += 1
        print(f"  ✓ {follows} follows created")

        # ── Posts ────────────────────────────────────────────────────────
        print("\nCreating posts...")
        post_ids: list[str] = []
        for user_id, api in clients.items():
            for _ in range(3):
                colour = tuple(random.randint(0, 255) for _ in range(3))
                try:
                    post = await api.create_post(
                        solid_png(colour), "image/png", random.choice(SAMPLE_CAPTIONS),
                        filename="seed.png",
                    )
                except ApiRequestError as exc:
                    print(f"  ✗ Post failed for {user_id}: [{exc.code}] {exc.message}")
                    continue
                post_ids.append(post["id"])
        print(f"  ✓ {len(post_ids)} posts created")

        # ── Likes and comments ───────────────────────────────────────────
        print("\nAdding likes and comments...")
        likes = comments = 0
        for post_id in post_ids:
            for user_id in random.sample(user_ids, k=random.randint(0, min(5, len(user_ids)))):
                await clients[user_id].set_post_like(post_id, True)
                likes += 1
            for user_id in random.sample(user_ids, k=random.randint(0, 2)):
                comment = await clients[user_id].create_comment(
                    post_id, random.choice(SAMPLE_COMMENTS)
                )
                comments += 1
                liker = random.choice(user_ids)
                await clients[liker].set_comment_like(comment["id"], True)
        print(f"  ✓ {likes} likes, {comments} comments added")

        # ── Summary ──────────────────────────────────────────────────────
        principal = BASE_USERS[0][0]
        token = create_access_token(principal)
        print("\n" + "=" * 60)
        print("Seed complete! Here are some commands to try:\n")
        print(f"# Read the feed as '{principal}':")
        print(f"  curl -s -H 'Authorization: Bearer {token}' '{api_url}/feed/?limit=10' | python3 -m json.tool\n")
        print("# Upload a photo:")
        print(f"  curl -s -X POST '{api_url}/posts/' \\")
        print(f"    -H 'Authorization: Bearer {token}' \\")
        print("    -F 'image=@photo.jpg;type=image/jpeg' -F 'caption=Hello world!' | python3 -m json.tool\n")
        print("# Check Jaeger traces: http://localhost:16686")
        print("# Check Prometheus: http://localhost:9090")
        print("# Check MinIO: http://localhost:9001 (minioadmin/minioadmin)")
        print("=" * 60)
    finally:
        for api in clients.values():
            await api.stop()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Photo Feed API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    asyncio.run(main(args.api_url))
