#!/usr/bin/env python3
"""
Seed script — creates a small watch-tracking dataset to exercise the feed.

Creates:
  • 8 users (two of them private)
  • A follow graph (each user follows 3 others; private targets get requests,
    which their owners then accept)
  • 4 entries per user, logged against real TMDB ids
  • Some likes and comments across visible entries

Run once the API is up:
  python scripts/seed_data.py --api-url http://localhost:8000 --jwt-secret <JWT_SECRET>

Tokens are minted locally with the API's JWT secret, so the secret must match
the one the API was started with.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional

from jose import jwt

BASE_USERS = [
    # username, display name, private?
    ("ana_arthouse", "Ana Ribeiro", False),
    ("ben_binges", "Ben Okafor", False),
    ("cleo_classics", "Cleo Martin", True),
    ("dev_docs", "Dev Patel", False),
    ("emi_anime", "Emi Tanaka", False),
    ("finn_horror", "Finn Murphy", True),
    ("gia_scifi", "Gia Rossi", False),
    ("hugo_heists", "Hugo Lambert", False),
]

# (TMDB id, title, kind)
SAMPLE_TITLES = [
    (603, "The Matrix", "MOVIE"),
    (27205, "Inception", "MOVIE"),
    (157336, "Interstellar", "MOVIE"),
    (438631, "Dune", "MOVIE"),
    (680, "Pulp Fiction", "MOVIE"),
    (129, "Spirited Away", "MOVIE"),
    (694, "The Shining", "MOVIE"),
    (949, "Heat", "MOVIE"),
    (1399, "Game of Thrones", "TV_SHOW"),
    (1396, "Breaking Bad", "TV_SHOW"),
    (87108, "Chernobyl", "TV_SHOW"),
    (66732, "Stranger Things", "TV_SHOW"),
    (95396, "Severance", "TV_SHOW"),
    (1429, "Attack on Titan", "EPISODE"),
]

SAMPLE_REVIEWS = [
    "Holds up on every rewatch.",
    "Slow first act, incredible payoff.",
    "The score alone is worth it.",
    None,
    "Not for me, but I see the appeal.",
    None,
]

SAMPLE_COMMENTS = [
    "Totally agree!",
    "Adding this to my list.",
    "That ending though.",
    "Underrated pick.",
]


@dataclass
class ApiClient:
    base_url: str
    jwt_secret: str

    def token(self, user_id: str) -> str:
        return jwt.encode({"userId": user_id}, self.jwt_secret, algorithm="HS256")

    def request(self, method: str, path: str, data: Optional[dict] = None, as_user: Optional[str] = None) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if as_user:
            headers["Authorization"] = f"Bearer {self.token(as_user)}"
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: Optional[dict] = None, as_user: Optional[str] = None) -> dict:
        return self.request("POST", path, data, as_user)

    def get(self, path: str, as_user: Optional[str] = None) -> dict:
        return self.request("GET", path, None, as_user)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for _ in range(retries):
        try:
            if client.get("/health").get("status") == "ok":
                print("  API is ready!\n")
                return
        except (urllib.error.URLError, ConnectionError):
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str, jwt_secret: str, seed: Optional[int]) -> None:
    rng = random.Random(seed)
    client = ApiClient(api_url, jwt_secret)
    wait_for_api(client)

    # ── Users ─────────────────────────────────────────────────────────────
    print("Creating users...")
    users: dict[str, bool] = {}
    for username, display_name, is_private in BASE_USERS:
        result = client.post(
            "/users",
            {"username": username, "displayName": display_name, "isPrivate": is_private},
        )
        uid = result.get("userId", "")
        if uid:
            users[uid] = is_private
            print(f"  ✓ {username} ({uid}){' [private]' if is_private else ''}")
        else:
            print(f"  ✗ Failed to create {username}")

    if not users:
        print("No users created — aborting")
        return
    user_ids = list(users)

    # ── Follow graph ──────────────────────────────────────────────────────
    print("\nCreating follow relationships...")
    follows = requests = 0
    for follower_id in user_ids:
        for followee_id in rng.sample([u for u in user_ids if u != follower_id], k=min(3, len(user_ids) - 1)):
            result = client.post(f"/follows/{followee_id}", as_user=follower_id)
            if result.get("status") == "PENDING":
                # Private accounts approve everyone in the seed data
                client.post(f"/follows/requests/{result['requestId']}/accept", as_user=followee_id)
                requests += 1
            elif result:
                follows += 1
    print(f"  ✓ {follows} direct follows, {requests} accepted follow requests")

    # ── Entries ───────────────────────────────────────────────────────────
    print("\nLogging entries...")
    entries: list[tuple[str, str]] = []   # (entry id, owner id)
    for user_id in user_ids:
        for catalog_id, title, kind in rng.sample(SAMPLE_TITLES, k=4):
            result = client.post(
                "/entries",
                {
                    "catalogId": catalog_id,
                    "title": title,
                    "kind": kind,
                    "rating": rng.randint(5, 10),
                    "review": rng.choice(SAMPLE_REVIEWS),
                    "tags": rng.sample(["comfort", "rewatch-worthy", "mind-bending", "weekend"], k=2),
                },
                as_user=user_id,
            )
            if result.get("entryId"):
                entries.append((result["entryId"], user_id))
    print(f"  ✓ {len(entries)} entries logged")

    # ── Likes and comments ────────────────────────────────────────────────
    print("\nAdding likes and comments...")
    likes = comments = 0
    for entry_id, owner_id in entries:
        others = [u for u in user_ids if u != owner_id]
        for user_id in rng.sample(others, k=rng.randint(0, 4)):
            # Private owners' entries reject non-followers; the API reports it
            if client.post(f"/entries/{entry_id}/like", as_user=user_id):
                likes += 1
        if rng.random() < 0.3:
            commenter = rng.choice(others)
            if client.post(f"/entries/{entry_id}/comments", {"content": rng.choice(SAMPLE_COMMENTS)}, as_user=commenter):
                comments += 1
    print(f"  ✓ {likes} likes, {comments} comments added")

    # ── Summary ───────────────────────────────────────────────────────────
    u = user_ids[0]
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    print(f"# Get the feed for user '{BASE_USERS[0][0]}':")
    print(f"  curl -s '{api_url}/feed?page=1' \\")
    print(f"    -H 'Authorization: Bearer {client.token(u)}' | python3 -m json.tool\n")
    print(f"# List their entries:")
    print(f"  curl -s '{api_url}/entries?userId={u}' \\")
    print(f"    -H 'Authorization: Bearer {client.token(u)}' | python3 -m json.tool\n")
    print(f"# Check Jaeger traces: http://localhost:16686")
    print(f"# Check Prometheus metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the WatchHive API with sample users and entries")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--jwt-secret", default="dev_secret_key_change_me", help="JWT secret the API verifies with")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible dataset")
    args = parser.parse_args()
    main(args.api_url, args.jwt_secret, args.seed)
