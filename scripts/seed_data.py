#!/usr/bin/env python3
"""
Seed script that creates a realistic dataset for trying out the feed.

Creates:
  • 8 users, each with a few interest tags
  • A follow graph (each user follows 3 others)
  • 4 microblogs per user (32 total)
  • Some likes and reported interactions
  • 4 communities

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

Every user's password is ``password123``.
"""
import argparse
import random
import time

import httpx

PASSWORD = "password123"

BASE_USERS = [
    ("grace_notes", "Grace Okafor", ["worship", "music"]),
    ("pastor_dan", "Dan Whitfield", ["ministry", "sermon"]),
    ("ruth_reads", "Ruth Alvarez", ["bible", "devotional"]),
    ("silas_asks", "Silas Moore", ["apologetics", "theology"]),
    ("hannah_prays", "Hannah Lee", ["prayer", "family"]),
    ("micah_missions", "Micah Osei", ["missions", "service"]),
    ("lydia_leads", "Lydia Chen", ["youth", "leadership"]),
    ("tim_testifies", "Tim Novak", ["testimony", "recovery"]),
]

SAMPLE_MICROBLOGS = [
    "Morning devotional on Psalm 23 hit different today. Grateful for quiet mornings.",
    "Our youth group is starting a new Bible study on Romans this Wednesday!",
    "Please keep my grandmother in your prayer list, she has surgery tomorrow.",
    "Worship night was incredible. So many voices lifted together in praise.",
    "Question for the apologetics crowd: best intro book on the historical Jesus?",
    "Sunday sermon notes: grace is not earned, it is received.",
    "Just got back from the missions trip. Full testimony coming this weekend.",
    "Family game night turned into a conversation about faith. Love these kids.",
    "Reading plan update: day 40 of the gospel of John. Still going strong.",
    "Volunteering at the food bank this Saturday, anyone want to join?",
    "New worship music playlist for the commute, drop your favourites below.",
    "The church choir needs tenors! Rehearsals are Thursday evenings.",
    "Started journaling my prayers again. Amazing how much clarity it brings.",
    "Our small group finished the book of Acts tonight. What a journey.",
    "Leadership lesson from Nehemiah: rebuild the wall one section at a time.",
    "Recovery is one day at a time, and I am thankful for this community.",
]

COMMUNITIES = [
    ("Worship Leaders", "Songwriting, setlists and team leadership", ["worship", "music"]),
    ("Apologetics Q&A", "Ask hard questions, get thoughtful answers", ["apologetics", "theology"]),
    ("Prayer Warriors", "Share requests and pray for one another", ["prayer"]),
    ("Young Adults", "Faith and life for 18-30s", ["youth", "family"]),
]


def wait_for_api(api_url: str, retries: int = 15) -> None:
    print(f"Waiting for API at {api_url} ...")
    for _ in range(retries):
        try:
            if httpx.get(f"{api_url}/health", timeout=5).json().get("status") == "ok":
                print("  API is ready!\n")
                return
        except httpx.HTTPError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {api_url} after {retries} retries")


def session_for(api_url: str, username: str, display_name: str, tags: list[str]) -> tuple[httpx.Client, str]:
    """Register (or log in) and return a client carrying the session cookie."""
    client = httpx.Client(base_url=api_url, timeout=10)
    resp = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "password": PASSWORD,
            "displayName": display_name,
            "interestTags": tags,
        },
    )
    if resp.status_code == 409:
        resp = client.post("/api/auth/login", json={"username": username, "password": PASSWORD})
    resp.raise_for_status()
    return client, resp.json()["id"]


def main(api_url: str) -> None:
    wait_for_api(api_url)

    # ── Users ────────────────────────────────────────────────────────────
    print("Creating users...")
    sessions: dict[str, httpx.Client] = {}
    for username, display_name, tags in BASE_USERS:
        client, user_id = session_for(api_url, username, display_name, tags)
        sessions[user_id] = client
        print(f"  ✓ {username} ({user_id})")
    user_ids = list(sessions)

    # ── Follow graph ─────────────────────────────────────────────────────
    print("\nCreating follow relationships...")
    for follower_id, client in sessions.items():
        for followee_id in random.sample([u for u in user_ids if u != follower_id], k=3):
            client.post(f"/api/users/{followee_id}/follow")
    print("  ✓ Follow graph created")

    # ── Microblogs ───────────────────────────────────────────────────────
    print("\nCreating microblogs...")
    microblog_ids: list[str] = []
    pool = SAMPLE_MICROBLOGS * 2
    random.shuffle(pool)
    for i, client in enumerate(sessions.values()):
        for content in pool[i * 4:(i + 1) * 4]:
            resp = client.post("/api/microblogs", json={"content": content})
            if resp.status_code == 201:
                microblog_ids.append(resp.json()["id"])
    print(f"  ✓ {len(microblog_ids)} microblogs created")

    # ── Likes & interactions ─────────────────────────────────────────────
    print("\nAdding likes and interactions...")
    likes = 0
    for microblog_id in microblog_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 4)):
            client = sessions[user_id]
            client.post(f"/api/microblogs/{microblog_id}/like")
            client.post(
                "/api/recommendations/interaction",
                json={"contentId": microblog_id, "contentType": "microblog", "interactionType": "like"},
            )
            likes += 1
    print(f"  ✓ {likes} likes added")

    # ── Communities ──────────────────────────────────────────────────────
    print("\nCreating communities...")
    owners = random.sample(user_ids, k=len(COMMUNITIES))
    for (name, description, tags), owner_id in zip(COMMUNITIES, owners):
        resp = sessions[owner_id].post(
            "/api/communities",
            json={"name": name, "description": description, "interestTags": tags},
        )
        print(f"  {'✓' if resp.status_code == 201 else '✗'} {name}")

    # ── Summary ──────────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Log in and fetch a feed:\n")
    username = BASE_USERS[0][0]
    print(f"  curl -s -c /tmp/cookies -X POST '{api_url}/api/auth/login' \\")
    print("    -H 'Content-Type: application/json' \\")
    print(f"    -d '{{\"username\": \"{username}\", \"password\": \"{PASSWORD}\"}}'")
    print(f"  curl -s -b /tmp/cookies '{api_url}/api/recommendations/feed?limit=10' | python3 -m json.tool\n")
    print(f"# Metrics: {api_url}/metrics")
    print("=" * 60)

    for client in sessions.values():
        client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed The Connection API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
