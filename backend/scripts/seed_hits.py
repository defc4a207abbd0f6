"""Send realistic fake page views and downloads for development and demos.

Usage:
    python -m scripts.seed_hits [--url http://localhost:8000]
    python -m scripts.seed_hits --count 5000 --identified-ratio 0.2
"""

import argparse
import random
import sys

import httpx

PAGES = [
    ("/", None),
    ("/items/browse", None),
    ("/item-sets/browse", None),
    ("/about", None),
    ("/search", None),
] + [(f"/items/show/{i}", ("items", i)) for i in range(1, 31)] + [
    (f"/item-sets/show/{i}", ("item_sets", i)) for i in range(1, 6)
]

DOWNLOADS = [(f"file_{i:03d}.jpg", i) for i in range(1, 21)]

REFERRERS = [
    "https://google.com",
    "https://twitter.com",
    "https://en.wikipedia.org/wiki/Archive",
    "",
    "",
    "",
]

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) Chrome/120.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Safari/605.1.15",
    "Mozilla/5.0 (Linux; Android 14) Chrome/120.0.0.0 Mobile",
    "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
]

LANGUAGES = ["en-US,en;q=0.9", "fr-FR,fr;q=0.8", "de-DE,de;q=0.7", ""]


def _headers() -> dict[str, str]:
    headers = {"User-Agent": random.choice(USER_AGENTS)}
    referrer = random.choice(REFERRERS)
    if referrer:
        headers["Referer"] = referrer
    language = random.choice(LANGUAGES)
    if language:
        headers["Accept-Language"] = language
    return headers


def main():
    parser = argparse.ArgumentParser(description="Seed page views and downloads")
    parser.add_argument("--url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--count", type=int, default=1000, help="Number of hits")
    parser.add_argument("--download-ratio", type=float, default=0.1, help="Share of downloads")
    parser.add_argument("--identified-ratio", type=float, default=0.3, help="Share of identified users")
    args = parser.parse_args()

    print(f"Sending {args.count} hits to {args.url}...")
    recorded = 0
    with httpx.Client(base_url=args.url, timeout=30) as client:
        for i in range(args.count):
            user_id = random.randint(1, 50) if random.random() < args.identified_ratio else 0
            if random.random() < args.download_ratio:
                filename, media_id = random.choice(DOWNLOADS)
                resp = client.post(
                    f"/api/v1/downloads/original/{filename}",
                    params={"media_id": media_id, "user_id": user_id},
                    headers=_headers(),
                )
            else:
                path, subject = random.choice(PAGES)
                payload: dict = {"url": f"https://example.com{path}", "user_id": user_id}
                if subject:
                    payload["subject_kind"], payload["subject_id"] = subject
                resp = client.post("/api/v1/hits/", json=payload, headers=_headers())

            if resp.status_code != 200:
                print(f"  Error: {resp.status_code} - {resp.text}", file=sys.stderr)
                sys.exit(1)
            recorded += int(resp.json()["recorded"])
            if (i + 1) % 100 == 0:
                print(f"  Sent {i + 1}/{args.count} ({recorded} recorded)")

    print(f"Done! Recorded {recorded} hits (robots are skipped).")


if __name__ == "__main__":
    main()
