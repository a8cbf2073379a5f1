#!/usr/bin/env python3
"""
Smoke test script for the Quran Reels API.

Submits a reel for a verse range to a running server, waits for the encode,
and downloads the finished video.

Usage:
    python submit_reel.py                           # Al-Fatiha 1-3 with the default reciter
    python submit_reel.py --surah 112 --from 1 --to 4 --reciter Husary_64kbps
    python submit_reel.py --background bg.jpg --preset golden
"""

import argparse
import base64
import mimetypes
import os
import time
from pathlib import Path

import requests
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Configuration
BASE_URL = os.getenv("REELS_BASE_URL", "http://localhost:8000")
DEFAULT_RECITER = "Alafasy_128kbps"

# Output directory
OUTPUT_DIR = Path("test_reels")


def encode_background(path: str) -> str:
    """Read an image file into a data URL accepted by the API."""
    mime, _ = mimetypes.guess_type(path)
    if not mime or not mime.startswith("image/"):
        raise SystemExit(f"Background must be an image file: {path}")
    with open(path, "rb") as f:
        payload = base64.b64encode(f.read()).decode("ascii")
    return f"data:{mime};base64,{payload}"


def check_server():
    """Print readiness of the server before submitting."""
    response = requests.get(f"{BASE_URL}/health/ready", timeout=10)
    response.raise_for_status()
    ready = response.json()
    print(f"Server ready: {ready['ready']} (ffmpeg={ready['ffmpeg']}, "
          f"ffprobe={ready['ffprobe']}, workspace={ready['workspace']})")
    return ready["ready"]


def submit_reel(reciter: str, surah: int, from_ayah: int, to_ayah: int,
                background: str = None, preset: str = None):
    """Submit a reel request and block until it is encoded."""
    payload = {
        "reciterId": reciter,
        "surahNumber": surah,
        "fromAyah": from_ayah,
        "toAyah": to_ayah,
    }
    if background:
        payload["backgroundData"] = encode_background(background)
    if preset:
        payload["textPreset"] = preset

    print(f"\nSubmitting reel: surah {surah}, verses {from_ayah}-{to_ayah}")
    print(f"   Reciter: {reciter}")
    print(f"   Background: {background or 'server default'}")
    print(f"   Preset: {preset or 'server default'}")

    start = time.time()
    response = requests.post(f"{BASE_URL}/api/generate-video", json=payload, timeout=900)
    elapsed = time.time() - start

    if response.status_code != 200:
        print(f"Failed to generate reel: {response.status_code}")
        print(response.text)
        return None

    result = response.json()
    print(f"Reel generated in {elapsed:.1f}s: {result['videoUrl']}")
    return result


def download_reel(video_url: str) -> Path:
    """Download the finished reel into OUTPUT_DIR."""
    OUTPUT_DIR.mkdir(exist_ok=True)
    dest = OUTPUT_DIR / Path(video_url).name

    with requests.get(f"{BASE_URL}{video_url}", stream=True, timeout=120) as response:
        response.raise_for_status()
        with open(dest, "wb") as f:
            for chunk in response.iter_content(chunk_size=1024 * 1024):
                f.write(chunk)

    size_mb = dest.stat().st_size / (1024 * 1024)
    print(f"Downloaded: {dest} ({size_mb:.1f} MB)")
    return dest


def main():
    parser = argparse.ArgumentParser(description="Submit a reel to a running Quran Reels server")
    parser.add_argument("--reciter", default=DEFAULT_RECITER, help="Reciter folder ID")
    parser.add_argument("--surah", type=int, default=1, help="Surah number")
    parser.add_argument("--from", dest="from_ayah", type=int, default=1, help="First verse")
    parser.add_argument("--to", dest="to_ayah", type=int, default=3, help="Last verse")
    parser.add_argument("--background", help="Optional background image to upload")
    parser.add_argument("--preset", help="Text preset (classic, golden, soft)")
    parser.add_argument("--no-download", action="store_true", help="Skip downloading the result")
    args = parser.parse_args()

    if not check_server():
        print("Server is not ready; submitting anyway")

    result = submit_reel(
        args.reciter, args.surah, args.from_ayah, args.to_ayah,
        background=args.background, preset=args.preset,
    )
    if result and not args.no_download:
        download_reel(result["videoUrl"])


if __name__ == "__main__":
    main()
