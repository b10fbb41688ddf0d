import asyncio
import json
from typing import List

import httpx


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class RecordingSleep:
    """Async sleep replacement that records durations and only yields control."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


def make_businesses(prefix: str, count: int, start: int = 0) -> List[dict]:
    return [
        {
            "name": f"{prefix} {i}",
            "address": f"{i} Rue de Test, Paris",
            "phone": f"+33 1 00 00 {i:04d}",
            "website": f"https://{prefix.lower()}{i}.example.fr",
            "profileLink": f"https://maps.google.com/?cid={i}",
            "rating": 4.5,
            "reviewCount": 10 + i,
        }
        for i in range(start, start + count)
    ]


def search_response(businesses: List[dict], prose: bool = True) -> httpx.Response:
    payload = json.dumps(businesses)
    text = f"Here are the businesses I found:\n```json\n{payload}\n```" if prose else payload
    return httpx.Response(200, json={"success": True, "batch_index": 0, "text": text})
