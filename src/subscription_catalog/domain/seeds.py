"""Seed data for the supported subscription services."""

from typing import Any

SUBSCRIPTION_SEEDS: list[dict[str, Any]] = [
    {
        "slug": "gamepass",
        "name": "Xbox Game Pass",
        "color": "#107C10",
        "tiers": [
            {"slug": "core", "name": "Core", "rank": 1},
            {"slug": "standard", "name": "Standard", "rank": 2},
            {"slug": "ultimate", "name": "Ultimate", "rank": 3},
        ],
    },
    {
        "slug": "psplus",
        "name": "PlayStation Plus",
        "color": "#003791",
        "tiers": [
            {"slug": "essential", "name": "Essential", "rank": 1},
            {"slug": "extra", "name": "Extra", "rank": 2},
            {"slug": "premium", "name": "Premium", "rank": 3},
        ],
    },
    {
        "slug": "eaplay",
        "name": "EA Play",
        "color": "#FF4747",
        "tiers": [
            {"slug": "standard", "name": "Standard", "rank": 1},
            {"slug": "pro", "name": "Pro", "rank": 2},
        ],
    },
    {
        "slug": "ubisoftplus",
        "name": "Ubisoft+",
        "color": "#0070FF",
        "tiers": [
            {"slug": "classics", "name": "Classics", "rank": 1},
            {"slug": "premium", "name": "Premium", "rank": 2},
        ],
    },
]
