from __future__ import annotations

import json
import logging

import matplotlib

matplotlib.use("Agg")

import pytest

from bandlayout import LayoutConfig


@pytest.fixture(autouse=True)
def _reset_tweetbands_logger():
    yield
    logger = logging.getLogger("tweetbands")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def cfg() -> LayoutConfig:
    return LayoutConfig()


@pytest.fixture
def three_tweets() -> list[dict]:
    return [
        {"id": "a", "Month": "March", "Sentiment": -1.0, "Subjectivity": 0.2, "Text": "awful"},
        {"id": "b", "Month": "March", "Sentiment": 0.0, "Subjectivity": 0.5, "Text": "meh"},
        {"id": "c", "Month": "April", "Sentiment": 1.0, "Subjectivity": 0.9, "Text": "great"},
    ]


@pytest.fixture
def mixed_tweets() -> list[dict]:
    months = ["March", "April", "May"]
    items = []
    for i in range(30):
        items.append({
            "id": 100 + i,
            "Month": months[i % 3],
            "Sentiment": ((i * 7) % 21 - 10) / 10.0,
            "Subjectivity": (i % 11) / 10.0,
            "Text": f"tweet number {i}",
        })
    items.append({"id": 999, "Month": "June", "Sentiment": 0.3,
                  "Subjectivity": 0.3, "Text": "out of range"})
    return items


@pytest.fixture
def tweets_json(tmp_path, mixed_tweets):
    path = tmp_path / "tweets.json"
    path.write_text(json.dumps(mixed_tweets), encoding="utf-8")
    return path
