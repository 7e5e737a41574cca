"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable to prevent loading the .env file
and points the rate limit store at the in-process backend.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents Pydantic from loading the .env file in tests
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("NOTION_TOKEN", "secret_test_token")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")

from typing import Any  # noqa: E402

import pytest  # noqa: E402


class FakeSleep:
    """Records requested waits instead of sleeping.

    Mirrors ``wait_or_cancel``: a set cancel event raises before waiting.
    """

    def __init__(self, on_sleep=None) -> None:
        self.calls: list[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, delay: float, cancel=None) -> None:
        from notion_bridge.core.errors import OperationCancelledError

        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(code="operation_cancelled", message="cancelled")
        self.calls.append(delay)
        if self._on_sleep is not None:
            self._on_sleep(delay)


def make_page(page_id: str = "page-1", **extra: Any) -> dict[str, Any]:
    return {
        "object": "page",
        "id": page_id,
        "created_time": "2024-01-01T00:00:00.000Z",
        "last_edited_time": "2024-01-02T00:00:00.000Z",
        "archived": False,
        "parent": {"type": "workspace", "workspace": True},
        "properties": {"title": {"id": "title", "type": "title", "title": []}},
        "url": f"https://www.notion.so/{page_id}",
        **extra,
    }


def make_database(database_id: str = "db-1", **extra: Any) -> dict[str, Any]:
    return {
        "object": "database",
        "id": database_id,
        "title": [{"type": "text", "plain_text": "Tasks"}],
        "properties": {},
        **extra,
    }


def make_block(block_id: str = "block-1", **extra: Any) -> dict[str, Any]:
    return {
        "object": "block",
        "id": block_id,
        "type": "paragraph",
        "has_children": False,
        "paragraph": {"rich_text": []},
        **extra,
    }


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
