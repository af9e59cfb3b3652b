"""Helpers for list endpoints that filter backend collections in memory"""

from typing import Any, Optional


def as_list(data: Any, key: Optional[str] = None) -> list[dict]:
    """Backend list payloads arrive bare or wrapped under `key`"""
    if isinstance(data, list):
        return data
    if key and isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


def contains(value: Any, search: str) -> bool:
    """Case-insensitive substring match; missing values never match"""
    return bool(value) and search.lower() in str(value).lower()


def nested(item: dict, *keys: str) -> Any:
    for key in keys:
        if not isinstance(item, dict):
            return None
        item = item.get(key)
    return item
