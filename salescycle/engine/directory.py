"""
Rep directory: AccuLynx user id -> display name, loaded once per run.

A failed load is not fatal. Callers get an empty map and every sales owner
resolves to "".
"""
from __future__ import annotations

import logging
from typing import Any

from salescycle.engine.extractors import as_item_list, extract_user_name

logger = logging.getLogger(__name__)

USERS_ENDPOINT = "/users"


def build_user_name_map(users: list[Any]) -> dict[str, str]:
    names: dict[str, str] = {}
    for user in users:
        if not isinstance(user, dict):
            continue
        user_id = user.get("id")
        name = extract_user_name(user)
        if user_id and name:
            names[str(user_id)] = name
    return names


async def load_rep_directory(client: Any, max_users: int = 100) -> dict[str, str]:
    try:
        result = await client.paginated_fetch(USERS_ENDPOINT, {}, max_users)
    except Exception as e:
        logger.warning("Rep directory load failed, sales owners will be blank: %s", e)
        return {}

    names = build_user_name_map(as_item_list(result))
    logger.info("Rep directory loaded: %d users", len(names))
    return names
