"""
Organization memory backed by the Supermemory REST API.

Memories are scoped to an organization through a container tag. When
SUPERMEMORY_API_KEY is unset every call is a no-op.
"""

import logging
from typing import Optional

import httpx

from notra.config import SUPERMEMORY_API_URL, get_supermemory_api_key

logger = logging.getLogger(__name__)

MEMORY_SEARCH_LIMIT = 5


def _get_headers(api_key: str) -> dict:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }


async def add_memory(
    organization_id: str,
    content: str,
    custom_id: Optional[str] = None,
    metadata: Optional[dict] = None
) -> bool:
    """Store a memory for the organization. Returns False when memory is disabled."""
    api_key = get_supermemory_api_key()
    if not api_key:
        logger.debug("SUPERMEMORY_API_KEY not set, skipping memory write")
        return False

    body = {
        "content": content,
        "containerTags": [organization_id],
        "metadata": metadata or {}
    }
    if custom_id:
        body["customId"] = custom_id

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(
            f"{SUPERMEMORY_API_URL}/documents",
            headers=_get_headers(api_key),
            json=body
        )
        response.raise_for_status()

    logger.info(f"Stored memory {custom_id or ''} for organization {organization_id}")
    return True


def _result_text(result: dict) -> Optional[str]:
    for key in ("memory", "content", "summary"):
        value = result.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    chunks = result.get("chunks") or []
    text = " ".join(c.get("content", "") for c in chunks if isinstance(c, dict)).strip()
    return text or None


async def search_memories(organization_id: str, query: str, limit: int = MEMORY_SEARCH_LIMIT) -> list[str]:
    """Memories relevant to `query`; empty on any failure."""
    api_key = get_supermemory_api_key()
    if not api_key or not query.strip():
        return []

    async with httpx.AsyncClient(timeout=15.0) as client:
        try:
            response = await client.post(
                f"{SUPERMEMORY_API_URL}/search",
                headers=_get_headers(api_key),
                json={"q": query, "containerTags": [organization_id], "limit": limit}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Memory search failed for organization {organization_id}: {e}")
            return []

    results = response.json().get("results", [])
    memories = []
    for result in results:
        text = _result_text(result) if isinstance(result, dict) else None
        if text:
            memories.append(text)
    return memories


async def with_memory(instructions: str, organization_id: str, query: str) -> str:
    """Append the organization's relevant memories to a system prompt."""
    memories = await search_memories(organization_id, query)
    if not memories:
        return instructions

    memory_block = "\n".join(f"- {m}" for m in memories)
    return f"{instructions}\n\n## Relevant memories about this organization\n{memory_block}"
