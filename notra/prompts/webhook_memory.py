"""Prompt for turning a GitHub webhook event into a short memory entry."""

import json

WEBHOOK_MEMORY_SYSTEM_PROMPT = (
    "You are a concise technical archivist. Convert webhook events into short, "
    "factual memory entries. Do not add commentary or speculation."
)


def get_github_webhook_memory_prompt(event_type: str, repository: str, action: str, data: dict) -> dict:
    """Returns {"system": ..., "user": ...} for the memory writer."""
    user = (
        "Create a single short memory entry (1-3 sentences) for this GitHub webhook event. "
        "Focus on facts that would be useful later for changelogs, release summaries, or "
        "milestone tracking. Avoid bullet points and avoid markdown.\n\n"
        f"Repository: {repository}\n"
        f"Event type: {event_type}\n"
        f"Action: {action}\n"
        f"Event data (JSON): {json.dumps(data, indent=2, default=str)}\n"
    )
    return {"system": WEBHOOK_MEMORY_SYSTEM_PROMPT, "user": user}
