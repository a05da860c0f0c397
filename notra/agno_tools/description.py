"""Builds the long-form descriptions attached to agent tools."""

import textwrap
from typing import Optional


def tool_description(
    tool_name: str,
    intro: str,
    when_to_use: Optional[str] = None,
    when_not_to_use: Optional[str] = None,
    usage_notes: Optional[str] = None
) -> str:
    parts = []

    if intro:
        parts.append(textwrap.dedent(intro).strip())
    if when_to_use:
        parts.append(f"**When to use the {tool_name} tool**\n{textwrap.dedent(when_to_use).strip()}")
    if when_not_to_use:
        parts.append(f"**When NOT to use the {tool_name} tool**\n{textwrap.dedent(when_not_to_use).strip()}")
    if usage_notes:
        parts.append(f"**Usage notes**\n{textwrap.dedent(usage_notes).strip()}")

    return "\n\n".join(parts)


def describe(func, tool_name: str, **sections):
    """Name a tool callable and attach its description for the agent."""
    func.__name__ = tool_name
    func.__doc__ = tool_description(tool_name, **sections)
    return func
