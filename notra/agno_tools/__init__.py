"""Tool functions exposed to notra's agents."""

from notra.agno_tools.description import tool_description
from notra.agno_tools.github_tools import create_github_tools
from notra.agno_tools.markdown_tools import create_markdown_tools
from notra.agno_tools.skill_tools import create_skill_tools

__all__ = [
    "tool_description",
    "create_github_tools",
    "create_markdown_tools",
    "create_skill_tools",
]
