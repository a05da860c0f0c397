"""System prompt for the content editor chat."""

from typing import Optional, Sequence

BASE_PROMPT = """You are a content editor assistant. Help users edit their markdown documents.

## Workflow
1. Use get_markdown to see the document with line numbers
2. Use edit_markdown to apply changes (work from bottom to top)

## Edit Operations
- replaceLine: { op: "replaceLine", line: number, content: string }
- replaceRange: { op: "replaceRange", startLine: number, endLine: number, content: string }
- insert: { op: "insert", afterLine: number, content: string }
- deleteLine: { op: "deleteLine", line: number }
- deleteRange: { op: "deleteRange", startLine: number, endLine: number }

## Guidelines
- Make minimal edits
- Line numbers are 1-indexed
- For multi-line content use \\n in content string
- When user selects text, focus only on that section
- IMPORTANT: Do NOT output the content of your edits in text. Only use the edit_markdown tool. Keep text responses brief - just explain what you're doing, not the actual content."""

GITHUB_GUIDANCE = """## GitHub Data
- Only read from the repositories listed below; do not guess other owners or repository names
- Fetch pull requests, releases or commits before writing about them instead of inventing details
- If a GitHub call fails, say which repository you tried"""


def get_content_editor_chat_prompt(
    selected_text: Optional[str] = None,
    repo_context: Optional[Sequence] = None,
    tool_descriptions: Optional[Sequence[str]] = None,
    has_github_enabled: bool = False
) -> str:
    """
    Build the editor system prompt.

    Args:
        selected_text: Text the user highlighted in the document
        repo_context: Items with owner/repo attributes available as context
        tool_descriptions: One line per capability in the current tool set
        has_github_enabled: Whether GitHub tools are part of the tool set
    """
    sections = [BASE_PROMPT]

    if tool_descriptions:
        capabilities = "\n".join(f"- {line}" for line in tool_descriptions)
        sections.append(f"## Capabilities\n{capabilities}")

    if has_github_enabled:
        sections.append(GITHUB_GUIDANCE)

    prompt = "\n\n".join(sections)

    if selected_text:
        prompt += (
            "\n\nThe user has selected the following text (focus changes on this area):\n"
            f'"""\n{selected_text}\n"""'
        )

    if repo_context:
        repos = "\n".join(f"- {c.owner}/{c.repo}" for c in repo_context)
        prompt += f"\n\nThe user has added the following GitHub repositories as context:\n{repos}"

    return prompt
