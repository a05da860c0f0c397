"""
Agno tool functions for reading and editing the markdown document of a chat.

Both tools close over the same line buffer, so edits made during a run are
visible to later get_markdown calls in that run.
"""

import logging
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class _Operation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ReplaceLine(_Operation):
    op: Literal["replaceLine"]
    line: int = Field(description="The line number to replace (1-indexed)")
    content: str = Field(description="The new content for the line")


class ReplaceRange(_Operation):
    op: Literal["replaceRange"]
    start_line: int = Field(alias="startLine", description="The starting line number (1-indexed)")
    end_line: int = Field(alias="endLine", description="The ending line number (1-indexed)")
    content: str = Field(description="The new content (use \\n for multiple lines)")


class Insert(_Operation):
    op: Literal["insert"]
    after_line: int = Field(alias="afterLine", description="Line number after which to insert (0 for start)")
    content: str = Field(description="The content to insert")


class DeleteLine(_Operation):
    op: Literal["deleteLine"]
    line: int = Field(description="The line number to delete (1-indexed)")


class DeleteRange(_Operation):
    op: Literal["deleteRange"]
    start_line: int = Field(alias="startLine", description="The starting line number to delete (1-indexed)")
    end_line: int = Field(alias="endLine", description="The ending line number to delete (1-indexed)")


EditOperation = Annotated[
    Union[ReplaceLine, ReplaceRange, Insert, DeleteLine, DeleteRange],
    Field(discriminator="op")
]

_operations_adapter = TypeAdapter(list[EditOperation])


def _anchor_line(op) -> int:
    if isinstance(op, (ReplaceLine, DeleteLine)):
        return op.line
    if isinstance(op, (ReplaceRange, DeleteRange)):
        return op.start_line
    return op.after_line


def _check_line(lines: list[str], line: int, allow_zero: bool = False):
    low = 0 if allow_zero else 1
    if line < low or line > len(lines):
        raise ValueError(f"Line {line} is out of range (document has {len(lines)} lines)")


def apply_operation(lines: list[str], op) -> None:
    """Apply one edit to the buffer in place."""
    if isinstance(op, ReplaceLine):
        _check_line(lines, op.line)
        lines[op.line - 1] = op.content
    elif isinstance(op, ReplaceRange):
        _check_line(lines, op.start_line)
        lines[op.start_line - 1:op.end_line] = op.content.split("\n")
    elif isinstance(op, Insert):
        _check_line(lines, op.after_line, allow_zero=True)
        lines[op.after_line:op.after_line] = op.content.split("\n")
    elif isinstance(op, DeleteLine):
        _check_line(lines, op.line)
        del lines[op.line - 1]
    elif isinstance(op, DeleteRange):
        _check_line(lines, op.start_line)
        del lines[op.start_line - 1:op.end_line]


def create_markdown_tools(current_markdown: str, on_update: Callable[[str], None]):
    """
    Create get_markdown / edit_markdown bound to one document.

    Args:
        current_markdown: Document the chat is editing
        on_update: Called with the full markdown after every successful edit

    Returns:
        Tuple of (get_markdown, edit_markdown)
    """
    current_lines = current_markdown.split("\n")

    def get_markdown() -> dict:
        """Gets the current markdown content with line numbers."""
        numbered = "\n".join(f"{i + 1}: {line}" for i, line in enumerate(current_lines))
        logger.debug(f"get_markdown returning {len(current_lines)} lines")
        return {"content": numbered, "line_count": len(current_lines)}

    def edit_markdown(operations: list[EditOperation]) -> dict:
        """Edits markdown. Operations: replaceLine (line, content), replaceRange (startLine, endLine, content), insert (afterLine, content), deleteLine (line), deleteRange (startLine, endLine). Process from highest line number to lowest."""
        try:
            parsed = _operations_adapter.validate_python(operations)
        except ValidationError as e:
            logger.warning(f"Rejected markdown edit: {e.error_count()} invalid operation(s)")
            return {"success": False, "error": str(e)}

        # a failing operation leaves the document untouched
        working = list(current_lines)
        try:
            for op in sorted(parsed, key=_anchor_line, reverse=True):
                apply_operation(working, op)
        except ValueError as e:
            logger.warning(f"Markdown edit failed: {e}")
            return {"success": False, "error": str(e)}

        current_lines[:] = working
        updated_markdown = "\n".join(current_lines)
        on_update(updated_markdown)

        logger.info(f"Applied {len(parsed)} markdown edit(s), {len(current_lines)} lines")
        return {
            "success": True,
            "line_count": len(current_lines),
            "updated_markdown": updated_markdown
        }

    return get_markdown, edit_markdown
