"""
Agno tool functions for browsing writing skills.

A skill is a folder under the skills directory holding a SKILL.md file whose
YAML front matter describes it (name, version, description, allowed-tools).
"""

import logging
from pathlib import Path
from typing import Optional

import frontmatter

from notra.agno_tools.description import describe

logger = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"


def _skill_folders(skills_dir: Path) -> list[str]:
    if not skills_dir.is_dir():
        logger.warning(f"Skills directory not found: {skills_dir}")
        return []
    return sorted(p.name for p in skills_dir.iterdir() if p.is_dir())


def _metadata(folder: str, meta: dict) -> dict:
    return {
        "name": meta.get("name") or folder,
        "version": meta.get("version"),
        "description": meta.get("description"),
        "allowed-tools": meta.get("allowed-tools"),
        "folder": folder,
        "filename": SKILL_FILENAME,
    }


def get_skill_metadata(folder: str, skills_dir: Path) -> dict:
    skill_md = skills_dir / folder / SKILL_FILENAME
    if not skill_md.exists():
        return {"name": folder, "folder": folder, "filename": SKILL_FILENAME}
    post = frontmatter.load(str(skill_md))
    return _metadata(folder, post.metadata)


def list_skills(skills_dir: Path, limit: int = 10, offset: int = 0) -> dict:
    folders = _skill_folders(skills_dir)
    return {
        "skills": [get_skill_metadata(f, skills_dir) for f in folders[offset:offset + limit]],
        "total": len(folders),
    }


def find_skill(skills_dir: Path, name: str) -> dict:
    """Full skill (metadata plus body) matched on folder or front matter name, case-insensitively."""
    wanted = name.lower()
    match = None

    for folder in _skill_folders(skills_dir):
        skill_md = skills_dir / folder / SKILL_FILENAME
        if folder.lower() == wanted:
            match = folder
            break
        if skill_md.exists():
            skill_name = frontmatter.load(str(skill_md)).metadata.get("name")
            if skill_name and str(skill_name).lower() == wanted:
                match = folder
                break

    if not match:
        return {"error": f'Skill "{name}" not found. Use list_available_skills to see all available skills.'}

    skill_md = skills_dir / match / SKILL_FILENAME
    if not skill_md.exists():
        return {"error": f'Skill file not found for "{match}".'}

    post = frontmatter.load(str(skill_md))
    return {**_metadata(match, post.metadata), "content": post.content}


def create_skill_tools(skills_dir: Optional[Path] = None):
    """Create list_available_skills / get_skill_by_name over a skills directory."""
    if skills_dir is None:
        from notra.config import SKILLS_DIR
        skills_dir = SKILLS_DIR

    def list_available_skills(limit: int = 10, offset: int = 0) -> dict:
        try:
            return list_skills(skills_dir, limit=limit, offset=offset)
        except Exception as e:
            logger.error(f"Error listing skills: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    def get_skill_by_name(name: str) -> dict:
        try:
            return find_skill(skills_dir, name)
        except Exception as e:
            logger.error(f"Error loading skill {name}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    describe(
        list_available_skills,
        "list_available_skills",
        intro="Lists all available skills for the user.",
        when_to_use="When user asks about available skills, wants to see a list of skills, or needs to check if a skill is available.",
        usage_notes="""
            Args: limit (number of skills to list, default 10), offset (where to start, default 0).
            Returns a list of available skills with their metadata (name, version, description, allowed-tools, folder) and the total count.
        """
    )
    describe(
        get_skill_by_name,
        "get_skill_by_name",
        intro="Gets a specific skill by its name or folder name. Use list_available_skills to see all available skills first.",
        when_to_use="When user asks about a specific skill, wants to see skill details, or needs to use a particular skill. Use list_available_skills first to find the correct skill name.",
        usage_notes="""
            Args: name (the skill's front matter name or its folder name).
            Returns the full skill metadata and the complete skill content.
        """
    )

    return list_available_skills, get_skill_by_name
