"""Skill storage as ``skills/{name}/SKILL.md`` documents.

A SKILL.md file is YAML front matter (``name``, ``description``,
``enabled``) followed by a free-form Markdown body. The enabled flag lives in
the front matter only, so toggling it never rewrites the body.
"""

import logging
from uuid import uuid4

from chatstore.core.types import (
    IndexEntry,
    ParsedSkill,
    Skill,
    SkillParseResult,
    SkillValidationError,
    utc_now_iso,
)
from chatstore.storage.errors import InvalidSkillError
from chatstore.storage.frontmatter import parse_frontmatter, update_frontmatter, write_frontmatter
from chatstore.storage.fs import delete_directory, list_directories, read_text, write_text
from chatstore.storage.index import read_index, remove_index_entry, upsert_index_entry
from chatstore.storage.root import ensure_segment

logger = logging.getLogger(__name__)

COLLECTION = "skills"
SKILL_FILE = "SKILL.md"
MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024


def _skill_file(name: str) -> str:
    ensure_segment(name, "skill name")
    return f"{COLLECTION}/{name}/{SKILL_FILE}"


def _is_name_char(ch: str) -> bool:
    return ch.isnumeric() or (ch.isalpha() and ch.islower())


def validate_skill_name(name: str) -> tuple[bool, str]:
    """
    Validate a skill name.

    Names are lowercase letters and digits in hyphen-separated groups, with
    no leading, trailing or doubled hyphens.

    Returns:
        (is_valid, message) - If not valid, message explains why.
    """
    if not name:
        return False, "Name is required"
    if len(name) > MAX_NAME_LENGTH:
        return False, f"Name must be between 1 and {MAX_NAME_LENGTH} characters"
    groups = name.split("-")
    if not all(groups) or not all(_is_name_char(ch) for g in groups for ch in g):
        return (
            False,
            "Name must contain only lowercase alphanumeric characters and hyphens. "
            "Cannot start or end with a hyphen or have consecutive hyphens.",
        )
    return True, ""


def _parse_enabled(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return True


def parse_skill_file(content: str) -> SkillParseResult:
    """
    Parse and validate a SKILL.md document.

    A missing ``enabled`` field means enabled.
    """
    fields, body = parse_frontmatter(content)
    if fields is None:
        return SkillParseResult(
            errors=[
                SkillValidationError(
                    "format",
                    "Invalid format: Expected YAML frontmatter between --- markers",
                )
            ]
        )

    errors = []
    name = str(fields.get("name") or "")
    if not name:
        errors.append(SkillValidationError("name", "Name is required in frontmatter"))
    else:
        valid, message = validate_skill_name(name)
        if not valid:
            errors.append(SkillValidationError("name", message))

    description = str(fields.get("description") or "")
    if not description:
        errors.append(
            SkillValidationError("description", "Description is required in frontmatter")
        )
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append(
            SkillValidationError(
                "description",
                f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less",
            )
        )

    if errors:
        return SkillParseResult(errors=errors)

    return SkillParseResult(
        skill=ParsedSkill(
            name=name,
            description=description,
            content=body.strip(),
            enabled=_parse_enabled(fields.get("enabled", True)),
        )
    )


def serialize_skill(skill: Skill) -> str:
    """Serialize a skill to SKILL.md format."""
    header = write_frontmatter(
        {"name": skill.name, "description": skill.description, "enabled": skill.enabled}
    )
    return f"{header}\n{skill.content}"


async def _find_entry(name: str) -> IndexEntry | None:
    for entry in await read_index(COLLECTION):
        if entry.title == name:
            return entry
    return None


async def save_skill(skill: Skill) -> None:
    """
    Write a skill's SKILL.md and update the skills index.

    Raises:
        InvalidSkillError: If the name or description would not load back
    """
    valid, message = validate_skill_name(skill.name)
    if not valid:
        raise InvalidSkillError(message)
    if not skill.description or len(skill.description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidSkillError(
            f"Description must be 1 to {MAX_DESCRIPTION_LENGTH} characters"
        )

    await write_text(_skill_file(skill.name), serialize_skill(skill))
    await upsert_index_entry(
        COLLECTION, IndexEntry(id=skill.id, title=skill.name, updated=utc_now_iso())
    )


async def load_skill(name: str) -> Skill | None:
    """
    Load a skill by name.

    Unparseable documents are logged and reported as missing. The id comes
    from the index; skills with no index entry get a fresh one.
    """
    content = await read_text(_skill_file(name))
    if not content:
        return None

    result = parse_skill_file(content)
    if not result.success or result.skill is None:
        logger.warning("Failed to parse skill %s: %s", name, result.errors)
        return None

    entry = await _find_entry(name)
    parsed = result.skill
    return Skill(
        id=entry.id if entry else str(uuid4()),
        name=parsed.name,
        description=parsed.description,
        content=parsed.content,
        enabled=parsed.enabled,
    )


async def set_skill_enabled(name: str, enabled: bool) -> bool:
    """
    Toggle a skill's enabled flag in place.

    Returns:
        True if updated, False if the skill doesn't exist or has no front matter
    """
    path = _skill_file(name)
    content = await read_text(path)
    if content is None:
        return False
    try:
        updated = update_frontmatter(content, {"enabled": enabled})
    except ValueError:
        logger.warning("Skill %s has no front matter, not toggling", name)
        return False

    await write_text(path, updated)
    entry = await _find_entry(name)
    await upsert_index_entry(
        COLLECTION,
        IndexEntry(id=entry.id if entry else str(uuid4()), title=name, updated=utc_now_iso()),
    )
    return True


async def delete_skill(name: str) -> None:
    """Delete a skill's folder and its index entry."""
    ensure_segment(name, "skill name")
    entry = await _find_entry(name)
    await delete_directory(f"{COLLECTION}/{name}")
    if entry:
        await remove_index_entry(COLLECTION, entry.id)


async def list_skill_names() -> list[str]:
    """List the names of all stored skills."""
    return await list_directories(COLLECTION)


async def load_all_skills() -> list[Skill]:
    """Load every skill that parses."""
    skills = []
    for name in await list_skill_names():
        skill = await load_skill(name)
        if skill:
            skills.append(skill)
    return skills
