"""Output naming and category classification for workflow files."""

import re
from pathlib import Path, PurePath
from typing import Union

MAX_NAME_LENGTH = 50
IMAGE_EXTENSION = ".png"
DEFAULT_CATEGORY = "Other_Integrations_and_Use_Cases"
RESERVED_CATEGORIES = ("devops",)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Lowercase ``text`` and collapse everything but ``[a-z0-9]`` into single hyphens.

    The result never starts or ends with a hyphen and is at most
    ``max_length`` characters, so ``slugify(slugify(x)) == slugify(x)``.
    """
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")
    # Cutting can leave a dangling hyphen at the end
    return slug[:max_length].rstrip("-")


def screenshot_filename(workflow_path: Union[str, PurePath]) -> str:
    """Map a workflow file path to its PNG file name.

    Args:
        workflow_path: Path to the workflow JSON file

    Returns:
        Canonical file name such as ``slack-to-notion.png``
    """
    stem = PurePath(str(workflow_path)).name
    if stem.lower().endswith(".json"):
        stem = stem[: -len(".json")]
    return (slugify(stem) or "workflow") + IMAGE_EXTENSION


def looks_like_category(segment: str) -> bool:
    return "_" in segment or segment in RESERVED_CATEGORIES


def category_for(workflow_path: Union[str, PurePath]) -> str:
    """Find the category folder of a workflow file.

    Walks the parent directories from the closest one upward and returns the
    first that looks like a category, falling back to ``DEFAULT_CATEGORY``.
    """
    parts = Path(str(workflow_path)).parts
    for segment in reversed(parts[:-1]):
        if looks_like_category(segment):
            return segment
    return DEFAULT_CATEGORY
