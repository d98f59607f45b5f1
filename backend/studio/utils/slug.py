"""
URL slug derivation for template titles.
"""
import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """
    Lowercase the title, collapse runs of non [a-z0-9] characters to a single
    hyphen and strip leading/trailing hyphens.

    "Neon Noir: Portrait!" -> "neon-noir-portrait"
    """
    slug = _NON_ALNUM.sub("-", (title or "").lower())
    return slug.strip("-")
