"""
Extension index: normalized extension -> destination lookup.

The index is derived entirely from the rule list and rebuilt wholesale
whenever the rules change.
"""

import os
from pathlib import Path
from typing import Iterable


def normalize_extension(extension: str) -> str:
    """
    Normalize an extension to its lookup key.

    Removes all whitespace, lower-cases, and ensures exactly one leading dot.
    Returns "" for empty input (including input made only of dots).

    >>> normalize_extension(" .JPG ")
    '.jpg'
    >>> normalize_extension("pdf")
    '.pdf'
    """
    cleaned = "".join(extension.split()).lstrip(".").lower()
    if not cleaned:
        return ""
    return "." + cleaned


def extension_of(filename: str | Path) -> str:
    """Return the normalized last suffix of a filename ("" if it has none)."""
    _, ext = os.path.splitext(os.path.basename(str(filename)))
    return normalize_extension(ext)


class ExtensionIndex:
    """Maps normalized extensions to destination paths (last rule wins)."""

    def __init__(self, rules: Iterable = ()):
        self._lookup: dict[str, str] = {}
        self.rebuild(rules)

    def rebuild(self, rules: Iterable) -> None:
        """
        Replace the index from scratch.

        Rules are applied in order, so a later rule claiming the same
        extension overwrites an earlier one. Rules with an empty destination
        and extensions that normalize to "" are ignored.
        """
        lookup: dict[str, str] = {}
        for rule in rules:
            if not rule.destination:
                continue
            for ext in rule.extensions:
                normalized = normalize_extension(ext)
                if normalized:
                    lookup[normalized] = rule.destination
        # Publish as a unit
        self._lookup = lookup

    def lookup(self, extension: str) -> str | None:
        """Find the destination for a raw extension such as "JPG" or ".jpg"."""
        normalized = normalize_extension(extension)
        if not normalized:
            return None
        return self._lookup.get(normalized)

    def resolve(self, filename: str | Path) -> str | None:
        """Find the destination for a file by its extension, or None if no rule matches."""
        ext = extension_of(filename)
        if not ext:
            return None
        return self._lookup.get(ext)

    def items(self) -> list[tuple[str, str]]:
        return sorted(self._lookup.items())

    def __contains__(self, extension: str) -> bool:
        return self.lookup(extension) is not None

    def __len__(self) -> int:
        return len(self._lookup)
