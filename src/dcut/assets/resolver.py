"""Resolve script names to character media files.

Scans one directory (non-recursive), derives a canonical name from each
filename and matches arbitrary script names against them: exact first,
then case-insensitive, then substring or synonym variations.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from rapidfuzz.distance import Levenshtein

from dcut.core.errors import DirectoryNotFoundError, ResolutionError
from dcut.core.models import Asset
from dcut.utils.console import console

VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".webm")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
SUPPORTED_EXTENSIONS = VIDEO_EXTENSIONS + IMAGE_EXTENSIONS
# Sync service wants video input, so these win over images of the same name
PREFERRED_EXTENSIONS = (".mp4", ".mov")

SUGGESTION_THRESHOLD = 0.3

# Abbreviations accepted for a name containing the key
DEFAULT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "etsy_queen": ("etsy", "queen"),
    "high_priestess": ("priestess", "hp"),
    "fool": ("the_fool",),
}

_EXT_RE = re.compile(
    r"\.(" + "|".join(ext[1:] for ext in SUPPORTED_EXTENSIONS + (".mkv",)) + r")$",
    re.IGNORECASE,
)


def canonicalize(name: str) -> str:
    """Normalize a filename or script name to a canonical asset name.

    "The Etsy Queen - v2.png" -> "The_Etsy_Queen"
    """
    text = _EXT_RE.sub("", name.strip())
    text = re.sub(r"\s*-\s*v\d+$", "", text)
    text = re.sub(r"\s*\(.*?\)$", "", text)
    text = re.sub(r"\s+", "_", text)
    text = re.sub(r"[^A-Za-z0-9_]", "", text)
    text = re.sub(r"_+", "_", text)
    return text.strip("_")


def _fold(name: str) -> str:
    return canonicalize(name).lower()


def name_variations(
    name: str, synonyms: Mapping[str, Iterable[str]] = DEFAULT_SYNONYMS
) -> list[str]:
    """Return the accepted alternative spellings for a folded canonical name."""
    variations = [name]
    if name.startswith("the_"):
        variations.append(name[4:])
    else:
        variations.append("the_" + name)
    for full, abbrevs in synonyms.items():
        if full in name:
            variations.extend(abbrevs)
    return variations


def similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity of the folded names, 0.0 to 1.0."""
    s1, s2 = _fold(a), _fold(b)
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return (max_len - Levenshtein.distance(s1, s2)) / max_len


def media_type_for(extension: str) -> str:
    return "video" if extension in VIDEO_EXTENSIONS else "image"


def _rank(extension: str) -> int:
    """Lower wins when two files share a canonical name."""
    if extension in PREFERRED_EXTENSIONS:
        return 0
    return 1 if extension in VIDEO_EXTENSIONS else 2


@dataclass(frozen=True)
class Suggestion:
    name: str
    score: float
    file_path: Path


@dataclass
class MappingResult:
    """Partition of requested names into resolved and missing."""

    resolved: dict[str, Asset] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing


class AssetResolver:
    """Catalog of character assets for one generation run."""

    def __init__(
        self,
        directory: Path,
        synonyms: Mapping[str, Iterable[str]] = DEFAULT_SYNONYMS,
    ) -> None:
        self.directory = Path(directory)
        self.synonyms = synonyms
        self._assets: dict[str, Asset] = {}

    def initialize(self) -> AssetResolver:
        """Scan the directory and build the canonical name -> Asset map.

        Raises:
            DirectoryNotFoundError: If the directory does not exist.
        """
        if not self.directory.is_dir():
            raise DirectoryNotFoundError(self.directory)

        assets: dict[str, Asset] = {}
        for path in sorted(self.directory.iterdir()):
            if not path.is_file():
                continue
            ext = path.suffix.lower()
            if ext not in SUPPORTED_EXTENSIONS:
                continue
            name = canonicalize(path.name)
            if not name:
                continue
            existing = assets.get(name)
            if existing is not None and _rank(existing.extension) <= _rank(ext):
                continue
            assets[name] = Asset(
                canonical_name=name,
                file_path=path,
                media_type=media_type_for(ext),
                extension=ext,
            )

        self._assets = assets
        console.print(f"[dim]Found {len(assets)} character files in {self.directory}[/dim]")
        return self

    @property
    def assets(self) -> list[Asset]:
        return list(self._assets.values())

    def by_type(self, media_type: str) -> list[Asset]:
        return [a for a in self._assets.values() if a.media_type == media_type]

    def resolve(self, name: str) -> Asset | None:
        """Find the asset for a script name, or None if nothing matches."""
        canonical = canonicalize(name)
        if not canonical:
            return None

        asset = self._assets.get(canonical)
        if asset is not None:
            return asset

        folded = canonical.lower()
        for asset in self._assets.values():
            if asset.canonical_name.lower() == folded:
                return asset

        for asset in self._assets.values():
            candidate = asset.canonical_name.lower()
            if folded in candidate or candidate in folded:
                return asset
            if folded in name_variations(candidate, self.synonyms):
                return asset
        return None

    def require(self, name: str) -> Asset:
        """Like ``resolve`` but raises ResolutionError with suggestions."""
        asset = self.resolve(name)
        if asset is None:
            raise ResolutionError(name, self.suggest(name))
        return asset

    def suggest(self, name: str) -> list[Suggestion]:
        """Rank all assets by similarity to ``name``, best first."""
        suggestions = []
        for asset in self._assets.values():
            score = similarity(name, asset.canonical_name)
            if score > SUGGESTION_THRESHOLD:
                suggestions.append(Suggestion(asset.canonical_name, score, asset.file_path))
        return sorted(suggestions, key=lambda s: s.score, reverse=True)

    def validate_mapping(self, names: Iterable[str]) -> MappingResult:
        """Resolve every name; unmatched names are reported, not raised."""
        result = MappingResult()
        for name in dict.fromkeys(names):
            asset = self.resolve(name)
            if asset is not None:
                result.resolved[name] = asset
            else:
                result.missing.append(name)
        return result
