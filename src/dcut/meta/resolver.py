"""Catalog meta videos (intros, outros, cutaways, overlays) and place them.

Turns a script's ``MetaDefinition`` into a ``ResolvedMetaPlacement``:
the catalogued asset, an absolute window on the output timeline and a
trim window within the source clip. Unknown clips and invalid timing are
logged and skipped; they never abort the run.
"""

from __future__ import annotations

from pathlib import Path

from dcut.core.errors import TimingError
from dcut.core.models import (
    Asset,
    ClipSpec,
    ClipWindow,
    MetaDefinition,
    ResolvedMetaPlacement,
    TimeWindow,
    TimingSpec,
)
from dcut.utils.console import console

CATEGORIES = ("intros", "outros", "cutaways", "overlays")
META_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv")

# Allowed overshoot past the end of the timeline (rounding, encoder drift)
END_TOLERANCE = 10.0


def resolve_timing(timing: TimingSpec, total_duration: float) -> TimeWindow:
    """Compute the absolute window for a meta clip.

    First applicable rule wins:
    start+end, start+duration, start alone (to the end), from_end/before_end,
    end+duration, end alone (from 0), nothing (whole timeline).
    ``offset`` shifts every computed bound.

    Raises:
        TimingError: If the window is negative, empty or runs past the end.
    """
    offset = timing.offset
    seconds_from_end = timing.from_end if timing.from_end is not None else timing.before_end

    if timing.start is not None:
        start = timing.start + offset
        if timing.end is not None:
            end = timing.end + offset
        elif timing.duration is not None:
            end = start + timing.duration
        else:
            end = total_duration + offset
    elif seconds_from_end is not None:
        start = total_duration - seconds_from_end + offset
        end = total_duration + offset
    elif timing.end is not None:
        end = timing.end + offset
        if timing.duration is not None:
            start = end - timing.duration
        else:
            start = 0.0 + offset
    else:
        start = 0.0 + offset
        end = total_duration + offset

    if start < 0:
        raise TimingError(f"start {start:g}s is negative")
    if end <= start:
        raise TimingError(f"end {end:g}s is not after start {start:g}s")
    if end > total_duration + END_TOLERANCE:
        raise TimingError(f"end {end:g}s is past the timeline end ({total_duration:g}s)")
    return TimeWindow(start=start, end=end)


def resolve_clip(clip: ClipSpec) -> ClipWindow:
    """Compute the trim window in source time; an open end stays None."""
    end = clip.end
    if clip.duration is not None:
        end = clip.start + clip.duration
    return ClipWindow(start=clip.start, end=end)


def _plural(category: str) -> str:
    return category if category.endswith("s") else category + "s"


class MetaVideoResolver:
    """Catalog of meta videos for one generation run."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self._catalog: dict[tuple[str, str], Asset] = {}

    def initialize(self) -> MetaVideoResolver:
        """Scan the category subdirectories. Missing ones are empty categories."""
        catalog: dict[tuple[str, str], Asset] = {}
        for category in CATEGORIES:
            category_dir = self.directory / category
            if not category_dir.is_dir():
                continue
            for path in sorted(category_dir.iterdir()):
                ext = path.suffix.lower()
                if not path.is_file() or ext not in META_EXTENSIONS:
                    continue
                catalog[(category, path.stem)] = Asset(
                    canonical_name=path.stem,
                    file_path=path,
                    media_type="video",
                    extension=ext,
                )
        self._catalog = catalog
        if catalog:
            keys = ", ".join(f"{c}:{n}" for c, n in catalog)
            console.print(f"[dim]Found {len(catalog)} meta videos: {keys}[/dim]")
        return self

    def __len__(self) -> int:
        return len(self._catalog)

    def lookup(self, category: str, name: str) -> Asset | None:
        """Find a meta video by category, trying the plural form second."""
        asset = self._catalog.get((category, name))
        if asset is None:
            asset = self._catalog.get((_plural(category), name))
        return asset

    def by_category(self, category: str) -> list[Asset]:
        return [a for (c, _), a in self._catalog.items() if c == category]

    def summary(self) -> dict[str, int]:
        counts = {category: len(self.by_category(category)) for category in CATEGORIES}
        counts["total"] = len(self._catalog)
        return counts

    def resolve_definition(
        self, definition: MetaDefinition, total_duration: float
    ) -> ResolvedMetaPlacement | None:
        """Resolve one definition, or return None when it must be skipped."""
        label = f"{definition.category}:{definition.name}"
        if not definition.include:
            console.print(f"[dim]Skipping meta video {label} (include: false)[/dim]")
            return None

        asset = self.lookup(definition.category, definition.name)
        if asset is None:
            console.print(f"[yellow]Meta video not found:[/yellow] {label}")
            return None

        try:
            window = resolve_timing(definition.timing, total_duration)
        except TimingError as e:
            console.print(f"[yellow]Invalid timing for meta video {label}:[/yellow] {e}")
            return None

        return ResolvedMetaPlacement(
            asset=asset,
            timing=window,
            clip=resolve_clip(definition.clip),
            category=definition.category,
            name=definition.name,
            placement_mode=definition.placement_mode,
            index=definition.index,
        )

    def resolve_all(
        self, definitions: list[MetaDefinition], total_duration: float
    ) -> list[ResolvedMetaPlacement]:
        """Resolve definitions in script order, dropping skipped ones."""
        placements = []
        for definition in definitions:
            placement = self.resolve_definition(definition, total_duration)
            if placement is not None:
                placements.append(placement)
        return placements
