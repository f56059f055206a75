"""Mode registry and mode compatibility matching."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Mapping, Optional, Set

if TYPE_CHECKING:
    from .graph_model import Link


class ModeCategory(str, Enum):
    ROAD = "road"
    RAIL = "rail"
    WATER = "water"


@dataclass(frozen=True)
class Mode:
    identifier: str
    category: ModeCategory


PEDESTRIAN = Mode("pedestrian", ModeCategory.ROAD)
BICYCLE = Mode("bicycle", ModeCategory.ROAD)
MOTORBIKE = Mode("motorbike", ModeCategory.ROAD)
CAR = Mode("car", ModeCategory.ROAD)
GOODS_VEHICLE = Mode("goods_vehicle", ModeCategory.ROAD)
HEAVY_GOODS_VEHICLE = Mode("heavy_goods_vehicle", ModeCategory.ROAD)
BUS = Mode("bus", ModeCategory.ROAD)
TRAIN = Mode("train", ModeCategory.RAIL)
TRAM = Mode("tram", ModeCategory.RAIL)
LIGHTRAIL = Mode("lightrail", ModeCategory.RAIL)
SUBWAY = Mode("subway", ModeCategory.RAIL)
FERRY = Mode("ferry", ModeCategory.WATER)

# Source tags known to the parsers. Tags mapped to None are recognised but
# never produce an internal mode.
DEFAULT_MODE_MAPPING: Dict[str, Optional[Mode]] = {
    "foot": PEDESTRIAN,
    "bicycle": BICYCLE,
    "motorcycle": MOTORBIKE,
    "motorcar": CAR,
    "goods": GOODS_VEHICLE,
    "hgv": HEAVY_GOODS_VEHICLE,
    "bus": BUS,
    "moped": None,
    "taxi": None,
    "share_taxi": None,
    "minibus": None,
    "coach": None,
    "train": TRAIN,
    "tram": TRAM,
    "light_rail": LIGHTRAIL,
    "subway": SUBWAY,
    "narrow_gauge": None,
    "funicular": None,
    "monorail": None,
    "ferry": FERRY,
}


class ModeRegistry:
    """Immutable, injective partial mapping from source mode tags to modes."""

    def __init__(self, mapping: Mapping[str, Optional[Mode]]) -> None:
        by_tag: Dict[str, Optional[Mode]] = {}
        by_mode: Dict[Mode, str] = {}
        for tag, mode in mapping.items():
            if mode is not None:
                previous_tag = by_mode.get(mode)
                if previous_tag is not None:
                    raise ValueError(
                        f"Mode '{mode.identifier}' mapped from both '{previous_tag}' and '{tag}'"
                    )
                by_mode[mode] = tag
            by_tag[tag] = mode
        self._by_tag: Mapping[str, Optional[Mode]] = MappingProxyType(by_tag)
        self._by_mode: Mapping[Mode, str] = MappingProxyType(by_mode)
        self._by_identifier: Mapping[str, Mode] = MappingProxyType(
            {mode.identifier: mode for mode in by_mode}
        )

    @property
    def tags(self) -> FrozenSet[str]:
        return frozenset(self._by_tag)

    @property
    def modes(self) -> FrozenSet[Mode]:
        return frozenset(self._by_mode)

    def resolve(self, tag: str) -> Optional[Mode]:
        return self._by_tag.get(tag)

    def is_resolvable(self, tag: str) -> bool:
        return self._by_tag.get(tag) is not None

    def resolve_all(self, tags: Iterable[str] | None) -> Set[Mode]:
        if not tags:
            return set()
        resolved = set()
        for tag in tags:
            mode = self._by_tag.get(tag)
            if mode is not None:
                resolved.add(mode)
        return resolved

    def mode_by_identifier(self, identifier: str) -> Optional[Mode]:
        return self._by_identifier.get(identifier)

    def source_tag(self, mode: Mode | str) -> Optional[str]:
        """Reverse lookup, accepts a mode or its identifier."""
        if isinstance(mode, str):
            found = self._by_identifier.get(mode)
            if found is None:
                return None
            mode = found
        return self._by_mode.get(mode)

    def categories_of(self, tags: Iterable[str] | None) -> Set[ModeCategory]:
        return {mode.category for mode in self.resolve_all(tags)}

    def restrict(self, categories: Iterable[ModeCategory]) -> "ModeRegistry":
        """Registry where modes outside ``categories`` are unmapped."""
        allowed = set(categories)
        return ModeRegistry(
            {
                tag: (mode if mode is not None and mode.category in allowed else None)
                for tag, mode in self._by_tag.items()
            }
        )

    def to_json(self) -> Dict[str, Optional[str]]:
        return {tag: (mode.identifier if mode else None) for tag, mode in self._by_tag.items()}

    def __len__(self) -> int:
        return len(self._by_tag)

    def __repr__(self) -> str:
        return f"ModeRegistry({len(self._by_mode)} mapped of {len(self._by_tag)} tags)"


def default_mode_registry() -> ModeRegistry:
    return ModeRegistry(DEFAULT_MODE_MAPPING)


class ModeMatcher:
    """Compatibility tests between sets of source mode tags.

    Tags without a registry entry are ignored on both sides. With
    ``allow_pseudo_match`` two tag sets match when they share a broad
    category (bus and car are both road) instead of an exact mode.
    """

    def __init__(self, registry: ModeRegistry) -> None:
        self.registry = registry

    def compatible(
        self,
        candidate_modes: Iterable[str] | None,
        reference_modes: Iterable[str] | None,
        allow_pseudo_match: bool,
    ) -> bool:
        candidates = self.registry.resolve_all(candidate_modes)
        if not candidates:
            return False

        reference_tags = list(reference_modes) if reference_modes else []
        if not reference_tags:
            # no constraint, any resolvable candidate will do
            return True

        references = self.registry.resolve_all(reference_tags)
        if allow_pseudo_match:
            candidate_categories = {mode.category for mode in candidates}
            return any(mode.category in candidate_categories for mode in references)
        return bool(candidates & references)

    def link_modes(self, link: "Link") -> Set[str]:
        """Source tags of the modes allowed on either segment of ``link``."""
        tags: Set[str] = set()
        for segment in (link.segment_ab, link.segment_ba):
            if segment is None:
                continue
            for identifier in segment.modes:
                tag = self.registry.source_tag(identifier)
                if tag is not None:
                    tags.add(tag)
        return tags

    def link_compatible(
        self,
        link: "Link",
        reference_modes: Iterable[str] | None,
        allow_pseudo_match: bool,
    ) -> bool:
        link_tags = self.link_modes(link)
        if not link_tags:
            return False
        return self.compatible(link_tags, reference_modes, allow_pseudo_match)

    def filter_compatible_links(
        self,
        reference_modes: Iterable[str] | None,
        candidate_links: Iterable["Link"],
        allow_pseudo_match: bool,
    ) -> Set["Link"]:
        reference_tags = list(reference_modes) if reference_modes else []
        return {
            link
            for link in candidate_links
            if self.link_compatible(link, reference_tags, allow_pseudo_match)
        }
