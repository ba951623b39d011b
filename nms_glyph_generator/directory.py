"""
Region directory: galaxy -> civilization -> regions.

Built from Cargo rows, merged with previously loaded data, and read/written
in the default dataset format:

    {"galaxies": [...],
     "data": {galaxy: {"civilizations": [...],
                       "regions": {civ: [{"name": ..., "coordinates": ...}]}}}}
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .wiki_client import CIVILIZATION_FIELD, COORDINATES_FIELD, GALAXY_FIELD, PAGE_NAME_FIELD

logger = logging.getLogger('nms_glyphs.directory')


def _name_key(name: str):
    return (name.casefold(), name)


@dataclass
class RegionEntry:
    """A named region and its galactic coordinates."""
    name: str
    coordinates: str

    def to_dict(self) -> dict:
        return {'name': self.name, 'coordinates': self.coordinates}


@dataclass
class GalaxyEntry:
    """Civilizations of one galaxy and the regions each has claimed."""
    civilizations: List[str] = field(default_factory=list)
    regions: Dict[str, List[RegionEntry]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'civilizations': list(self.civilizations),
            'regions': {
                civ: [region.to_dict() for region in regions]
                for civ, regions in self.regions.items()
            }
        }


@dataclass
class Directory:
    """The galaxy -> civilization -> region dataset."""
    galaxies: List[str] = field(default_factory=list)
    data: Dict[str, GalaxyEntry] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'galaxies': list(self.galaxies),
            'data': {galaxy: entry.to_dict() for galaxy, entry in self.data.items()}
        }

    @classmethod
    def from_dict(cls, raw: dict) -> 'Directory':
        """Build a directory from the default dataset format, skipping bad entries."""
        if not isinstance(raw, dict):
            raise ValueError("Directory data must be an object")

        raw_data = raw.get('data') or {}
        if not isinstance(raw_data, dict):
            raise ValueError("Directory 'data' must be an object")

        directory = cls()
        for galaxy in raw.get('galaxies') or []:
            if not isinstance(galaxy, str) or not galaxy or galaxy in directory.data:
                continue
            galaxy_raw = raw_data.get(galaxy) or {}
            if not isinstance(galaxy_raw, dict):
                logger.warning(f"Skipping malformed galaxy entry: {galaxy}")
                continue
            entry = GalaxyEntry()
            raw_regions = galaxy_raw.get('regions')
            if not isinstance(raw_regions, dict):
                raw_regions = {}
            for civ in galaxy_raw.get('civilizations') or []:
                if not isinstance(civ, str) or not civ or civ in entry.regions:
                    continue
                civ_regions = raw_regions.get(civ)
                entry.civilizations.append(civ)
                entry.regions[civ] = [
                    RegionEntry(name=region['name'], coordinates=region.get('coordinates', ''))
                    for region in (civ_regions if isinstance(civ_regions, list) else [])
                    if isinstance(region, dict) and region.get('name')
                ]
            directory.galaxies.append(galaxy)
            directory.data[galaxy] = entry
        return directory

    # =========================================================================
    # Region selection
    # =========================================================================

    def civilizations(self, galaxy: str) -> List[str]:
        """Civilizations of a galaxy (empty if unknown)."""
        entry = self.data.get(galaxy)
        return list(entry.civilizations) if entry else []

    def regions(self, galaxy: str, civilization: str) -> List[RegionEntry]:
        """Regions claimed by a civilization (empty if unknown)."""
        entry = self.data.get(galaxy)
        if not entry:
            return []
        return list(entry.regions.get(civilization, []))

    def coordinates(self, galaxy: str, civilization: str, region: str) -> Optional[str]:
        """Coordinate string of a region, or None if it is not listed."""
        for entry in self.regions(galaxy, civilization):
            if entry.name == region:
                return entry.coordinates
        return None

    def civilization_count(self) -> int:
        return sum(len(entry.civilizations) for entry in self.data.values())

    def region_count(self) -> int:
        return sum(
            len(regions)
            for entry in self.data.values()
            for regions in entry.regions.values()
        )

    def is_empty(self) -> bool:
        return not self.galaxies


def _dedupe_regions(regions: Iterable[RegionEntry]) -> List[RegionEntry]:
    seen = set()
    unique = []
    for region in regions:
        if region.name in seen:
            continue
        seen.add(region.name)
        unique.append(region)
    return sorted(unique, key=lambda r: _name_key(r.name))


def build_directory(rows: Iterable[dict]) -> Directory:
    """
    Group valid Cargo rows by galaxy and civilization.

    Args:
        rows: Row dicts with civilization, galaxy, coordinates and page name

    Returns:
        Directory with sorted, de-duplicated galaxies, civilizations and regions
    """
    grouped: Dict[str, Dict[str, List[RegionEntry]]] = {}
    for row in rows:
        galaxy = row.get(GALAXY_FIELD)
        civ = row.get(CIVILIZATION_FIELD)
        name = row.get(PAGE_NAME_FIELD)
        coordinates = row.get(COORDINATES_FIELD)
        if not (galaxy and civ and name and coordinates):
            continue
        grouped.setdefault(galaxy, {}).setdefault(civ, []).append(
            RegionEntry(name=name, coordinates=coordinates)
        )

    directory = Directory()
    for galaxy in sorted(grouped, key=_name_key):
        civs = grouped[galaxy]
        entry = GalaxyEntry()
        for civ in sorted(civs, key=_name_key):
            entry.civilizations.append(civ)
            entry.regions[civ] = _dedupe_regions(civs[civ])
        directory.galaxies.append(galaxy)
        directory.data[galaxy] = entry
    return directory


def merge_directories(base: Directory, incoming: Directory) -> Directory:
    """
    Merge freshly fetched data into a base directory.

    Nothing in ``base`` is removed or overwritten: galaxies, civilizations
    and regions are unioned, regions by name with the base entry winning.
    Both inputs are left untouched.

    Args:
        base: Previously loaded directory
        incoming: Newly fetched directory

    Returns:
        New merged Directory
    """
    merged = Directory()
    galaxies = list(dict.fromkeys(list(base.galaxies) + list(incoming.galaxies)))

    for galaxy in sorted(galaxies, key=_name_key):
        base_entry = base.data.get(galaxy) or GalaxyEntry()
        new_entry = incoming.data.get(galaxy) or GalaxyEntry()

        civs = list(dict.fromkeys(list(base_entry.civilizations) + list(new_entry.civilizations)))
        entry = GalaxyEntry()
        for civ in sorted(civs, key=_name_key):
            entry.civilizations.append(civ)
            entry.regions[civ] = _dedupe_regions(
                list(base_entry.regions.get(civ, [])) + list(new_entry.regions.get(civ, []))
            )
        merged.galaxies.append(galaxy)
        merged.data[galaxy] = entry

    return merged


def load_directory(path: Path) -> Directory:
    """
    Load a directory from a default dataset file.

    Returns an empty directory when the file is missing or unreadable.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Default data file not found: {path}")
        return Directory()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return Directory.from_dict(json.load(f))
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Failed to load default data from {path}: {e}")
        return Directory()


def save_directory(directory: Directory, path: Path) -> Path:
    """Write a directory in the default dataset format (pretty-printed)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(directory.to_dict(), f, indent=2, ensure_ascii=False)
    return path
