"""
Page Zone Registry
==================

Bounded Context: Zone persistence and curation

Zones for a page are extracted once and then belong to the production:
owners curate them (resize, redraw, reclassify) and every client reads the
curated copy from productions/<id>/zones/<page_key>.

Design:
- In-memory cache in front of the document store (thread-safe, RLock)
- First extraction wins: stored zones are never re-extracted implicitly
- Only owners persist extractions and edits (PermissionDeniedError otherwise)
- Zone lists are replaced whole; each write stamps updatedAt/updatedBy

Example:
    >>> registry = PageZoneRegistry(repo, uid="u1", split_mode=True)
    >>> zones = registry.get_or_extract(3, "L", script.extract_page)
    >>> registry.reclassify("3L", [4, 5], char_name=True)
"""

import dataclasses
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from cue_sync.errors import PermissionDeniedError
from cue_sync.logging import LogEvent, StructuredLogger, create_logger
from cue_sync.repository import ProductionRepository
from cue_sync.schemas import Role
from cue_script.geometry import ScriptZone, zones_to_list
from cue_script.pages import page_key


ExtractFn = Callable[[int, str], List[ScriptZone]]


class PageZoneRegistry:
    """
    Zones per page key, backed by the production's zones collection.

    Attributes:
        repo: Production repository
        uid: Current user (owner checks, updatedBy stamps)
        split_mode: Whether page keys carry the half
    """

    def __init__(
        self,
        repo: ProductionRepository,
        uid: str,
        split_mode: bool = False,
        is_superadmin: bool = False,
        clock: Callable[[], float] = time.time,
        logger: Optional[StructuredLogger] = None,
    ):
        self.repo = repo
        self.uid = uid
        self.split_mode = split_mode
        self.is_superadmin = is_superadmin
        self.clock = clock
        self.logger = logger or create_logger("zones")
        self.path = repo.path("zones")
        self._cache: Dict[str, List[ScriptZone]] = {}
        self._lock = threading.RLock()

    @property
    def is_owner(self) -> bool:
        return self.is_superadmin or self.repo.role_of(self.uid) == Role.OWNER.value

    def _require_owner(self, action: str) -> None:
        if not self.is_owner:
            raise PermissionDeniedError(f"Only owners can {action}.")

    def key(self, page: int, half: str = "") -> str:
        return page_key(page, half, self.split_mode)

    def set_split_mode(self, split_mode: bool) -> None:
        """Toggling split mode changes every page key, so the cache is dropped."""
        with self._lock:
            if split_mode != self.split_mode:
                self.split_mode = split_mode
                self._cache.clear()

    def _load(self, key: str) -> Optional[List[ScriptZone]]:
        data = self.repo.store.get(self.path, key)
        if not data or not data.get('zones'):
            return None
        return [ScriptZone.from_dict(z) for z in data['zones']]

    def _persist(self, key: str, zones: List[ScriptZone]) -> None:
        self.repo.store.set(self.path, key, {
            'zones': zones_to_list(zones),
            'updatedAt': self.clock(),
            'updatedBy': self.uid,
        })

    def get(self, key: str) -> Optional[List[ScriptZone]]:
        """Cached or stored zones for a key, without extracting."""
        with self._lock:
            if key in self._cache:
                return list(self._cache[key])
            zones = self._load(key)
            if zones is not None:
                self._cache[key] = zones
                return list(zones)
            return None

    def get_or_extract(self, page: int, half: str, extract_fn: ExtractFn) -> List[ScriptZone]:
        """
        Zones for a page, extracting on first use.

        Extractions by owners are persisted; other users keep them in memory
        until an owner's copy exists.
        """
        key = self.key(page, half)
        with self._lock:
            zones = self.get(key)
            if zones is not None:
                self.logger.debug(LogEvent.ZONE_CACHE_HIT, "Zones loaded", metadata={'page_key': key})
                return zones

            zones = list(extract_fn(page, half))
            self._cache[key] = zones
            if self.is_owner:
                self._persist(key, zones)
            self.logger.info(
                LogEvent.ZONE_EXTRACTED,
                "Zones extracted for page",
                metadata={'page_key': key, 'zones': len(zones), 'persisted': self.is_owner},
            )
            return list(zones)

    def reextract(self, page: int, half: str, extract_fn: ExtractFn) -> List[ScriptZone]:
        """Discard curated zones and extract again."""
        self._require_owner("re-extract zones")
        key = self.key(page, half)
        with self._lock:
            zones = list(extract_fn(page, half))
            self._cache[key] = zones
            self._persist(key, zones)
        self._log_edit(key, "reextract", len(zones))
        return list(zones)

    def _edit(self, key: str, action: str, mutate: Callable[[List[ScriptZone]], None]) -> List[ScriptZone]:
        self._require_owner("edit zones")
        with self._lock:
            zones = list(self.get(key) or [])
            mutate(zones)
            self._cache[key] = zones
            self._persist(key, zones)
        self._log_edit(key, action, len(zones))
        return list(zones)

    def _log_edit(self, key: str, action: str, count: int) -> None:
        self.logger.info(
            LogEvent.ZONE_EDITED,
            f"Zones {action}",
            metadata={'page_key': key, 'action': action, 'zones': count, 'uid': self.uid},
        )

    def update_zone(self, key: str, index: int, **changes) -> List[ScriptZone]:
        """Move/resize/retext one zone (fields of ScriptZone as keywords)."""
        def mutate(zones):
            zones[index] = dataclasses.replace(zones[index], **changes)
        return self._edit(key, "updated", mutate)

    def add_zone(self, key: str, zone: ScriptZone) -> List[ScriptZone]:
        """Add a hand-drawn zone."""
        return self._edit(key, "added", lambda zones: zones.append(zone))

    def delete_zone(self, key: str, index: int) -> List[ScriptZone]:
        def mutate(zones):
            del zones[index]
        return self._edit(key, "deleted", mutate)

    def reclassify(
        self,
        key: str,
        indices: Iterable[int],
        char_name: Optional[bool] = None,
        stage_direction: Optional[bool] = None,
    ) -> List[ScriptZone]:
        """
        Set classification flags on several zones at once.

        Marking a zone as one kind clears the other.
        """
        targets = list(indices)

        def mutate(zones):
            for i in targets:
                zone = zones[i]
                name_flag = zone.is_char_name if char_name is None else char_name
                direction_flag = zone.is_stage_direction if stage_direction is None else stage_direction
                if char_name:
                    direction_flag = False
                elif stage_direction:
                    name_flag = False
                zones[i] = dataclasses.replace(
                    zone, is_char_name=name_flag, is_stage_direction=direction_flag,
                )
        return self._edit(key, "reclassified", mutate)

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._cache.clear()
            else:
                self._cache.pop(key, None)
