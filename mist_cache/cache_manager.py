"""Cache manager owning the on-disk inventory cache and its lookup indexes."""
import logging
import time
from pathlib import Path
from typing import Dict, Optional, Union

from . import storage
from .errors import CacheError, CacheLoadError
from .indexes import CacheIndexes, build_indexes
from .models import CacheStore


class CacheManager:
    """
    Loads, replaces, saves and re-indexes one cache file.

    Not thread-safe: the owner serializes access.
    """

    def __init__(
        self,
        cache_path: Union[str, Path],
        snapshot_dir: Optional[Union[str, Path]] = None,
        cache_ttl: int = 0,
    ):
        """
        Initialize cache manager.

        Args:
            cache_path: Path of the JSON cache file
            snapshot_dir: Directory of per-vendor snapshot files used to extend
                          the RF template indexes. Defaults to <cache dir>/apis.
            cache_ttl: Seconds after which the file is considered stale; 0 disables expiry
        """
        self.cache_path = Path(cache_path)
        self.snapshot_dir = Path(snapshot_dir) if snapshot_dir is not None else self.cache_path.parent / "apis"
        self.cache_ttl = cache_ttl
        self.logger = logging.getLogger(__name__)

        self._store = CacheStore()
        self._indexes = CacheIndexes()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, force_recreate: bool = False) -> None:
        """
        Load the cache file and build indexes. Subsequent calls are no-ops.

        A missing file, force_recreate or an expired TTL start from an empty store.

        Raises:
            CacheLoadError: if the file exists but cannot be verified, read or parsed.
        """
        if self._initialized:
            return

        if force_recreate:
            self.logger.info(f"🔄 Recreating cache: {self.cache_path}")
            self._start_empty()
            return

        if not self.cache_path.exists():
            self.logger.info(f"📭 No cache file at {self.cache_path}, starting empty")
            self._start_empty()
            return

        if self.is_expired():
            self.logger.info(f"⌛ Cache expired (TTL {self.cache_ttl}s): {self.cache_path}, starting empty")
            self._start_empty()
            return

        store = storage.load_store(self.cache_path)
        self._store = store
        self.rebuild_indexes()
        self._initialized = True
        self.logger.info(f"✅ Cache loaded: {self.cache_path} ({len(store.orgs)} orgs)")

    def _start_empty(self) -> None:
        self._store = CacheStore()
        self.rebuild_indexes()
        self._initialized = True

    def is_expired(self) -> bool:
        """True when a TTL is configured and the cache file is older than it."""
        if self.cache_ttl <= 0:
            return False
        try:
            modified = storage.last_modified(self.cache_path)
        except FileNotFoundError:
            return False
        age = time.time() - modified
        if age > self.cache_ttl:
            return True
        self.logger.debug(
            "Cache TTL check: age %.0fs, TTL %ds, %.0fs remaining", age, self.cache_ttl, self.cache_ttl - age
        )
        return False

    def replace_cache(self, store: CacheStore) -> None:
        """
        Swap in a new store and rebuild indexes. Nothing is written to disk.

        Raises:
            CacheError: if store is None or carries a version below 1.
        """
        if store is None:
            raise CacheError("cannot replace cache with None")
        if store.version < 1:
            raise CacheError(f"cannot replace cache with unsupported version {store.version}")
        self._store = store
        self.rebuild_indexes()
        self._initialized = True
        self.logger.debug("Cache replaced (%d orgs)", len(store.orgs))

    def save_cache(self) -> Path:
        """
        Write the current store to disk atomically.

        Raises:
            CacheSaveError: if the file could not be written; the previous file is kept.
        """
        path = storage.save_store(self.cache_path, self._store)
        size_kb = round(path.stat().st_size / 1024, 2)
        self.logger.info(f"💾 Cached: {path} ({size_kb} KB)")
        return path

    def rebuild_indexes(self) -> None:
        self._indexes = build_indexes(self._store, self.snapshot_dir)

    def get_cache(self) -> CacheStore:
        """Return the live store. Callers that mutate it must call rebuild_indexes()."""
        return self._store

    def get_indexes(self) -> CacheIndexes:
        return self._indexes

    def get_cache_stats(self) -> Dict[str, int]:
        """Per-collection entity counts summed across organizations."""
        stats = {
            "orgs": len(self._store.orgs),
            "sites": 0,
            "site_settings": 0,
            "rf_templates": 0,
            "gateway_templates": 0,
            "wlan_templates": 0,
            "networks": 0,
            "wlans": 0,
            "ap_inventory": 0,
            "switch_inventory": 0,
            "gateway_inventory": 0,
            "device_profiles": 0,
            "ap_configs": 0,
            "switch_configs": 0,
            "gateway_configs": 0,
        }
        for org in self._store.orgs.values():
            stats["sites"] += len(org.sites.info)
            stats["site_settings"] += len(org.sites.settings)
            stats["rf_templates"] += len(org.templates.rf)
            stats["gateway_templates"] += len(org.templates.gateway)
            stats["wlan_templates"] += len(org.templates.wlan)
            stats["networks"] += len(org.networks)
            stats["wlans"] += len(org.wlans.org) + sum(len(w) for w in org.wlans.sites.values())
            stats["device_profiles"] += len(org.profiles.devices)
            for kind, devices in org.inventory.items():
                stats[f"{kind.value}_inventory"] += len(devices)
            for kind, devices in org.configs.items():
                stats[f"{kind.value}_configs"] += len(devices)
        return stats


def load_or_empty(manager: CacheManager) -> bool:
    """
    Initialize manager, falling back to an empty store on load failure.

    Returns:
        True if the cache file was loaded (or legitimately started empty),
        False if a load error forced the fallback.
    """
    try:
        manager.initialize()
        return True
    except CacheLoadError as exc:
        manager.logger.warning("Cache load failed, continuing with an empty store: %s", exc)
        manager.replace_cache(CacheStore())
        return False
