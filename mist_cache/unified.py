"""
Per-organization facade over a CacheManager.

UnifiedCache is bound to one organization. Reads auto-create that
organization's empty subtree, every mutation re-indexes the store and sets
the dirty flag, and only a successful save() clears it.
"""
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .cache_manager import CacheManager
from .errors import CacheLoadError, CacheSaveError, NotFoundError
from .macaddr import normalize
from .models import (
    DEVICE_CLASSES,
    CacheStore,
    DeviceProfile,
    DeviceRecord,
    DeviceType,
    OrgData,
    Site,
    UnifiedDevice,
    parse_device_type,
)

logger = logging.getLogger(__name__)

PROFILE_KINDS = ("devices", "details")

DeviceItem = Union[DeviceRecord, Dict[str, Any]]


def _as_record(kind: DeviceType, item: DeviceItem) -> DeviceRecord:
    """Coerce a record or raw dict into the record class for kind."""
    cls = DEVICE_CLASSES[kind]
    if isinstance(item, dict):
        return cls.from_dict(item)
    if type(item) is cls:
        return copy.deepcopy(item)
    return cls.from_dict(item.to_dict())


def _keyed_by_mac(kind: DeviceType, items: Iterable[DeviceItem]) -> Dict[str, DeviceRecord]:
    out: Dict[str, DeviceRecord] = {}
    for item in items:
        record = _as_record(kind, item)
        if not record.mac:
            logger.debug("Skipping %s without MAC (id=%s)", kind.value, record.id)
            continue
        out[normalize(record.mac)] = record
    return out


class UnifiedCache:
    def __init__(self, manager: CacheManager, org_id: str):
        if not org_id:
            raise ValueError("org ID cannot be empty")
        self.manager = manager
        self.org_id = org_id
        self._dirty = False

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self.manager.cache_path

    def is_dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def load(self) -> None:
        """Initialize the underlying manager (no-op once loaded)."""
        self.manager.initialize()

    def save(self) -> None:
        """
        Persist the store. The dirty flag is cleared only if the write succeeds.

        Raises:
            CacheSaveError: on any write failure.
        """
        self.manager.save_cache()
        self._dirty = False

    def clear(self) -> None:
        """Drop everything, leaving a single empty organization for the bound org."""
        self.manager.replace_cache(CacheStore.with_org(self.org_id))
        self._dirty = True

    def _changed(self) -> None:
        self.manager.rebuild_indexes()
        self._dirty = True

    # ------------------------------------------------------------------
    # organizations and sites
    # ------------------------------------------------------------------

    def get_org_data(self, org_id: Optional[str] = None) -> OrgData:
        """Return the org subtree, creating an empty one on first access."""
        org_id = org_id or self.org_id
        orgs = self.manager.get_cache().orgs
        org = orgs.get(org_id)
        if org is None:
            logger.debug("Creating empty org data for %s", org_id)
            org = OrgData()
            orgs[org_id] = org
            self._dirty = True
        return org

    def set_org_data(self, org_id: str, data: OrgData) -> None:
        if data is None:
            raise ValueError("org data cannot be None")
        self.manager.get_cache().orgs[org_id] = data
        self._changed()

    def get_site(self, identifier: str) -> Site:
        """Find a site of the bound org by ID or by name."""
        for site in self.get_org_data().sites.info:
            if site.id == identifier or site.name == identifier:
                return site
        raise NotFoundError("site", identifier)

    def get_all_sites(self) -> List[Site]:
        return list(self.get_org_data().sites.info)

    def update_site(self, site: Site) -> None:
        """Replace the site with the same ID (or failing that, the same name), else append it."""
        sites = self.get_org_data().sites.info
        position = None
        if site.id:
            position = next((i for i, s in enumerate(sites) if s.id == site.id), None)
        if position is None and site.name:
            position = next((i for i, s in enumerate(sites) if s.name == site.name), None)
        if position is None:
            sites.append(site)
        else:
            sites[position] = site
        self._changed()

    # ------------------------------------------------------------------
    # devices and inventory
    # ------------------------------------------------------------------

    def get_device(self, mac: str) -> UnifiedDevice:
        """
        Look a device up across all inventory types.

        Raises:
            InvalidMAC: if mac is malformed.
            NotFoundError: if no inventory entry has this MAC.
        """
        key = normalize(mac)
        org = self.get_org_data()
        for kind, devices in org.inventory.items():
            record = devices.get(key)
            if record is not None:
                return record.to_unified(kind)
        raise NotFoundError("device", mac)

    def get_devices_by_type(self, site_id: str, device_type: Union[str, DeviceType]) -> List[UnifiedDevice]:
        """Devices of one type, limited to site_id unless it is empty."""
        kind = parse_device_type(device_type)
        devices = self.get_org_data().inventory.for_type(kind)
        return [
            record.to_unified(kind)
            for record in devices.values()
            if not site_id or record.site_id == site_id
        ]

    def update_device(self, device: UnifiedDevice) -> None:
        """Write a unified device back into the inventory map for its type."""
        kind = parse_device_type(device.type_key)
        if not device.mac:
            logger.debug("Ignoring %s update without MAC (id=%s)", kind.value, device.id)
            return
        record = DEVICE_CLASSES[kind].from_dict(device.to_dict())
        self.get_org_data().inventory.for_type(kind)[normalize(device.mac)] = record
        self._changed()

    def get_inventory(self, device_type: Union[str, DeviceType]) -> List[DeviceRecord]:
        devices = self.get_org_data().inventory.for_type(device_type)
        return [copy.deepcopy(d) for d in devices.values()]

    def update_inventory(self, device_type: Union[str, DeviceType], items: Iterable[DeviceItem]) -> None:
        """Replace the whole inventory map for one device type."""
        kind = parse_device_type(device_type)
        self.get_org_data().inventory.replace(kind, _keyed_by_mac(kind, items))
        self._changed()

    # ------------------------------------------------------------------
    # configs
    # ------------------------------------------------------------------

    def get_configs(self, org_id: str, device_type: Union[str, DeviceType]) -> List[DeviceRecord]:
        """Configs of one type, or of every type when device_type is "all"."""
        configs = self.get_org_data(org_id).configs
        if device_type == "all":
            return [copy.deepcopy(c) for _, by_mac in configs.items() for c in by_mac.values()]
        return [copy.deepcopy(c) for c in configs.for_type(device_type).values()]

    def update_configs(self, org_id: str, device_type: Union[str, DeviceType], items: Iterable[DeviceItem]) -> None:
        """Replace the config map for one device type."""
        kind = parse_device_type(device_type)
        self.get_org_data(org_id).configs.replace(kind, _keyed_by_mac(kind, items))
        self._changed()

    def merge_configs(self, org_id: str, device_type: Union[str, DeviceType], items: Iterable[DeviceItem]) -> None:
        """Upsert configs by MAC, keeping entries that are not in items."""
        kind = parse_device_type(device_type)
        configs = self.get_org_data(org_id).configs
        merged = dict(configs.for_type(kind))
        merged.update(_keyed_by_mac(kind, items))
        configs.replace(kind, merged)
        self._changed()

    # ------------------------------------------------------------------
    # profiles
    # ------------------------------------------------------------------

    def get_profiles(self, kind: str) -> List[Any]:
        """Return "devices" (DeviceProfile records) or "details" (raw dicts)."""
        profiles = self.get_org_data().profiles
        if kind == "devices":
            return list(profiles.devices)
        if kind == "details":
            return list(profiles.details)
        raise ValueError(f"unknown profile type: {kind!r} (expected one of {', '.join(PROFILE_KINDS)})")

    def update_profiles(self, kind: str, items: Iterable[Any]) -> None:
        profiles = self.get_org_data().profiles
        if kind == "devices":
            profiles.devices = [p if isinstance(p, DeviceProfile) else DeviceProfile.from_dict(p) for p in items]
        elif kind == "details":
            details = list(items)
            for detail in details:
                if not isinstance(detail, dict):
                    raise ValueError(f"profile details must be objects, got {type(detail).__name__}")
            profiles.details = details
        else:
            raise ValueError(f"unknown profile type: {kind!r} (expected one of {', '.join(PROFILE_KINDS)})")
        self._changed()


def new_cache(
    cache_path: Union[str, Path],
    org_id: str,
    snapshot_dir: Optional[Union[str, Path]] = None,
    cache_ttl: int = 0,
) -> UnifiedCache:
    """
    Open (or create) the cache at cache_path bound to org_id.

    An unreadable or corrupt cache file is replaced by a store holding one
    empty organization; writing that fresh store is best-effort.
    """
    if not cache_path:
        raise ValueError("cache path cannot be empty")
    if not org_id:
        raise ValueError("org ID cannot be empty")

    logger.debug("Creating unified cache at %s for org %s", cache_path, org_id)
    manager = CacheManager(cache_path, snapshot_dir, cache_ttl)
    try:
        manager.initialize()
    except CacheLoadError as exc:
        logger.warning("Failed to load cache, starting a new one: %s", exc)
        manager.replace_cache(CacheStore.with_org(org_id))
        try:
            manager.save_cache()
        except CacheSaveError as save_exc:
            logger.warning("Failed to save initial cache: %s", save_exc)
    return UnifiedCache(manager, org_id)
