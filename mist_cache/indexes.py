"""
Lookup indexes derived from a CacheStore.

Indexes are disposable: build_indexes() is a pure function of the store
(plus the optional snapshot directory) and is re-run wholesale after every
change. Entries reference the store's own objects, not copies.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .macaddr import normalize_fast
from .models import (
    WLAN,
    CacheStore,
    DeviceProfile,
    DeviceRecord,
    DeviceType,
    GatewayTemplate,
    Network,
    OrgStats,
    RFTemplate,
    Site,
    SiteSetting,
    WLANTemplate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _per_type() -> Dict[str, Dict[str, Any]]:
    return {kind.value: {} for kind in DeviceType}


@dataclass
class CacheIndexes:
    org_stats_by_name: Dict[str, OrgStats] = field(default_factory=dict)
    org_stats_by_id: Dict[str, OrgStats] = field(default_factory=dict)

    sites_by_name: Dict[str, Site] = field(default_factory=dict)
    sites_by_id: Dict[str, Site] = field(default_factory=dict)
    site_settings_by_id: Dict[str, SiteSetting] = field(default_factory=dict)
    site_settings_by_site_id: Dict[str, SiteSetting] = field(default_factory=dict)

    rf_templates_by_name: Dict[str, RFTemplate] = field(default_factory=dict)
    rf_templates_by_id: Dict[str, RFTemplate] = field(default_factory=dict)
    gateway_templates_by_name: Dict[str, GatewayTemplate] = field(default_factory=dict)
    gateway_templates_by_id: Dict[str, GatewayTemplate] = field(default_factory=dict)
    wlan_templates_by_name: Dict[str, WLANTemplate] = field(default_factory=dict)
    wlan_templates_by_id: Dict[str, WLANTemplate] = field(default_factory=dict)

    networks_by_name: Dict[str, Network] = field(default_factory=dict)
    networks_by_id: Dict[str, Network] = field(default_factory=dict)

    org_wlans_by_ssid: Dict[str, WLAN] = field(default_factory=dict)
    org_wlans_by_id: Dict[str, WLAN] = field(default_factory=dict)
    site_wlans_by_ssid: Dict[str, Dict[str, WLAN]] = field(default_factory=dict)  # site ID -> ssid -> WLAN
    site_wlans_by_id: Dict[str, Dict[str, WLAN]] = field(default_factory=dict)

    # device type -> key -> record
    inventory_by_name: Dict[str, Dict[str, DeviceRecord]] = field(default_factory=_per_type)
    inventory_by_mac: Dict[str, Dict[str, DeviceRecord]] = field(default_factory=_per_type)
    inventory_by_site: Dict[str, Dict[str, List[DeviceRecord]]] = field(default_factory=_per_type)
    configs_by_name: Dict[str, Dict[str, DeviceRecord]] = field(default_factory=_per_type)
    configs_by_mac: Dict[str, Dict[str, DeviceRecord]] = field(default_factory=_per_type)

    device_profiles_by_name: Dict[str, DeviceProfile] = field(default_factory=dict)
    device_profiles_by_id: Dict[str, DeviceProfile] = field(default_factory=dict)
    profile_details_by_name: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    profile_details_by_id: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def _attr(name: str) -> Callable[[Any], Optional[str]]:
    return lambda item: getattr(item, name)


def _key(name: str) -> Callable[[Dict[str, Any]], Optional[str]]:
    def get(item: Dict[str, Any]) -> Optional[str]:
        value = item.get(name)
        return value if isinstance(value, str) else None

    return get


def _index(
    items: Iterable[T],
    by_name: Optional[Dict[str, T]],
    by_id: Optional[Dict[str, T]],
    name_of: Callable[[T], Optional[str]],
    id_of: Callable[[T], Optional[str]],
) -> None:
    """Add items to the name / id maps. Empty keys are skipped, later items win."""
    for item in items:
        if by_name is not None:
            name = name_of(item)
            if name:
                by_name[name] = item
        if by_id is not None:
            ident = id_of(item)
            if ident:
                by_id[ident] = item


def _index_devices(
    devices: Dict[str, DeviceRecord],
    by_name: Dict[str, DeviceRecord],
    by_mac: Dict[str, DeviceRecord],
) -> None:
    """Index a MAC-keyed device map. The map key, not the record body, is the MAC."""
    _index(devices.values(), by_name, None, _attr("name"), _attr("id"))
    for mac, device in devices.items():
        key = normalize_fast(mac)
        if key:
            by_mac[key] = device


def build_indexes(store: CacheStore, snapshot_dir: Optional[Path] = None) -> CacheIndexes:
    """Derive every lookup index from store, then extend RF templates from snapshot_dir."""
    idx = CacheIndexes()
    name = _attr("name")
    ident = _attr("id")

    for org_id, org in store.orgs.items():
        if org.org_stats is not None:
            _index([org.org_stats], idx.org_stats_by_name, idx.org_stats_by_id, name, lambda _s: org_id)

        _index(org.sites.info, idx.sites_by_name, idx.sites_by_id, name, ident)
        _index(org.sites.settings, None, idx.site_settings_by_id, name, ident)
        _index(org.sites.settings, None, idx.site_settings_by_site_id, name, _attr("site_id"))

        _index(org.templates.rf, idx.rf_templates_by_name, idx.rf_templates_by_id, name, ident)
        _index(org.templates.gateway, idx.gateway_templates_by_name, idx.gateway_templates_by_id, name, ident)
        _index(org.templates.wlan, idx.wlan_templates_by_name, idx.wlan_templates_by_id, name, ident)

        _index(org.networks, idx.networks_by_name, idx.networks_by_id, name, ident)

        ssid = _attr("ssid")
        _index(org.wlans.org, idx.org_wlans_by_ssid, idx.org_wlans_by_id, ssid, ident)
        for site_id, wlans in org.wlans.sites.items():
            _index(
                wlans,
                idx.site_wlans_by_ssid.setdefault(site_id, {}),
                idx.site_wlans_by_id.setdefault(site_id, {}),
                ssid,
                ident,
            )

        for kind, devices in org.inventory.items():
            _index_devices(devices, idx.inventory_by_name[kind.value], idx.inventory_by_mac[kind.value])
            by_site = idx.inventory_by_site[kind.value]
            for device in devices.values():
                if device.site_id:
                    by_site.setdefault(device.site_id, []).append(device)

        _index(org.profiles.devices, idx.device_profiles_by_name, idx.device_profiles_by_id, name, ident)
        _index(org.profiles.details, idx.profile_details_by_name, idx.profile_details_by_id, _key("name"), _key("id"))

        for kind, devices in org.configs.items():
            _index_devices(devices, idx.configs_by_name[kind.value], idx.configs_by_mac[kind.value])

    if snapshot_dir is not None:
        _index_snapshot_templates(idx, Path(snapshot_dir))
    return idx


def _index_snapshot_templates(idx: CacheIndexes, snapshot_dir: Path) -> None:
    """
    Extend the RF template indexes with stubs from per-vendor snapshot files.

    Each <snapshot_dir>/*.json file looks like:
        {"meta": {"vendor": "..."}, "templates": {"rf": [{"id": "...", "name": "..."}]}}

    Stubs never replace a template already indexed by ID or by name.
    Unreadable or malformed files are logged and skipped.
    """
    if not snapshot_dir.is_dir():
        logger.debug("Snapshot directory %s does not exist, skipping", snapshot_dir)
        return

    for file_path in sorted(snapshot_dir.glob("*.json")):
        if file_path.name.startswith(".") or not file_path.is_file():
            continue
        try:
            with open(file_path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Skipping snapshot file %s: %s", file_path, exc)
            continue

        stubs = _rf_stubs(raw)
        if stubs is None:
            logger.warning("Skipping snapshot file %s: unexpected layout", file_path)
            continue

        meta = raw.get("meta")
        vendor = meta.get("vendor") if isinstance(meta, dict) else None
        added = 0
        for stub in stubs:
            template_id = stub.get("id")
            if not isinstance(template_id, str) or not template_id or template_id in idx.rf_templates_by_id:
                continue
            template_name = stub.get("name") if isinstance(stub.get("name"), str) else None
            template = RFTemplate(id=template_id, name=template_name or None)
            idx.rf_templates_by_id[template_id] = template
            if template_name and template_name not in idx.rf_templates_by_name:
                idx.rf_templates_by_name[template_name] = template
            added += 1
        logger.debug("Indexed %d RF template stubs from %s (vendor=%s)", added, file_path.name, vendor)


def _rf_stubs(raw: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(raw, dict):
        return None
    templates = raw.get("templates")
    if templates is None:
        return []
    if not isinstance(templates, dict):
        return None
    rf = templates.get("rf")
    if rf is None:
        return []
    if not isinstance(rf, list):
        return None
    return [stub for stub in rf if isinstance(stub, dict)]
