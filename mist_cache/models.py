"""
Typed records mirrored from the remote inventory system.

Every record keeps a fixed typed field set plus one ``additional_config``
map. Keys outside the typed set, and values of the wrong type for a typed
field, land in ``additional_config`` and are written back verbatim by
``to_dict``. Field names match the remote API so raw payloads load without
renaming.
"""
import copy
from dataclasses import dataclass, field, fields
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .errors import UnknownDeviceType
from .macaddr import normalize_fast

CACHE_VERSION = 1

EXTRA_FIELD = "additional_config"

# Field metadata flag for dataclass fields that are never read from / written to dicts.
_INTERNAL = {"internal": True}

R = TypeVar("R", bound="Record")


class DeviceType(str, Enum):
    """Device classes tracked by the cache."""

    ap = "ap"
    switch = "switch"
    gateway = "gateway"


def parse_device_type(value: Any) -> DeviceType:
    """
    Map a device type string onto DeviceType.

    Raises:
        UnknownDeviceType: for anything other than ap, switch or gateway.
    """
    if isinstance(value, DeviceType):
        return value
    if isinstance(value, str):
        try:
            return DeviceType(value.strip().lower())
        except ValueError:
            pass
    raise UnknownDeviceType(value)


@lru_cache(maxsize=None)
def _field_types(cls: type) -> Dict[str, Any]:
    """Return {field name: runtime type} for the serialized fields of a record class."""
    hints = get_type_hints(cls)
    out: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name == EXTRA_FIELD or f.metadata.get("internal"):
            continue
        hint = hints[f.name]
        if get_origin(hint) is Union:
            args = [a for a in get_args(hint) if a is not type(None)]
            hint = args[0] if len(args) == 1 else Any
        out[f.name] = get_origin(hint) or hint
    return out


def _coerce(value: Any, target: Any) -> Tuple[Any, bool]:
    """Best-effort conversion of value to target. Returns (value, accepted)."""
    if value is None or target is Any:
        return value, True
    if target is bool:
        return value, isinstance(value, bool)
    if isinstance(value, bool):
        return value, False
    if target is int:
        if isinstance(value, int):
            return value, True
        if isinstance(value, float) and value.is_integer():
            return int(value), True
        return value, False
    if target is float:
        if isinstance(value, (int, float)):
            return float(value), True
        return value, False
    return value, isinstance(value, target)


def _split_known(cls: type, data: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split a raw dict into typed kwargs for cls and everything else."""
    types = _field_types(cls)
    known: Dict[str, Any] = {}
    rest: Dict[str, Any] = {}
    for key, value in data.items():
        target = types.get(key)
        if target is None:
            rest[key] = copy.deepcopy(value)
            continue
        coerced, ok = _coerce(value, target)
        if ok:
            known[key] = copy.deepcopy(coerced)
        else:
            rest[key] = copy.deepcopy(value)
    return known, rest


@dataclass
class Record:
    """Base for all cached entities: typed fields plus an extension map."""

    additional_config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls: Type[R], data: Dict[str, Any]) -> R:
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} expects an object, got {type(data).__name__}")
        known, rest = _split_known(cls, data)
        return cls(additional_config=rest, **known)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in _field_types(type(self)):
            value = getattr(self, name)
            if value is not None:
                out[name] = copy.deepcopy(value)
        for key, value in self.additional_config.items():
            out.setdefault(key, copy.deepcopy(value))
        return out


@dataclass
class OrgStats(Record):
    """Organization summary from the org stats endpoint."""

    id: Optional[str] = None
    name: Optional[str] = None
    msp_id: Optional[str] = None
    alarmtemplate_id: Optional[str] = None
    allow_mist: Optional[bool] = None
    created_time: Optional[float] = None
    modified_time: Optional[float] = None
    num_devices: Optional[int] = None
    num_devices_connected: Optional[int] = None
    num_devices_disconnected: Optional[int] = None
    num_inventory: Optional[int] = None
    num_sites: Optional[int] = None
    orggroup_ids: Optional[List[str]] = None
    session_expiry: Optional[int] = None
    sle: Optional[List[Dict[str, Any]]] = None


@dataclass
class Site(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    org_id: Optional[str] = None
    address: Optional[str] = None
    country_code: Optional[str] = None
    timezone: Optional[str] = None
    notes: Optional[str] = None
    latlng: Optional[Dict[str, Any]] = None
    created_time: Optional[float] = None
    modified_time: Optional[float] = None
    alarmtemplate_id: Optional[str] = None
    aptemplate_id: Optional[str] = None
    gatewaytemplate_id: Optional[str] = None
    networktemplate_id: Optional[str] = None
    rftemplate_id: Optional[str] = None
    secpolicy_id: Optional[str] = None
    sitetemplate_id: Optional[str] = None
    sitegroup_ids: Optional[List[str]] = None
    vars: Optional[Dict[str, Any]] = None


@dataclass
class SiteSetting(Record):
    id: Optional[str] = None
    site_id: Optional[str] = None
    org_id: Optional[str] = None
    created_time: Optional[float] = None
    modified_time: Optional[float] = None
    for_site: Optional[bool] = None
    ap_updown_threshold: Optional[int] = None
    device_updown_threshold: Optional[int] = None
    config_auto_revert: Optional[bool] = None
    persist_config_on_device: Optional[bool] = None
    dns_servers: Optional[List[str]] = None
    dns_suffix: Optional[List[str]] = None
    ntp_servers: Optional[List[str]] = None
    ssh_keys: Optional[List[str]] = None
    vars: Optional[Dict[str, Any]] = None
    auto_upgrade: Optional[Dict[str, Any]] = None


@dataclass
class RFTemplate(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    org_id: Optional[str] = None
    ant_gain_24: Optional[int] = None
    ant_gain_5: Optional[int] = None
    ant_gain_6: Optional[int] = None
    band_24: Optional[Dict[str, Any]] = None
    band_24_usage: Optional[str] = None
    band_5: Optional[Dict[str, Any]] = None
    band_5_on_24_radio: Optional[Dict[str, Any]] = None
    band_6: Optional[Dict[str, Any]] = None
    country_code: Optional[str] = None
    for_site: Optional[bool] = None
    scanning_enabled: Optional[bool] = None
    model_specific: Optional[Dict[str, Any]] = None
    created_time: Optional[int] = None
    modified_time: Optional[int] = None


@dataclass
class GatewayTemplate(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    org_id: Optional[str] = None
    type: Optional[str] = None
    networks: Optional[Dict[str, Any]] = None
    port_config: Optional[Dict[str, Any]] = None
    bgp_config: Optional[Dict[str, Any]] = None
    vrf_config: Optional[Dict[str, Any]] = None
    routing_config: Optional[Dict[str, Any]] = None
    created_time: Optional[int] = None
    modified_time: Optional[int] = None


@dataclass
class WLANTemplate(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    org_id: Optional[str] = None
    ssid: Optional[str] = None
    vlan_id: Optional[int] = None
    interface: Optional[str] = None
    auth: Optional[Dict[str, Any]] = None
    qos: Optional[Dict[str, Any]] = None
    band: Optional[str] = None
    enabled: Optional[bool] = None
    hidden: Optional[bool] = None
    created_time: Optional[int] = None
    modified_time: Optional[int] = None


@dataclass
class Network(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    org_id: Optional[str] = None
    vlan_id: Optional[int] = None
    subnet: Optional[str] = None
    gateway: Optional[str] = None
    subnet6: Optional[str] = None
    gateway6: Optional[str] = None
    internal_access: Optional[bool] = None
    internet_access: Optional[bool] = None
    isolation: Optional[bool] = None
    multicast: Optional[bool] = None
    tenants: Optional[List[str]] = None
    created_time: Optional[int] = None
    modified_time: Optional[int] = None


@dataclass
class WLAN(Record):
    """A WLAN, either org-level or bound to one site. Indexed by SSID."""

    id: Optional[str] = None
    ssid: Optional[str] = None
    org_id: Optional[str] = None
    site_id: Optional[str] = None
    vlan_id: Optional[int] = None
    interface: Optional[str] = None
    isolation: Optional[bool] = None
    auth: Optional[Dict[str, Any]] = None
    qos: Optional[Dict[str, Any]] = None
    band: Optional[str] = None
    enabled: Optional[bool] = None
    hidden: Optional[bool] = None
    created_time: Optional[int] = None
    modified_time: Optional[int] = None


@dataclass
class DeviceProfile(Record):
    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    org_id: Optional[str] = None
    site_id: Optional[str] = None
    for_site: Optional[bool] = None
    created_time: Optional[float] = None
    modified_time: Optional[float] = None


@dataclass
class DeviceRecord(Record):
    """Fields common to every physical device, whatever its type."""

    id: Optional[str] = None
    mac: Optional[str] = None
    serial: Optional[str] = None
    name: Optional[str] = None
    model: Optional[str] = None
    type: Optional[str] = None
    magic: Optional[str] = None
    hw_rev: Optional[str] = None
    sku: Optional[str] = None
    site_id: Optional[str] = None
    org_id: Optional[str] = None
    created_time: Optional[int] = None
    modified_time: Optional[int] = None
    deviceprofile_id: Optional[str] = None
    connected: Optional[bool] = None
    adopted: Optional[bool] = None
    hostname: Optional[str] = None
    notes: Optional[str] = None
    jsi: Optional[bool] = None
    tags: Optional[List[str]] = None

    def to_unified(self, device_type: Union[str, DeviceType, None] = None) -> "UnifiedDevice":
        """Project this record onto the cross-type UnifiedDevice view."""
        if device_type is None:
            device_type = self.type
        kind = parse_device_type(device_type)
        unified = UnifiedDevice.from_dict(self.to_dict())
        unified.device_type = kind.value
        return unified


BASE_DEVICE_FIELDS: Tuple[str, ...] = tuple(_field_types(DeviceRecord))


@dataclass
class APDevice(DeviceRecord):
    location: Optional[List[float]] = None
    orientation: Optional[int] = None
    map_id: Optional[str] = None
    height: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    for_site: Optional[bool] = None
    locked: Optional[bool] = None
    disable_eth1: Optional[bool] = None
    poe_passthrough: Optional[bool] = None
    radio_config: Optional[Dict[str, Any]] = None
    ble_config: Optional[Dict[str, Any]] = None
    ip_config: Optional[Dict[str, Any]] = None
    mesh: Optional[Dict[str, Any]] = None
    port_config: Optional[Dict[str, Any]] = None


@dataclass
class SwitchDevice(DeviceRecord):
    ip: Optional[str] = None
    port: Optional[int] = None
    version: Optional[str] = None
    role: Optional[str] = None
    managed: Optional[bool] = None
    router_id: Optional[str] = None
    port_config: Optional[Dict[str, Any]] = None
    networks: Optional[Dict[str, Any]] = None
    ip_config: Optional[Dict[str, Any]] = None
    oob_ip_config: Optional[Dict[str, Any]] = None
    stp_config: Optional[Dict[str, Any]] = None


@dataclass
class GatewayDevice(DeviceRecord):
    mgmt_intf: Optional[str] = None
    version: Optional[str] = None
    ip: Optional[str] = None
    port_config: Optional[Dict[str, Any]] = None
    ip_configs: Optional[Dict[str, Any]] = None
    dhcpd_config: Optional[Dict[str, Any]] = None
    routing_policies: Optional[Dict[str, Any]] = None
    tunnel_configs: Optional[Dict[str, Any]] = None


# Device configs share the inventory schema.
APConfig = APDevice
SwitchConfig = SwitchDevice
GatewayConfig = GatewayDevice

DEVICE_CLASSES: Dict[DeviceType, Type[DeviceRecord]] = {
    DeviceType.ap: APDevice,
    DeviceType.switch: SwitchDevice,
    DeviceType.gateway: GatewayDevice,
}


@dataclass
class UnifiedDevice(DeviceRecord):
    """
    Canonical cross-type device view.

    device_config holds every device-specific key (anything outside the base
    device fields). device_type is the routing class (ap, switch, gateway)
    and is not serialized.
    """

    device_config: Dict[str, Any] = field(default_factory=dict, metadata=_INTERNAL)
    device_type: str = field(default="", metadata=_INTERNAL)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnifiedDevice":
        if not isinstance(data, dict):
            raise TypeError(f"UnifiedDevice expects an object, got {type(data).__name__}")
        base = {k: v for k, v in data.items() if k in BASE_DEVICE_FIELDS}
        known, rejected = _split_known(cls, base)
        device_config = {k: copy.deepcopy(v) for k, v in data.items() if k not in BASE_DEVICE_FIELDS}
        device_type = data.get("type") if isinstance(data.get("type"), str) else ""
        return cls(
            additional_config=rejected,
            device_config=device_config,
            device_type=device_type,
            **known,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in BASE_DEVICE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                out[name] = copy.deepcopy(value)
        for extra in (self.device_config, self.additional_config):
            for key, value in extra.items():
                out.setdefault(key, copy.deepcopy(value))
        return out

    @property
    def type_key(self) -> str:
        """Bucket key for type indexes: device_type, else type, else ""."""
        return self.device_type or self.type or ""

    def to_record(self) -> DeviceRecord:
        """Convert back to the typed inventory record for this device's type."""
        cls = DEVICE_CLASSES[parse_device_type(self.type_key)]
        return cls.from_dict(self.to_dict())


def new_unified_device(device_type: Union[str, DeviceType]) -> UnifiedDevice:
    kind = parse_device_type(device_type)
    return UnifiedDevice(type=kind.value, device_type=kind.value)


def _require_dict(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object")
    return value


def _require_list(value: Any, name: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be an array")
    return value


@dataclass
class SitesData:
    info: List[Site] = field(default_factory=list)
    settings: List[SiteSetting] = field(default_factory=list)


@dataclass
class TemplatesData:
    rf: List[RFTemplate] = field(default_factory=list)
    gateway: List[GatewayTemplate] = field(default_factory=list)
    wlan: List[WLANTemplate] = field(default_factory=list)


@dataclass
class WLANsData:
    org: List[WLAN] = field(default_factory=list)
    sites: Dict[str, List[WLAN]] = field(default_factory=dict)  # key = site ID


@dataclass
class DeviceMaps:
    """Per-type device maps keyed by normalized MAC. Used for inventory and configs."""

    ap: Dict[str, APDevice] = field(default_factory=dict)
    switch: Dict[str, SwitchDevice] = field(default_factory=dict)
    gateway: Dict[str, GatewayDevice] = field(default_factory=dict)

    def for_type(self, device_type: Union[str, DeviceType]) -> Dict[str, DeviceRecord]:
        return getattr(self, parse_device_type(device_type).value)

    def replace(self, device_type: Union[str, DeviceType], devices: Dict[str, DeviceRecord]) -> None:
        setattr(self, parse_device_type(device_type).value, devices)

    def items(self) -> Iterator[Tuple[DeviceType, Dict[str, DeviceRecord]]]:
        for kind in DeviceType:
            yield kind, getattr(self, kind.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            kind.value: {mac: dev.to_dict() for mac, dev in devices.items()}
            for kind, devices in self.items()
        }

    @classmethod
    def from_dict(cls, data: Any, name: str) -> "DeviceMaps":
        raw = _require_dict(data, name)
        maps = cls()
        for kind, record_cls in DEVICE_CLASSES.items():
            entries = _require_dict(raw.get(kind.value), f"{name}.{kind.value}")
            maps.replace(kind, {normalize_fast(mac): record_cls.from_dict(dev) for mac, dev in entries.items()})
        return maps


@dataclass
class ProfilesData:
    devices: List[DeviceProfile] = field(default_factory=list)
    details: List[Dict[str, Any]] = field(default_factory=list)  # opaque full profile payloads


@dataclass
class OrgData:
    """All cached data for a single organization. A fresh OrgData() is fully empty, never partial."""

    org_stats: Optional[OrgStats] = None
    sites: SitesData = field(default_factory=SitesData)
    templates: TemplatesData = field(default_factory=TemplatesData)
    networks: List[Network] = field(default_factory=list)
    wlans: WLANsData = field(default_factory=WLANsData)
    inventory: DeviceMaps = field(default_factory=DeviceMaps)
    profiles: ProfilesData = field(default_factory=ProfilesData)
    configs: DeviceMaps = field(default_factory=DeviceMaps)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.org_stats is not None:
            out["org_stats"] = self.org_stats.to_dict()
        out["sites"] = {
            "info": [s.to_dict() for s in self.sites.info],
            "settings": [s.to_dict() for s in self.sites.settings],
        }
        out["templates"] = {
            "rf": [t.to_dict() for t in self.templates.rf],
            "gateway": [t.to_dict() for t in self.templates.gateway],
            "wlan": [t.to_dict() for t in self.templates.wlan],
        }
        out["networks"] = [n.to_dict() for n in self.networks]
        out["wlans"] = {
            "org": [w.to_dict() for w in self.wlans.org],
            "sites": {site_id: [w.to_dict() for w in wlans] for site_id, wlans in self.wlans.sites.items()},
        }
        out["inventory"] = self.inventory.to_dict()
        out["profiles"] = {
            "devices": [p.to_dict() for p in self.profiles.devices],
            "details": copy.deepcopy(self.profiles.details),
        }
        out["configs"] = self.configs.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "OrgData":
        raw = _require_dict(data, "org")
        org = cls()

        stats = raw.get("org_stats")
        if stats is not None:
            org.org_stats = OrgStats.from_dict(_require_dict(stats, "org_stats"))

        sites = _require_dict(raw.get("sites"), "sites")
        org.sites.info = [Site.from_dict(s) for s in _require_list(sites.get("info"), "sites.info")]
        org.sites.settings = [SiteSetting.from_dict(s) for s in _require_list(sites.get("settings"), "sites.settings")]

        templates = _require_dict(raw.get("templates"), "templates")
        org.templates.rf = [RFTemplate.from_dict(t) for t in _require_list(templates.get("rf"), "templates.rf")]
        org.templates.gateway = [
            GatewayTemplate.from_dict(t) for t in _require_list(templates.get("gateway"), "templates.gateway")
        ]
        org.templates.wlan = [WLANTemplate.from_dict(t) for t in _require_list(templates.get("wlan"), "templates.wlan")]

        org.networks = [Network.from_dict(n) for n in _require_list(raw.get("networks"), "networks")]

        wlans = _require_dict(raw.get("wlans"), "wlans")
        org.wlans.org = [WLAN.from_dict(w) for w in _require_list(wlans.get("org"), "wlans.org")]
        org.wlans.sites = {
            site_id: [WLAN.from_dict(w) for w in _require_list(site_wlans, f"wlans.sites.{site_id}")]
            for site_id, site_wlans in _require_dict(wlans.get("sites"), "wlans.sites").items()
        }

        org.inventory = DeviceMaps.from_dict(raw.get("inventory"), "inventory")

        profiles = _require_dict(raw.get("profiles"), "profiles")
        org.profiles.devices = [
            DeviceProfile.from_dict(p) for p in _require_list(profiles.get("devices"), "profiles.devices")
        ]
        details = _require_list(profiles.get("details"), "profiles.details")
        org.profiles.details = [copy.deepcopy(_require_dict(d, "profiles.details[]")) for d in details]

        org.configs = DeviceMaps.from_dict(raw.get("configs"), "configs")
        return org


@dataclass
class CacheStore:
    """Persisted root: format version plus one OrgData per organization ID."""

    version: int = CACHE_VERSION
    orgs: Dict[str, OrgData] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "orgs": {org_id: org.to_dict() for org_id, org in self.orgs.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheStore":
        raw = _require_dict(data, "cache")
        version = raw.get("version")
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValueError("version must be an integer")
        orgs = _require_dict(raw.get("orgs"), "orgs")
        return cls(version=version, orgs={org_id: OrgData.from_dict(org) for org_id, org in orgs.items()})

    @classmethod
    def with_org(cls, org_id: str) -> "CacheStore":
        """A store holding a single empty organization."""
        return cls(orgs={org_id: OrgData()})
