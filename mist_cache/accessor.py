"""
Read-only lookup surface over a CacheManager's indexes.

Build one CacheAccessor per process (open_cache_accessor does this from
Settings) and pass it to whatever needs lookups. Returned records are the
store's own objects; treat them as read-only.
"""
import logging
from typing import Any, Dict, List, Mapping, TypeVar, Union

from .cache_manager import CacheManager, load_or_empty
from .config import Settings
from .errors import NotFoundError
from .indexes import CacheIndexes
from .logging_config import configure_logging
from .macaddr import normalize
from .models import (
    WLAN,
    APDevice,
    DeviceProfile,
    DeviceRecord,
    DeviceType,
    GatewayDevice,
    GatewayTemplate,
    Network,
    OrgStats,
    RFTemplate,
    Site,
    SiteSetting,
    SwitchDevice,
    WLANTemplate,
    parse_device_type,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _lookup(index: Mapping[str, T], key: str, kind: str) -> T:
    try:
        return index[key]
    except KeyError:
        raise NotFoundError(kind, key) from None


class CacheAccessor:
    """O(1) lookups by name, ID or MAC for every indexed collection."""

    def __init__(self, manager: CacheManager):
        self.manager = manager

    @property
    def _idx(self) -> CacheIndexes:
        return self.manager.get_indexes()

    def is_initialized(self) -> bool:
        return self.manager.initialized

    def get_cache_stats(self) -> Dict[str, int]:
        return self.manager.get_cache_stats()

    # orgs and sites

    def get_org_by_name(self, name: str) -> OrgStats:
        return _lookup(self._idx.org_stats_by_name, name, "org")

    def get_org_by_id(self, org_id: str) -> OrgStats:
        return _lookup(self._idx.org_stats_by_id, org_id, "org")

    def get_all_orgs(self) -> List[OrgStats]:
        return list(self._idx.org_stats_by_id.values())

    def get_site_by_name(self, name: str) -> Site:
        return _lookup(self._idx.sites_by_name, name, "site")

    def get_site_by_id(self, site_id: str) -> Site:
        return _lookup(self._idx.sites_by_id, site_id, "site")

    def get_all_sites(self) -> List[Site]:
        return list(self._idx.sites_by_id.values())

    def get_site_setting_by_id(self, setting_id: str) -> SiteSetting:
        return _lookup(self._idx.site_settings_by_id, setting_id, "site setting")

    def get_site_setting_by_site_id(self, site_id: str) -> SiteSetting:
        return _lookup(self._idx.site_settings_by_site_id, site_id, "site setting")

    def get_all_site_settings(self) -> List[SiteSetting]:
        return list(self._idx.site_settings_by_id.values())

    # templates and networks

    def get_rf_template_by_name(self, name: str) -> RFTemplate:
        return _lookup(self._idx.rf_templates_by_name, name, "RF template")

    def get_rf_template_by_id(self, template_id: str) -> RFTemplate:
        return _lookup(self._idx.rf_templates_by_id, template_id, "RF template")

    def get_all_rf_templates(self) -> List[RFTemplate]:
        return list(self._idx.rf_templates_by_id.values())

    def get_gateway_template_by_name(self, name: str) -> GatewayTemplate:
        return _lookup(self._idx.gateway_templates_by_name, name, "gateway template")

    def get_gateway_template_by_id(self, template_id: str) -> GatewayTemplate:
        return _lookup(self._idx.gateway_templates_by_id, template_id, "gateway template")

    def get_all_gateway_templates(self) -> List[GatewayTemplate]:
        return list(self._idx.gateway_templates_by_id.values())

    def get_wlan_template_by_name(self, name: str) -> WLANTemplate:
        return _lookup(self._idx.wlan_templates_by_name, name, "WLAN template")

    def get_wlan_template_by_id(self, template_id: str) -> WLANTemplate:
        return _lookup(self._idx.wlan_templates_by_id, template_id, "WLAN template")

    def get_all_wlan_templates(self) -> List[WLANTemplate]:
        return list(self._idx.wlan_templates_by_id.values())

    def get_network_by_name(self, name: str) -> Network:
        return _lookup(self._idx.networks_by_name, name, "network")

    def get_network_by_id(self, network_id: str) -> Network:
        return _lookup(self._idx.networks_by_id, network_id, "network")

    def get_all_networks(self) -> List[Network]:
        return list(self._idx.networks_by_id.values())

    # WLANs

    def get_org_wlan_by_ssid(self, ssid: str) -> WLAN:
        return _lookup(self._idx.org_wlans_by_ssid, ssid, "WLAN")

    def get_org_wlan_by_id(self, wlan_id: str) -> WLAN:
        return _lookup(self._idx.org_wlans_by_id, wlan_id, "WLAN")

    def get_all_org_wlans(self) -> List[WLAN]:
        return list(self._idx.org_wlans_by_id.values())

    def get_site_wlan_by_ssid(self, site_id: str, ssid: str) -> WLAN:
        site_wlans = _lookup(self._idx.site_wlans_by_ssid, site_id, "site WLANs")
        return _lookup(site_wlans, ssid, "WLAN")

    def get_site_wlan_by_id(self, site_id: str, wlan_id: str) -> WLAN:
        site_wlans = _lookup(self._idx.site_wlans_by_id, site_id, "site WLANs")
        return _lookup(site_wlans, wlan_id, "WLAN")

    def get_site_wlans(self, site_id: str) -> List[WLAN]:
        return list(_lookup(self._idx.site_wlans_by_id, site_id, "site WLANs").values())

    def get_all_site_wlans(self) -> Dict[str, List[WLAN]]:
        return {site_id: list(wlans.values()) for site_id, wlans in self._idx.site_wlans_by_id.items()}

    # inventory

    def _inventory_by_mac(self, kind: DeviceType, mac: str) -> DeviceRecord:
        return _lookup(self._idx.inventory_by_mac[kind.value], normalize(mac), kind.value)

    def _inventory_by_name(self, kind: DeviceType, name: str) -> DeviceRecord:
        return _lookup(self._idx.inventory_by_name[kind.value], name, kind.value)

    def _inventory_by_site(self, kind: DeviceType, site_id: str) -> List[DeviceRecord]:
        return list(self._idx.inventory_by_site[kind.value].get(site_id, []))

    def _inventory_all(self, kind: DeviceType) -> List[DeviceRecord]:
        return list(self._idx.inventory_by_mac[kind.value].values())

    def get_ap_by_mac(self, mac: str) -> APDevice:
        return self._inventory_by_mac(DeviceType.ap, mac)

    def get_ap_by_name(self, name: str) -> APDevice:
        return self._inventory_by_name(DeviceType.ap, name)

    def get_aps_by_site(self, site_id: str) -> List[APDevice]:
        return self._inventory_by_site(DeviceType.ap, site_id)

    def get_all_aps(self) -> List[APDevice]:
        return self._inventory_all(DeviceType.ap)

    def get_switch_by_mac(self, mac: str) -> SwitchDevice:
        return self._inventory_by_mac(DeviceType.switch, mac)

    def get_switch_by_name(self, name: str) -> SwitchDevice:
        return self._inventory_by_name(DeviceType.switch, name)

    def get_switches_by_site(self, site_id: str) -> List[SwitchDevice]:
        return self._inventory_by_site(DeviceType.switch, site_id)

    def get_all_switches(self) -> List[SwitchDevice]:
        return self._inventory_all(DeviceType.switch)

    def get_gateway_by_mac(self, mac: str) -> GatewayDevice:
        return self._inventory_by_mac(DeviceType.gateway, mac)

    def get_gateway_by_name(self, name: str) -> GatewayDevice:
        return self._inventory_by_name(DeviceType.gateway, name)

    def get_gateways_by_site(self, site_id: str) -> List[GatewayDevice]:
        return self._inventory_by_site(DeviceType.gateway, site_id)

    def get_all_gateways(self) -> List[GatewayDevice]:
        return self._inventory_all(DeviceType.gateway)

    def get_device_by_mac(self, device_type: Union[str, DeviceType], mac: str) -> DeviceRecord:
        """
        Inventory lookup dispatched on device type.

        Raises:
            UnknownDeviceType: if device_type is not ap, switch or gateway.
            InvalidMAC: if mac is malformed.
            NotFoundError: if no device of that type has this MAC.
        """
        return self._inventory_by_mac(parse_device_type(device_type), mac)

    # configs

    def _config_by_mac(self, kind: DeviceType, mac: str) -> DeviceRecord:
        return _lookup(self._idx.configs_by_mac[kind.value], normalize(mac), f"{kind.value} config")

    def _config_by_name(self, kind: DeviceType, name: str) -> DeviceRecord:
        return _lookup(self._idx.configs_by_name[kind.value], name, f"{kind.value} config")

    def get_ap_config_by_mac(self, mac: str) -> APDevice:
        return self._config_by_mac(DeviceType.ap, mac)

    def get_ap_config_by_name(self, name: str) -> APDevice:
        return self._config_by_name(DeviceType.ap, name)

    def get_all_ap_configs(self) -> List[APDevice]:
        return list(self._idx.configs_by_mac[DeviceType.ap.value].values())

    def get_switch_config_by_mac(self, mac: str) -> SwitchDevice:
        return self._config_by_mac(DeviceType.switch, mac)

    def get_switch_config_by_name(self, name: str) -> SwitchDevice:
        return self._config_by_name(DeviceType.switch, name)

    def get_all_switch_configs(self) -> List[SwitchDevice]:
        return list(self._idx.configs_by_mac[DeviceType.switch.value].values())

    def get_gateway_config_by_mac(self, mac: str) -> GatewayDevice:
        return self._config_by_mac(DeviceType.gateway, mac)

    def get_gateway_config_by_name(self, name: str) -> GatewayDevice:
        return self._config_by_name(DeviceType.gateway, name)

    def get_all_gateway_configs(self) -> List[GatewayDevice]:
        return list(self._idx.configs_by_mac[DeviceType.gateway.value].values())

    def get_config_by_mac(self, device_type: Union[str, DeviceType], mac: str) -> DeviceRecord:
        """Config lookup dispatched on device type. Raises like get_device_by_mac."""
        return self._config_by_mac(parse_device_type(device_type), mac)

    # device profiles

    def get_device_profile_by_name(self, name: str) -> DeviceProfile:
        return _lookup(self._idx.device_profiles_by_name, name, "device profile")

    def get_device_profile_by_id(self, profile_id: str) -> DeviceProfile:
        return _lookup(self._idx.device_profiles_by_id, profile_id, "device profile")

    def get_device_profiles_by_type(self, device_type: str) -> List[DeviceProfile]:
        wanted = device_type.lower()
        return [p for p in self._idx.device_profiles_by_id.values() if (p.type or "").lower() == wanted]

    def get_all_device_profiles(self) -> List[DeviceProfile]:
        return list(self._idx.device_profiles_by_id.values())

    def get_device_profile_detail_by_name(self, name: str) -> Dict[str, Any]:
        return _lookup(self._idx.profile_details_by_name, name, "device profile detail")

    def get_device_profile_detail_by_id(self, profile_id: str) -> Dict[str, Any]:
        return _lookup(self._idx.profile_details_by_id, profile_id, "device profile detail")

    def get_all_device_profile_details(self) -> List[Dict[str, Any]]:
        return list(self._idx.profile_details_by_id.values())


def open_cache_accessor(settings: Settings, setup_logging: bool = False) -> CacheAccessor:
    """
    Build the process-wide accessor from settings, starting empty if the cache file is unusable.

    Hosts without their own logging setup pass setup_logging=True to configure
    the root logger from settings.log_level and settings.log_dir first.
    """
    if setup_logging:
        configure_logging(settings.log_level, settings.log_dir)
    manager = CacheManager(settings.cache_path, settings.snapshot_dir, settings.cache_ttl)
    load_or_empty(manager)
    logger.info("Cache accessor ready for %s", settings.cache_path)
    return CacheAccessor(manager)
