import pytest

from mist_cache.errors import UnknownDeviceType
from mist_cache.models import (
    APDevice,
    CacheStore,
    DeviceType,
    OrgData,
    Site,
    SwitchDevice,
    UnifiedDevice,
    new_unified_device,
    parse_device_type,
)


def test_unknown_keys_survive_round_trip():
    raw = {"id": "s1", "name": "HQ", "future_field": {"nested": [1, 2]}}
    site = Site.from_dict(raw)

    assert site.id == "s1"
    assert site.additional_config == {"future_field": {"nested": [1, 2]}}
    assert site.to_dict() == raw


def test_wrong_type_kept_in_additional_config():
    site = Site.from_dict({"id": "s1", "name": 42})
    assert site.name is None
    assert site.additional_config == {"name": 42}
    assert site.to_dict()["name"] == 42


def test_numeric_coercion():
    ap = APDevice.from_dict({"created_time": 1700000000.0, "height": 3, "connected": True})
    assert ap.created_time == 1700000000
    assert isinstance(ap.created_time, int)
    assert ap.height == 3.0
    assert isinstance(ap.height, float)
    assert ap.connected is True


def test_bool_is_not_an_int():
    ap = APDevice.from_dict({"orientation": True})
    assert ap.orientation is None
    assert ap.additional_config == {"orientation": True}


def test_from_dict_copies_input():
    raw = {"radio_config": {"band_24": {"power": 10}}}
    ap = APDevice.from_dict(raw)
    raw["radio_config"]["band_24"]["power"] = 20
    assert ap.radio_config == {"band_24": {"power": 10}}


def test_parse_device_type():
    assert parse_device_type("AP") is DeviceType.ap
    assert parse_device_type(DeviceType.switch) is DeviceType.switch
    with pytest.raises(UnknownDeviceType):
        parse_device_type("router")
    with pytest.raises(UnknownDeviceType):
        parse_device_type(None)


def test_unified_device_routes_extra_keys_to_device_config():
    dev = UnifiedDevice.from_dict(
        {"mac": "aabbccddeeff", "name": "sw1", "type": "switch", "port_config": {"ge-0/0/0": {}}, "role": "access"}
    )
    assert dev.device_type == "switch"
    assert dev.device_config == {"port_config": {"ge-0/0/0": {}}, "role": "access"}
    assert "device_type" not in dev.to_dict()
    assert dev.to_dict()["role"] == "access"


def test_typed_record_to_unified_and_back():
    sw = SwitchDevice.from_dict({"mac": "aabbccddeeff", "name": "sw1", "role": "core", "x-custom": 1})
    unified = sw.to_unified(DeviceType.switch)

    assert unified.device_type == "switch"
    assert unified.device_config == {"role": "core", "x-custom": 1}

    back = unified.to_record()
    assert isinstance(back, SwitchDevice)
    assert back.role == "core"
    assert back.additional_config == {"x-custom": 1}


def test_new_unified_device():
    dev = new_unified_device("gateway")
    assert dev.type == "gateway"
    assert dev.type_key == "gateway"


def test_fresh_org_data_is_fully_empty():
    org = OrgData()
    assert org.sites.info == [] and org.sites.settings == []
    assert org.templates.rf == [] and org.templates.gateway == [] and org.templates.wlan == []
    assert org.wlans.org == [] and org.wlans.sites == {}
    assert org.inventory.ap == {} and org.configs.gateway == {}
    assert org.profiles.devices == [] and org.profiles.details == []


def test_store_layout_round_trip():
    raw = {
        "version": 1,
        "orgs": {
            "org-1": {
                "org_stats": {"name": "Acme", "num_sites": 2},
                "sites": {"info": [{"id": "s1", "name": "HQ"}], "settings": [{"id": "ss1", "site_id": "s1"}]},
                "templates": {"rf": [{"id": "rf1", "name": "Dense"}], "gateway": [], "wlan": []},
                "networks": [{"id": "n1", "name": "corp", "vlan_id": 10}],
                "wlans": {"org": [{"id": "w1", "ssid": "guest"}], "sites": {"s1": [{"id": "w2", "ssid": "lab"}]}},
                "inventory": {"ap": {"AA:BB:CC:DD:EE:FF": {"mac": "aabbccddeeff", "name": "ap1"}}},
                "profiles": {"devices": [{"id": "p1", "name": "prof", "type": "ap"}], "details": [{"id": "p1"}]},
                "configs": {"switch": {"001122334455": {"mac": "001122334455", "name": "sw1"}}},
            }
        },
    }
    store = CacheStore.from_dict(raw)
    org = store.orgs["org-1"]

    assert org.org_stats.num_sites == 2
    assert list(org.inventory.ap) == ["aabbccddeeff"]
    assert org.wlans.sites["s1"][0].ssid == "lab"
    assert org.configs.switch["001122334455"].name == "sw1"

    again = CacheStore.from_dict(store.to_dict())
    assert again == store


def test_store_rejects_bad_layout():
    with pytest.raises(ValueError):
        CacheStore.from_dict({"version": "one", "orgs": {}})
    with pytest.raises(ValueError):
        CacheStore.from_dict({"version": 1, "orgs": {"o": {"networks": {}}}})
