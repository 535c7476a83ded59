import json

import pytest

from mist_cache.errors import CacheSaveError, InvalidMAC, NotFoundError, UnknownDeviceType
from mist_cache.models import APDevice, DeviceProfile, OrgData, Site, SwitchDevice, UnifiedDevice
from mist_cache.unified import UnifiedCache, new_cache


@pytest.fixture
def cache(tmp_path):
    return new_cache(tmp_path / "cache.json", "org-1")


def test_new_cache_on_missing_file(cache):
    assert not cache.is_dirty()
    assert cache.manager.initialized


def test_new_cache_replaces_corrupt_file(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{corrupt", encoding="utf-8")

    cache = new_cache(path, "org-1")

    assert list(cache.manager.get_cache().orgs) == ["org-1"]
    assert json.loads(path.read_text(encoding="utf-8"))["orgs"] == {"org-1": OrgData().to_dict()}


def test_new_cache_requires_arguments(tmp_path):
    with pytest.raises(ValueError):
        new_cache("", "org-1")
    with pytest.raises(ValueError):
        new_cache(tmp_path / "c.json", "")


def test_get_org_data_auto_creates_and_marks_dirty(cache):
    org = cache.get_org_data("org-2")
    assert org == OrgData()
    assert cache.is_dirty()
    assert cache.get_org_data("org-2") is org


def test_orgs_are_independent(cache):
    cache.update_site(Site(id="s1", name="HQ"))
    other = cache.get_org_data("org-2")

    assert other.sites.info == []
    assert [s.id for s in cache.get_all_sites()] == ["s1"]


def test_update_site_matches_by_id_then_name(cache):
    cache.update_site(Site(id="s1", name="HQ"))
    cache.update_site(Site(id="s1", name="Headquarters"))
    assert [s.name for s in cache.get_all_sites()] == ["Headquarters"]

    cache.update_site(Site(name="Headquarters", timezone="UTC"))
    sites = cache.get_all_sites()
    assert len(sites) == 1
    assert sites[0].timezone == "UTC"

    cache.update_site(Site(id="s2", name="Branch"))
    assert len(cache.get_all_sites()) == 2
    assert cache.manager.get_indexes().sites_by_name["Branch"].id == "s2"


def test_get_site_by_id_or_name(cache):
    cache.update_site(Site(id="s1", name="HQ"))
    assert cache.get_site("s1").name == "HQ"
    assert cache.get_site("HQ").id == "s1"
    with pytest.raises(NotFoundError):
        cache.get_site("nope")


def test_save_clears_dirty_and_failed_save_keeps_it(tmp_path):
    cache = new_cache(tmp_path / "cache.json", "org-1")
    cache.update_site(Site(id="s1", name="HQ"))
    assert cache.is_dirty()
    cache.save()
    assert not cache.is_dirty()

    broken = new_cache(tmp_path / "dir-cache", "org-1")
    (tmp_path / "dir-cache").mkdir()
    broken.mark_dirty()
    with pytest.raises(CacheSaveError):
        broken.save()
    assert broken.is_dirty()


def test_clear_keeps_single_empty_org(cache):
    cache.update_site(Site(id="s1", name="HQ"))
    cache.get_org_data("org-2")
    cache.save()

    cache.clear()

    assert list(cache.manager.get_cache().orgs) == ["org-1"]
    assert cache.get_all_sites() == []
    assert cache.is_dirty()


def test_device_round_trip_through_inventory(cache):
    device = UnifiedDevice.from_dict(
        {"mac": "AA:BB:CC:DD:EE:FF", "name": "ap-1", "type": "ap", "site_id": "s1", "height": 2.5}
    )
    cache.update_device(device)

    stored = cache.get_inventory("ap")
    assert len(stored) == 1
    assert isinstance(stored[0], APDevice)
    assert stored[0].height == 2.5

    found = cache.get_device("aabb.ccdd.eeff")
    assert found.device_type == "ap"
    assert found.name == "ap-1"
    assert found.device_config == {"height": 2.5}
    assert cache.manager.get_indexes().inventory_by_mac["ap"]["aabbccddeeff"].name == "ap-1"


def test_get_device_misses(cache):
    with pytest.raises(NotFoundError):
        cache.get_device("00:00:00:00:00:01")
    with pytest.raises(InvalidMAC):
        cache.get_device("zz")


def test_get_devices_by_type_filters_site(cache):
    cache.update_inventory(
        "switch",
        [
            SwitchDevice(mac="001122334401", name="sw-a", site_id="s1"),
            SwitchDevice(mac="001122334402", name="sw-b", site_id="s2"),
            {"mac": "001122334403", "name": "sw-c", "site_id": "s1"},
        ],
    )
    assert sorted(d.name for d in cache.get_devices_by_type("s1", "switch")) == ["sw-a", "sw-c"]
    assert len(cache.get_devices_by_type("", "switch")) == 3
    assert all(d.device_type == "switch" for d in cache.get_devices_by_type("", "switch"))


def test_unknown_device_type_is_an_error(cache):
    with pytest.raises(UnknownDeviceType):
        cache.get_inventory("router")
    with pytest.raises(UnknownDeviceType):
        cache.update_inventory("router", [])
    with pytest.raises(UnknownDeviceType):
        cache.get_devices_by_type("", "router")
    with pytest.raises(UnknownDeviceType):
        cache.update_device(UnifiedDevice(mac="aabbccddeeff"))
    with pytest.raises(UnknownDeviceType):
        cache.get_configs("org-1", "router")


def test_update_inventory_skips_items_without_mac(cache):
    cache.update_inventory("ap", [APDevice(name="no-mac"), APDevice(mac="aabbccddeeff", name="ap")])
    assert [d.name for d in cache.get_inventory("ap")] == ["ap"]


def test_configs_update_merge_and_all(cache):
    cache.update_configs("org-1", "ap", [APDevice(mac="aabbccddee01", name="a1")])
    cache.update_configs("org-1", "switch", [SwitchDevice(mac="001122334455", name="s1")])
    cache.merge_configs(
        "org-1",
        "ap",
        [APDevice(mac="aa:bb:cc:dd:ee:01", name="a1-renamed"), APDevice(mac="aabbccddee02", name="a2")],
    )

    ap_names = sorted(c.name for c in cache.get_configs("org-1", "ap"))
    assert ap_names == ["a1-renamed", "a2"]
    assert len(cache.get_configs("org-1", "all")) == 3
    assert cache.manager.get_indexes().configs_by_name["ap"]["a2"].mac == "aabbccddee02"

    cache.update_configs("org-1", "ap", [])
    assert cache.get_configs("org-1", "ap") == []


def test_profiles(cache):
    cache.update_profiles("devices", [DeviceProfile(id="p1", name="AP", type="ap"), {"id": "p2", "name": "SW"}])
    cache.update_profiles("details", [{"id": "p1", "name": "AP", "radio_config": {}}])

    assert [p.id for p in cache.get_profiles("devices")] == ["p1", "p2"]
    assert cache.get_profiles("details")[0]["id"] == "p1"
    assert cache.manager.get_indexes().profile_details_by_id["p1"]["name"] == "AP"

    with pytest.raises(ValueError):
        cache.get_profiles("templates")
    with pytest.raises(ValueError):
        cache.update_profiles("templates", [])
    with pytest.raises(ValueError):
        cache.update_profiles("details", ["not a dict"])


def test_set_org_data_and_persistence(tmp_path):
    path = tmp_path / "cache.json"
    cache = new_cache(path, "org-1")
    org = OrgData()
    org.sites.info.append(Site(id="s9", name="Remote"))
    cache.set_org_data("org-9", org)
    cache.save()

    reopened = new_cache(path, "org-9")
    assert reopened.get_site("Remote").id == "s9"
    assert reopened.path == path


def test_load_is_noop_after_init(cache):
    cache.update_site(Site(id="s1", name="HQ"))
    cache.load()
    assert cache.get_site("HQ").id == "s1"


def test_unified_cache_requires_org(tmp_path):
    cache = new_cache(tmp_path / "cache.json", "org-1")
    with pytest.raises(ValueError):
        UnifiedCache(cache.manager, "")
