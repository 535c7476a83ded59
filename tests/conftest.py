import pytest

from mist_cache.models import CacheStore


def sample_store_dict():
    return {
        "version": 1,
        "orgs": {
            "org-1": {
                "org_stats": {"id": "org-1", "name": "Acme"},
                "sites": {
                    "info": [
                        {"id": "site-1", "name": "HQ", "org_id": "org-1"},
                        {"id": "site-2", "name": "Branch", "org_id": "org-1"},
                    ],
                    "settings": [{"id": "set-1", "site_id": "site-1"}],
                },
                "templates": {
                    "rf": [{"id": "rf-1", "name": "Dense"}],
                    "gateway": [{"id": "gt-1", "name": "Edge"}],
                    "wlan": [{"id": "wt-1", "name": "Corp WLANs"}],
                },
                "networks": [{"id": "net-1", "name": "corp", "vlan_id": 10}],
                "wlans": {
                    "org": [{"id": "wlan-1", "ssid": "guest"}],
                    "sites": {"site-1": [{"id": "wlan-2", "ssid": "lab", "site_id": "site-1"}]},
                },
                "inventory": {
                    "ap": {
                        "aabbccddee01": {"mac": "aabbccddee01", "name": "ap-1", "site_id": "site-1", "type": "ap"},
                        "aabbccddee02": {"mac": "aabbccddee02", "name": "ap-2", "site_id": "site-2", "type": "ap"},
                    },
                    "switch": {
                        "001122334455": {"mac": "001122334455", "name": "sw-1", "site_id": "site-1", "type": "switch"}
                    },
                    "gateway": {
                        "665544332211": {"mac": "665544332211", "name": "gw-1", "site_id": "site-1", "type": "gateway"}
                    },
                },
                "profiles": {
                    "devices": [
                        {"id": "prof-1", "name": "AP Default", "type": "ap"},
                        {"id": "prof-2", "name": "Switch Default", "type": "Switch"},
                    ],
                    "details": [{"id": "prof-1", "name": "AP Default", "radio_config": {}}],
                },
                "configs": {
                    "ap": {"aabbccddee01": {"mac": "aabbccddee01", "name": "ap-1", "height": 3.5}},
                },
            }
        },
    }


@pytest.fixture
def sample_store():
    return CacheStore.from_dict(sample_store_dict())


@pytest.fixture
def sample_store_data():
    return sample_store_dict()
