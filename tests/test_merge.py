from mist_cache.merge import merge_device_data
from mist_cache.models import UnifiedDevice


def make_device(**kwargs):
    return UnifiedDevice(**kwargs)


def test_non_none_update_fields_win():
    base = make_device(mac="aabbccddeeff", name="old", model="AP43", site_id="s1")
    update = make_device(model="AP45", site_id="s2")

    merged = merge_device_data(base, update)

    assert merged.model == "AP45"
    assert merged.site_id == "s2"
    assert merged.name == "old"
    assert merged.mac == "aabbccddeeff"


def test_empty_name_does_not_override():
    base = make_device(mac="aabbccddeeff", name="lobby-ap")
    merged = merge_device_data(base, make_device(name=""))
    assert merged.name == "lobby-ap"


def test_magic_is_sticky():
    base = make_device(magic="ABC-123")
    assert merge_device_data(base, make_device(magic="XYZ-999")).magic == "ABC-123"
    assert merge_device_data(base, make_device(magic="")).magic == "ABC-123"
    assert merge_device_data(base, make_device()).magic == "ABC-123"


def test_magic_taken_when_base_has_none():
    assert merge_device_data(make_device(), make_device(magic="NEW")).magic == "NEW"
    assert merge_device_data(make_device(magic="  "), make_device(magic="NEW")).magic == "NEW"


def test_type_sets_device_type():
    base = make_device(type="ap", device_type="ap")
    merged = merge_device_data(base, make_device(type="switch"))
    assert merged.type == "switch"
    assert merged.device_type == "switch"


def test_maps_merge_key_by_key():
    base = make_device(device_config={"a": 1, "b": 2}, additional_config={"x": 1})
    update = make_device(device_config={"b": 3, "c": 4}, additional_config={"y": 2})

    merged = merge_device_data(base, update)

    assert merged.device_config == {"a": 1, "b": 3, "c": 4}
    assert merged.additional_config == {"x": 1, "y": 2}


def test_inputs_are_not_mutated():
    base = make_device(name="a", device_config={"k": [1]})
    update = make_device(name="b", device_config={"k": [2]})

    merged = merge_device_data(base, update)
    merged.device_config["k"].append(9)

    assert base.name == "a"
    assert base.device_config == {"k": [1]}
    assert update.device_config == {"k": [2]}


def test_missing_side_returns_copy_of_other():
    dev = make_device(mac="aabbccddeeff")
    assert merge_device_data(None, dev) == dev
    assert merge_device_data(dev, None) is not dev
