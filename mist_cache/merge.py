"""Combine two partial views of the same device into one record."""
import copy
from typing import Optional

from .models import BASE_DEVICE_FIELDS, UnifiedDevice


def _has_magic(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def merge_device_data(base: Optional[UnifiedDevice], update: Optional[UnifiedDevice]) -> Optional[UnifiedDevice]:
    """
    Merge update into a copy of base. Neither input is modified.

    Rules:
      - any non-None field on update wins
      - name only wins when non-empty
      - type on update also sets device_type
      - magic (the claim code) is sticky: it is taken from update only when
        base has none, and a known value is never cleared or replaced
      - device_config and additional_config merge key by key, update winning
    """
    if base is None:
        return copy.deepcopy(update)
    if update is None:
        return copy.deepcopy(base)

    merged = copy.deepcopy(base)
    for name in BASE_DEVICE_FIELDS:
        value = getattr(update, name)
        if value is None:
            continue
        if name == "name" and value == "":
            continue
        if name == "magic":
            if not _has_magic(merged.magic) and _has_magic(value):
                merged.magic = value
            continue
        setattr(merged, name, copy.deepcopy(value))

    if update.type is not None:
        merged.device_type = update.type
    elif update.device_type:
        merged.device_type = update.device_type

    merged.device_config.update(copy.deepcopy(update.device_config))
    merged.additional_config.update(copy.deepcopy(update.additional_config))
    return merged
