"""
Error taxonomy for the inventory cache.

Callers react to these differently:
NotFoundError is local and non-fatal, the caller picks a fallback.
InvalidMAC and UnknownDeviceType usually point at a caller bug or schema drift.
CacheLoadError means "proceed with an empty store", never a crash.
"""
from pathlib import Path
from typing import Union


class CacheError(Exception):
    """Base class for all cache exceptions."""


class NotFoundError(CacheError, LookupError):
    """Raised when a by-ID, by-name or by-MAC lookup has no match."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class InvalidMAC(CacheError, ValueError):
    """Raised when text is not a 12 hex digit MAC address."""

    def __init__(self, mac: object):
        super().__init__(f"invalid MAC address: {mac!r}")
        self.mac = mac


class UnknownDeviceType(CacheError, ValueError):
    """Raised when a type-dispatched accessor gets an unrecognized device type."""

    def __init__(self, device_type: object):
        super().__init__(f"unknown device type: {device_type!r}")
        self.device_type = device_type


class CacheLoadError(CacheError):
    """Raised when the cache file is unreadable, corrupt or unsupported."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"failed to load cache {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class CacheSaveError(CacheError):
    """Raised when the cache could not be written to disk."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"failed to save cache {path}: {reason}")
        self.path = Path(path)
        self.reason = reason
