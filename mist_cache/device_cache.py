"""
Multi-index in-memory cache of UnifiedDevice records.

Indexes: MAC -> device, site -> [MAC], type -> [MAC], name -> MAC.
All keys on the MAC side are normalized. The cache is never persisted.
"""
import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import InvalidMAC
from .macaddr import normalize
from .merge import merge_device_data
from .models import UnifiedDevice

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _bucket_remove(index: Dict[str, List[str]], key: str, mac: str) -> None:
    macs = index.get(key)
    if macs is None:
        return
    if mac in macs:
        macs.remove(mac)
    if not macs:
        del index[key]


def _bucket_add(index: Dict[str, List[str]], key: str, mac: str) -> None:
    macs = index.setdefault(key, [])
    if mac not in macs:
        macs.append(mac)


class DeviceCache:
    """Thread-safe device cache with hit/miss accounting."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._stats_lock = threading.Lock()

        self._by_mac: Dict[str, UnifiedDevice] = {}
        self._by_site: Dict[str, List[str]] = {}
        self._by_type: Dict[str, List[str]] = {}
        self._by_name: Dict[str, str] = {}

        self._hits = 0
        self._misses = 0
        self._last_updated = datetime.now()

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def add_device(self, device: Optional[UnifiedDevice]) -> None:
        """
        Insert or replace a device, keyed by its normalized MAC.

        A device without a MAC is ignored.

        Raises:
            InvalidMAC: if the device MAC is set but malformed.
        """
        if device is None or not device.mac:
            return
        mac = normalize(device.mac)
        stored = copy.deepcopy(device)
        with self._lock.write():
            old = self._by_mac.get(mac)
            self._by_mac[mac] = stored
            self._reindex(mac, old, stored)
            self._last_updated = datetime.now()
        logger.debug("Cached device %s (%s)", mac, stored.name)

    def merge_device_info(self, device: Optional[UnifiedDevice]) -> None:
        """Merge partial device info into the cached record (or insert it)."""
        if device is None or not device.mac:
            return
        mac = normalize(device.mac)
        with self._lock.write():
            old = self._by_mac.get(mac)
            merged = merge_device_data(old, device)
            self._by_mac[mac] = merged
            self._reindex(mac, old, merged)
            self._last_updated = datetime.now()
        logger.debug("Merged device info for %s", mac)

    def remove_device(self, mac: str) -> None:
        """Drop a device and every index reference to it. Unknown MACs are ignored."""
        if not mac:
            return
        key = normalize(mac)
        with self._lock.write():
            old = self._by_mac.pop(key, None)
            if old is None:
                return
            if old.site_id:
                _bucket_remove(self._by_site, old.site_id, key)
            if old.type_key:
                _bucket_remove(self._by_type, old.type_key, key)
            if old.name and self._by_name.get(old.name) == key:
                del self._by_name[old.name]
            self._last_updated = datetime.now()
        logger.debug("Removed device %s", key)

    def clear(self) -> None:
        with self._lock.write():
            self._by_mac = {}
            self._by_site = {}
            self._by_type = {}
            self._by_name = {}
            self._last_updated = datetime.now()

    def _reindex(self, mac: str, old: Optional[UnifiedDevice], new: UnifiedDevice) -> None:
        # caller holds the write lock
        old_site = old.site_id if old else None
        if old_site and old_site != new.site_id:
            _bucket_remove(self._by_site, old_site, mac)
        if new.site_id:
            _bucket_add(self._by_site, new.site_id, mac)

        old_type = old.type_key if old else ""
        if old_type and old_type != new.type_key:
            _bucket_remove(self._by_type, old_type, mac)
        if new.type_key:
            _bucket_add(self._by_type, new.type_key, mac)

        old_name = old.name if old else None
        if old_name and old_name != new.name and self._by_name.get(old_name) == mac:
            del self._by_name[old_name]
        if new.name:
            self._by_name[new.name] = mac

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_device_by_mac(self, mac: str) -> Optional[UnifiedDevice]:
        """Return a copy of the cached device, counting a hit or a miss."""
        try:
            key = normalize(mac)
        except InvalidMAC:
            self._record(hit=False)
            return None
        with self._lock.read():
            device = self._by_mac.get(key)
            result = copy.deepcopy(device) if device is not None else None
        self._record(hit=result is not None)
        return result

    def get_device_by_name(self, name: str) -> Optional[UnifiedDevice]:
        with self._lock.read():
            mac = self._by_name.get(name)
            device = self._by_mac.get(mac) if mac else None
            return copy.deepcopy(device) if device is not None else None

    def get_devices_by_site(self, site_id: str) -> List[UnifiedDevice]:
        with self._lock.read():
            return self._collect(self._by_site.get(site_id, []))

    def get_devices_by_type(self, device_type: str) -> List[UnifiedDevice]:
        with self._lock.read():
            return self._collect(self._by_type.get(device_type, []))

    def get_devices_by_site_and_type(self, site_id: str, device_type: str) -> List[UnifiedDevice]:
        """Devices at site_id whose device_type or type equals device_type."""
        with self._lock.read():
            devices = (self._by_mac.get(mac) for mac in self._by_site.get(site_id, []))
            return [
                copy.deepcopy(d)
                for d in devices
                if d is not None and device_type in (d.device_type, d.type)
            ]

    def get_all_devices(self) -> List[UnifiedDevice]:
        with self._lock.read():
            return [copy.deepcopy(d) for d in self._by_mac.values()]

    def count(self) -> int:
        with self._lock.read():
            return len(self._by_mac)

    def count_by_type(self) -> Dict[str, int]:
        with self._lock.read():
            return {t: len(macs) for t, macs in self._by_type.items()}

    def count_by_site(self) -> Dict[str, int]:
        with self._lock.read():
            return {s: len(macs) for s, macs in self._by_site.items()}

    @property
    def last_updated(self) -> datetime:
        with self._lock.read():
            return self._last_updated

    def _collect(self, macs: List[str]) -> List[UnifiedDevice]:
        return [copy.deepcopy(self._by_mac[mac]) for mac in macs if mac in self._by_mac]

    # ------------------------------------------------------------------
    # stats
    # ------------------------------------------------------------------

    def _record(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def get_cache_stats(self) -> Tuple[int, int, float]:
        """Return (hits, misses, hit rate in percent)."""
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        rate = (hits / total) * 100.0 if total else 0.0
        return hits, misses, rate
