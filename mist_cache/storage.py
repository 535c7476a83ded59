import hashlib
import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .errors import CacheLoadError, CacheSaveError
from .models import CACHE_VERSION, CacheStore

logger = logging.getLogger(__name__)

FILE_TYPE = "inventory_cache"


def meta_path_for(cache_path: Path) -> Path:
    """Sidecar metadata lives next to the cache file as a dotfile: .<name>.meta"""
    return cache_path.parent / f".{cache_path.name}.meta"


def backup_path_for(cache_path: Path) -> Path:
    return cache_path.with_name(cache_path.name + ".backup")


def temp_path_for(cache_path: Path) -> Path:
    return cache_path.with_name(cache_path.name + ".tmp")


def _sha256(file_path: Path) -> str:
    digest = hashlib.sha256()
    with open(file_path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def write_metadata(cache_path: Path, version: int) -> Path:
    """Write the integrity sidecar for cache_path and return its path."""
    meta_path = meta_path_for(cache_path)
    stat = cache_path.stat()
    created = _isoformat(stat.st_mtime)
    if meta_path.exists():
        try:
            with open(meta_path, "r", encoding="utf-8") as fh:
                created = json.load(fh).get("created", created)
        except (OSError, ValueError, AttributeError):
            logger.debug("Ignoring unreadable metadata %s while rewriting it", meta_path)

    payload = {
        "file_name": cache_path.name,
        "file_type": FILE_TYPE,
        "size": stat.st_size,
        "hash": _sha256(cache_path),
        "created": created,
        "last_modified": _isoformat(stat.st_mtime),
        "version": version,
    }
    meta_temp = meta_path.with_name(meta_path.name + ".tmp")
    try:
        with open(meta_temp, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
        os.replace(meta_temp, meta_path)
    except OSError:
        if meta_temp.exists():
            meta_temp.unlink()
        raise
    return meta_path


def verify_integrity(cache_path: Path) -> None:
    """
    Compare cache_path against its sidecar metadata.

    A missing sidecar is not an error (older caches have none).

    Raises:
        CacheLoadError: if the sidecar is unreadable or size / hash differ.
    """
    meta_path = meta_path_for(cache_path)
    if not meta_path.exists():
        logger.debug("No metadata file for %s, skipping integrity check", cache_path)
        return

    try:
        with open(meta_path, "r", encoding="utf-8") as fh:
            meta = json.load(fh)
    except (OSError, ValueError) as exc:
        raise CacheLoadError(cache_path, f"unreadable metadata {meta_path.name}") from exc
    if not isinstance(meta, dict):
        raise CacheLoadError(cache_path, f"malformed metadata {meta_path.name}")

    size = cache_path.stat().st_size
    if meta.get("size") != size:
        raise CacheLoadError(cache_path, f"integrity check failed: size {size} != {meta.get('size')}")
    if meta.get("hash") != _sha256(cache_path):
        raise CacheLoadError(cache_path, "integrity check failed: hash mismatch")


def last_modified(cache_path: Path) -> float:
    """Modification time used for TTL checks: the sidecar if present, else the cache file."""
    meta_path = meta_path_for(cache_path)
    if meta_path.exists():
        return meta_path.stat().st_mtime
    return cache_path.stat().st_mtime


def load_store(cache_path: Path) -> CacheStore:
    """
    Read and decode the cache document at cache_path.

    Raises:
        CacheLoadError: on I/O errors, invalid JSON, an unexpected layout or
            an unsupported version.
    """
    logger.info("Loading cache from %s", cache_path)
    try:
        verify_integrity(cache_path)
        with open(cache_path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, UnicodeDecodeError) as exc:
        raise CacheLoadError(cache_path, str(exc)) from exc
    except json.JSONDecodeError as exc:
        raise CacheLoadError(cache_path, f"invalid JSON: {exc}") from exc

    try:
        store = CacheStore.from_dict(raw)
    except (TypeError, ValueError) as exc:
        raise CacheLoadError(cache_path, str(exc)) from exc

    if store.version < 1:
        raise CacheLoadError(cache_path, f"unsupported cache version {store.version}")
    return store


def _roll_back(cache_path: Path, backup_path: Path, had_previous: bool) -> None:
    """Put the pre-save file back after the new one was moved into place."""
    try:
        if had_previous:
            os.replace(backup_path, cache_path)
        else:
            cache_path.unlink()
    except OSError as exc:
        logger.error("Failed to restore %s from %s: %s", cache_path, backup_path, exc)
        return
    logger.warning("Save of %s failed after replace, previous file restored", cache_path)


def save_store(cache_path: Path, store: CacheStore) -> Path:
    """
    Persist store to cache_path, all-or-nothing.

    The full document is serialized before anything touches the disk. The
    previous file is copied to <path>.backup, the new document is written to
    <path>.tmp and moved into place, then the sidecar is refreshed and the
    backup removed. If the sidecar cannot be written, the backup is moved
    back so file and sidecar still match.

    Raises:
        CacheSaveError: if serialization or any file operation fails. The
            previous cache file (or its absence) is restored.
    """
    store.version = max(store.version, CACHE_VERSION)
    try:
        payload: Dict[str, Any] = store.to_dict()
        document = json.dumps(payload, indent=2)
    except (TypeError, ValueError) as exc:
        raise CacheSaveError(cache_path, f"failed to serialize cache: {exc}") from exc

    backup_path = backup_path_for(cache_path)
    temp_path = temp_path_for(cache_path)
    had_previous = False
    replaced = False
    try:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        if cache_path.exists():
            shutil.copy2(cache_path, backup_path)
            had_previous = True
        with open(temp_path, "w", encoding="utf-8") as fh:
            fh.write(document)
        os.replace(temp_path, cache_path)
        replaced = True
        write_metadata(cache_path, store.version)
    except OSError as exc:
        if temp_path.exists() and temp_path.is_file():
            temp_path.unlink()
        if replaced:
            _roll_back(cache_path, backup_path, had_previous)
        raise CacheSaveError(cache_path, str(exc)) from exc

    if backup_path.exists():
        backup_path.unlink()
    logger.info("Saved cache to %s (%d orgs)", cache_path, len(store.orgs))
    return cache_path
