"""
Local cache of a remote network-inventory system.

This package provides:
- MAC address normalization
- Typed records for orgs, sites, templates, WLANs, profiles and devices
- Lookup indexes derived from the cached store
- A thread-safe multi-index device cache
- JSON persistence with integrity metadata and atomic saves
- A read-only accessor and a per-organization facade
"""
