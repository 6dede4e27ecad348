"""
Core business logic - framework-agnostic.

- objects: upload grants, canonical paths, access gate, object streaming
- offline_cache: generation-based read-through cache shim
"""
