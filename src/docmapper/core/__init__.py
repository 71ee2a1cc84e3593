"""Core components — identity map, result cache, schemas and the manager."""
