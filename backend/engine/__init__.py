"""
Spatial store backends.

A store answers "every feature whose geometry intersects this rectangle" for the
active dataset. The in-memory store is the default; DuckDB persists the same rows
on disk.
"""
