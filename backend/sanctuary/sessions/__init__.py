"""Sanctuary session lookup.

Sessions are created and expired elsewhere; this package only reads them.
The DuckDB store is the persistence adapter, SessionAuthority applies the
liveness rules before any credential is issued.
"""
