"""Reads table rows straight out of SQLite 3 database file bytes."""
