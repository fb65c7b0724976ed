"""
SQLite persistence: a single long-lived aiosqlite connection and schema setup.
"""
