"""
Database schema initialization.

Creates the submissions table and its indexes, and records the schema version.
"""

import aiosqlite
from modflow.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Manages database schema creation."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS submissions (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL CHECK (type IN ('text', 'image')),
                content TEXT,
                image_url TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                moderation_stage TEXT NOT NULL DEFAULT 'queued',
                summary TEXT,
                reasoning TEXT,
                toxicity REAL NOT NULL DEFAULT 0,
                nsfw_text INTEGER NOT NULL DEFAULT 0,
                nsfw_image INTEGER NOT NULL DEFAULT 0,
                violence INTEGER NOT NULL DEFAULT 0,
                image_replaced_by_ai INTEGER NOT NULL DEFAULT 0,
                created_at TEXT,
                updated_at TEXT,
                completed_at TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status, created_at DESC)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_submissions_stage ON submissions(moderation_stage)"
        )

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
