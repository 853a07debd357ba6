"""
Database schema setup for Campus Bridge.

All statements are idempotent so start-up can run them on every boot.
"""

import logging

from .sqlite import SQLiteConnection

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS dropbox_accounts (
    id TEXT PRIMARY KEY,
    access_token TEXT,
    refresh_token TEXT,
    app_key TEXT,
    app_secret TEXT,
    bytes_used REAL NOT NULL DEFAULT 0,
    last_used TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_dropbox_accounts_last_used
    ON dropbox_accounts (last_used);

CREATE TABLE IF NOT EXISTS study_materials (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    storage_path TEXT,
    attempts INTEGER NOT NULL DEFAULT 0,
    processing_status TEXT NOT NULL DEFAULT 'pending',
    processing_error TEXT,
    processed_url TEXT,
    file_url TEXT,
    approval_status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS file_records (
    id TEXT PRIMARY KEY,
    material_id TEXT NOT NULL,
    dropbox_path TEXT NOT NULL,
    dropbox_url TEXT NOT NULL,
    account_id TEXT,
    uploaded_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_file_records_material
    ON file_records (material_id);

CREATE TABLE IF NOT EXISTS rejection_logs (
    id TEXT PRIMARY KEY,
    material_id TEXT NOT NULL,
    reason TEXT NOT NULL,
    rejected_by TEXT,
    rejected_at TEXT
);
"""


async def run_migrations(connection: SQLiteConnection) -> None:
    """Create all tables and indexes if they do not exist."""
    await connection.execute_script(SCHEMA)
    logger.info(f"Database schema ready at {connection.db_path}")
