"""Database setup and connection management for ReadRank.

This module handles database initialization, migrations, and provides
the setup_database function for creating table connections.
"""

import os
import logging
from typing import Dict, Any

from fastlite import database

from .entities import Book, UserBook

logger = logging.getLogger(__name__)


def setup_database(db_path: str = 'data/readrank.db', migrations_dir: str = 'migrations', memory: bool = False) -> Dict[str, Any]:
    """Initialize the database with fastmigrate and all tables.

    Args:
        db_path: Path to the SQLite database file
        migrations_dir: Path to the migrations directory
        memory: If True, use an in-memory database (for testing)

    Returns:
        Dictionary containing database connection and table objects
    """
    if memory:
        logger.debug("Setting up in-memory database for testing.")
        db = database(':memory:')
    else:
        from fastmigrate.core import create_db, run_migrations, get_db_version

        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        create_db(db_path)

        success = run_migrations(db_path, migrations_dir)
        if not success:
            raise RuntimeError("Database migration failed! Application cannot continue.")

        version = get_db_version(db_path)
        logger.info(f"Database initialized at version {version}")

        db = database(db_path)
        db.execute("PRAGMA journal_mode=WAL")
        db.execute("PRAGMA synchronous=NORMAL")

    db.execute("PRAGMA busy_timeout=30000")  # 30 second timeout
    db.execute("PRAGMA foreign_keys=ON")

    # Bind to the tables created by migrations (or create them in memory)
    books = db.create(Book, pk='id', transform=True, if_not_exists=True)
    user_books = db.create(UserBook, pk='id', transform=True, if_not_exists=True)

    db.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_books_google_book_id ON book (google_book_id)")
    db.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_user_books_user_book ON user_book (user_id, book_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_user_books_sentiment ON user_book (user_id, user_sentiment, rating, position)")

    return {
        'db': db,
        'books': books,
        'user_books': user_books,
    }
