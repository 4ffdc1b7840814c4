"""
Base Database Service Module

This module provides shared SQLite connection management for the storage
services in the application.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

# Configure logger for this module
logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/my_shelf.db"


class BaseDatabaseService:
    """
    Base class providing shared database utilities and connection management.

    Connections are opened per operation. Storage calls are made from worker
    threads, so nothing here holds a connection between calls.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """
        Initialize the base database service.

        Args:
            db_path (str): Path to the SQLite database file. Defaults to "data/my_shelf.db"
                          The directory will be created if it doesn't exist.
        """
        self.db_path = db_path
        self._ensure_data_dir()

    def _ensure_data_dir(self):
        """
        Ensure the data directory exists for the database file.
        """
        data_dir = os.path.dirname(self.db_path)
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir, exist_ok=True)
            logger.info(f"Created data directory {data_dir}")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Context manager for database connections.

        Commits when the block exits cleanly, rolls back on error and always
        closes the connection.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_current_timestamp(self) -> str:
        """
        Get current timestamp for database operations.

        Returns:
            str: Current timestamp in SQLite format
        """
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")
