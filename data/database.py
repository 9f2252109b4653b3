"""
Database Module for Tweet Comment Automator

This module handles the database connection and the queries backing the
per-user settings row and the shared public prompts.
"""

import json
import logging
from typing import Optional, List, Dict, Any

import pyodbc

from config import settings
from utils.exceptions import ConnectionError as DatabaseConnectionError
from utils.helpers import iso_timestamp

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Database connection manager for the Tweet Comment Automator."""

    def __init__(self, connection_string: Optional[str] = None):
        """Initialize the database connection."""
        self.connection_string = connection_string or settings.DB_CONNECTION_STRING
        self.conn = None
        pyodbc.pooling = False

    def connect(self) -> bool:
        """
        Establish a connection to the database.

        Returns:
            bool: True if connection was successful, False otherwise.

        Raises:
            DatabaseConnectionError: Propagated unchanged when raised by the driver layer.
        """
        try:
            self.conn = pyodbc.connect(self.connection_string)
            self.conn.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            logger.info("Successfully connected to database")
            return True
        except DatabaseConnectionError:
            self.conn = None
            raise
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            self.conn = None
            return False

    def close(self) -> None:
        """Close the database connection."""
        try:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.info("Database connection closed")
        except Exception as e:
            logger.error(f"Error closing database connection: {e}")

    def execute_query(self, query: str, params: Optional[tuple] = None) -> Optional[List[Dict]]:
        """
        Execute a SQL query and return the results.

        Args:
            query: The SQL query to execute.
            params: Query parameters (optional).

        Returns:
            Optional[List[Dict]]: Query results as a list of dictionaries, or None if an error occurred.
        """
        if not self.conn and not self.connect():
            return None

        try:
            cursor = self.conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)

            # Check if this is a SELECT query with results
            if cursor.description:
                columns = [column[0] for column in cursor.description]
                results = [dict(zip(columns, row)) for row in cursor.fetchall()]
                return results
            else:
                self.conn.commit()
                return []

        except Exception as e:
            logger.error(f"Error executing query: {e}")
            try:
                self.conn.rollback()
            except Exception:
                pass
            return None

    # =========================================================================
    # User settings
    # =========================================================================

    def get_user_settings(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve the settings row of one user.

        Args:
            user_id: Identity of the user owning the row.

        Returns:
            Optional[Dict]: The row with 'saved_prompts' decoded from JSON, an empty
            dict if the user has no row yet, or None if the query failed.
        """
        query = """
        SELECT [user_id], [apify_api_key], [openai_api_key], [saved_prompts], [updated_at]
        FROM [dbo].[user_settings]
        WHERE [user_id] = ?
        """
        rows = self.execute_query(query, (user_id,))
        if rows is None:
            return None
        if not rows:
            return {}

        row = dict(rows[0])
        try:
            row['saved_prompts'] = json.loads(row.get('saved_prompts') or '[]')
        except ValueError:
            logger.warning(f"Discarding unreadable saved_prompts for user {user_id}")
            row['saved_prompts'] = []
        return row

    def upsert_user_settings(self, user_id: str, apify_api_key: str, openai_api_key: str,
                             saved_prompts: List[Dict[str, Any]]) -> bool:
        """
        Insert or update the settings row of one user.

        Returns:
            bool: True if the row was written, False otherwise.
        """
        query = """
        MERGE [dbo].[user_settings] AS target
        USING (SELECT ? AS [user_id]) AS source
        ON target.[user_id] = source.[user_id]
        WHEN MATCHED THEN
            UPDATE SET [apify_api_key] = ?, [openai_api_key] = ?, [saved_prompts] = ?, [updated_at] = ?
        WHEN NOT MATCHED THEN
            INSERT ([user_id], [apify_api_key], [openai_api_key], [saved_prompts], [updated_at])
            VALUES (?, ?, ?, ?, ?);
        """
        prompts_json = json.dumps(saved_prompts, ensure_ascii=False)
        updated_at = iso_timestamp()

        if not self.conn and not self.connect():
            return False

        try:
            cursor = self.conn.cursor()
            cursor.execute(query, (
                user_id,
                apify_api_key, openai_api_key, prompts_json, updated_at,
                user_id, apify_api_key, openai_api_key, prompts_json, updated_at,
            ))
            self.conn.commit()
            logger.info(f"Saved settings for user {user_id}")
            return True

        except Exception as e:
            logger.error(f"Error saving user settings: {e}")
            try:
                self.conn.rollback()
            except Exception:
                pass
            return False

    # =========================================================================
    # Public prompts
    # =========================================================================

    def get_public_prompts(self) -> Optional[List[Dict]]:
        """Retrieve active public prompts, newest first."""
        query = """
        SELECT [id], [name], [text], [created_by], [created_at]
        FROM [dbo].[public_prompts]
        WHERE [is_active] = 1
        ORDER BY [created_at] DESC
        """
        return self.execute_query(query)

    def insert_public_prompt(self, name: str, text: str, created_by: str) -> bool:
        query = """
        INSERT INTO [dbo].[public_prompts] ([name], [text], [created_by], [created_at], [is_active])
        VALUES (?, ?, ?, ?, 1)
        """
        return self.execute_query(query, (name, text, created_by, iso_timestamp())) is not None

    def update_public_prompt(self, prompt_id: str, name: str, text: str) -> bool:
        query = """
        UPDATE [dbo].[public_prompts]
        SET [name] = ?, [text] = ?
        WHERE [id] = ?
        """
        return self.execute_query(query, (name, text, prompt_id)) is not None

    def delete_public_prompt(self, prompt_id: str) -> bool:
        query = "DELETE FROM [dbo].[public_prompts] WHERE [id] = ?"
        return self.execute_query(query, (prompt_id,)) is not None
