"""
schoolfin/db/supabase.py
Supabase client factory and helper functions
"""
from supabase import create_client, Client
from postgrest.exceptions import APIError
from functools import lru_cache
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any, Iterable
import logging

logger = logging.getLogger(__name__)

# PostgreSQL error codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INVALID_TEXT_REPRESENTATION = "22P02"

# Default PostgREST max-rows
PAGE_SIZE = 1000


class DatabaseError(Exception):
    """A persistence call failed"""


class UniqueViolationError(DatabaseError):
    """The store rejected a write because of a unique constraint"""


class ReferenceViolationError(DatabaseError):
    """The store rejected a write or delete because of a foreign key"""


def _translate(action: str, table: str, e: Exception) -> DatabaseError:
    if isinstance(e, APIError) and e.code == UNIQUE_VIOLATION:
        logger.warning(f"Unique constraint violated on {table}: {e.message}")
        return UniqueViolationError(f"Duplicate value in {table}: {e.message}")
    if isinstance(e, APIError) and e.code == FOREIGN_KEY_VIOLATION:
        logger.warning(f"Foreign key constraint violated on {table}: {e.message}")
        return ReferenceViolationError(f"Referenced row in {table}: {e.message}")
    logger.error(f"Error {action} {table}: {e}")
    return DatabaseError(f"Failed {action} {table}: {str(e)}")


def utc_now_iso() -> str:
    """Timestamp for created_at / updated_at columns"""
    return datetime.now(timezone.utc).isoformat()


# ============================================
# CLIENT FACTORY
# ============================================

@lru_cache()
def get_supabase_client(supabase_url: str, supabase_key: str) -> Client:
    """
    Get Supabase client instance (cached per url/key pair)

    Returns:
        Client: Supabase client instance

    Raises:
        DatabaseError: If client creation fails
    """
    try:
        supabase: Client = create_client(
            supabase_url=supabase_url,
            supabase_key=supabase_key
        )
        logger.info("Supabase client created successfully")
        return supabase
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        raise DatabaseError(f"Supabase connection failed: {str(e)}")


# ============================================
# HELPER CLASS FOR COMMON QUERIES
# ============================================

class SupabaseQueries:
    """
    Helper class for common Supabase database operations
    Provides simplified methods for CRUD operations
    """

    def __init__(self, client: Client):
        self.client = client

    # ============================================
    # CREATE OPERATIONS
    # ============================================

    async def insert_one(self, table: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Insert a single record and return it as stored

        Raises:
            UniqueViolationError: If a unique constraint rejects the row
            DatabaseError: For any other failure
        """
        try:
            response = self.client.table(table).insert(data).execute()
        except Exception as e:
            raise _translate("inserting into", table, e)

        if response.data and len(response.data) > 0:
            logger.info(f"Inserted record into {table}")
            return response.data[0]
        logger.warning(f"Insert into {table} returned no data")
        return None

    # ============================================
    # READ OPERATIONS
    # ============================================

    async def select_all(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Select all records from a table with optional filters

        Args:
            table: Table name
            filters: Dictionary of column:value pairs to filter by
            order_by: Column name to order results by
            ascending: Sort direction (True for ASC, False for DESC)
            limit: Maximum number of records to return

        Example:
            >>> students = await db.select_all(
            ...     "students",
            ...     filters={"class_name": "5"},
            ...     order_by="created_at",
            ...     ascending=False
            ... )
        """
        try:
            query = self.client.table(table).select("*")

            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)

            if order_by:
                query = query.order(order_by, desc=not ascending)

            if limit:
                query = query.limit(limit)

            response = query.execute()
        except Exception as e:
            raise _translate("selecting from", table, e)

        logger.info(f"Selected {len(response.data)} records from {table}")
        return response.data

    async def select_pages(
        self,
        table: str,
        columns: str = "*",
        page_size: int = PAGE_SIZE
    ) -> List[Dict[str, Any]]:
        """
        Select every row of a table, fetching `page_size` rows per request.

        PostgREST caps a single response at its max-rows setting, so totals
        over a whole table must page.
        """
        rows: List[Dict[str, Any]] = []
        start = 0
        while True:
            try:
                response = (
                    self.client.table(table)
                    .select(columns)
                    .order("id")
                    .range(start, start + page_size - 1)
                    .execute()
                )
            except Exception as e:
                raise _translate("selecting from", table, e)

            rows.extend(response.data)
            if len(response.data) < page_size:
                break
            start += page_size

        logger.info(f"Selected {len(rows)} records from {table} in pages of {page_size}")
        return rows

    async def select_by_id(
        self,
        table: str,
        id_column: str,
        id_value: Any
    ) -> Optional[Dict[str, Any]]:
        """
        Select a single record by its ID

        Returns:
            dict: The record if found, None otherwise
        """
        try:
            response = self.client.table(table).select("*").eq(id_column, id_value).execute()
        except APIError as e:
            # A malformed uuid cannot match any row
            if e.code == INVALID_TEXT_REPRESENTATION:
                logger.info(f"Malformed {id_column} for {table}: {id_value}")
                return None
            raise _translate("selecting from", table, e)
        except Exception as e:
            raise _translate("selecting from", table, e)

        if response.data and len(response.data) > 0:
            return response.data[0]
        logger.info(f"No record found in {table} with {id_column}={id_value}")
        return None

    async def select_one(
        self,
        table: str,
        filters: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Select the first record matching the filters, or None"""
        try:
            query = self.client.table(table).select("*")

            for key, value in filters.items():
                query = query.eq(key, value)

            response = query.limit(1).execute()
        except Exception as e:
            raise _translate("selecting from", table, e)

        if response.data and len(response.data) > 0:
            return response.data[0]
        return None

    async def select_in(
        self,
        table: str,
        column: str,
        values: Iterable[Any]
    ) -> List[Dict[str, Any]]:
        """
        Select records whose column value is one of `values`

        Example:
            >>> categories = await db.select_in("fee_categories", "id", ["uuid-1", "uuid-2"])
        """
        values = list(dict.fromkeys(values))
        if not values:
            return []

        try:
            response = self.client.table(table).select("*").in_(column, values).execute()
        except Exception as e:
            raise _translate("selecting from", table, e)

        return response.data

    # ============================================
    # UPDATE OPERATIONS
    # ============================================

    async def update_by_id(
        self,
        table: str,
        id_column: str,
        id_value: Any,
        data: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Update a record by its ID

        Returns:
            dict: Updated record, None if nothing matched

        Raises:
            UniqueViolationError: If a unique constraint rejects the change
            DatabaseError: For any other failure
        """
        try:
            response = self.client.table(table).update(data).eq(id_column, id_value).execute()
        except Exception as e:
            raise _translate("updating", table, e)

        if response.data and len(response.data) > 0:
            logger.info(f"Updated record in {table} with {id_column}={id_value}")
            return response.data[0]
        logger.warning(f"Update in {table} returned no data")
        return None

    # ============================================
    # DELETE OPERATIONS
    # ============================================

    async def delete_by_id(
        self,
        table: str,
        id_column: str,
        id_value: Any
    ) -> List[Dict[str, Any]]:
        """Delete a record by its ID, returning the deleted row(s)"""
        try:
            response = self.client.table(table).delete().eq(id_column, id_value).execute()
        except Exception as e:
            raise _translate("deleting from", table, e)

        logger.info(f"Deleted record from {table} with {id_column}={id_value}")
        return response.data

    # ============================================
    # ADVANCED QUERIES
    # ============================================

    async def count(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Count records in a table

        Example:
            >>> payments = await db.count("fee_payments", {"student_id": "uuid"})
        """
        try:
            query = self.client.table(table).select("id", count="exact")

            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)

            response = query.execute()
        except Exception as e:
            raise _translate("counting", table, e)

        return response.count if response.count else 0

    async def exists(
        self,
        table: str,
        filters: Dict[str, Any]
    ) -> bool:
        """Check if a record matching the filters exists"""
        return await self.select_one(table, filters) is not None


__all__ = [
    'get_supabase_client',
    'SupabaseQueries',
    'DatabaseError',
    'UniqueViolationError',
    'ReferenceViolationError',
    'utc_now_iso',
]
