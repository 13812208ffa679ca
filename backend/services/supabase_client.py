"""Supabase client construction and row helpers shared by the stores."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY
from errors import ConfigurationError

logger = logging.getLogger(__name__)


def get_supabase_client(
    supabase_url: Optional[str] = SUPABASE_URL,
    supabase_key: Optional[str] = SUPABASE_KEY
) -> Client:
    """
    Create a Supabase client.

    Raises:
        ConfigurationError: If Supabase credentials are missing
    """
    if not supabase_url or not supabase_key:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

    return create_client(supabase_url, supabase_key)


def embedded_count(row: Dict[str, Any], relation: str) -> int:
    """Read a PostgREST embedded aggregate such as ``document_chunks(count)``."""
    value = row.get(relation)
    if isinstance(value, list) and value:
        return int(value[0].get("count", 0))
    if isinstance(value, dict):
        return int(value.get("count", 0))
    return 0


def first_row(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


def parse_timestamp(timestamp: Any) -> Optional[datetime]:
    """
    Parse timestamp string from Supabase, handling various formats.

    Supabase can return timestamps with varying microsecond precision,
    which Python's fromisoformat() can't always handle. This method
    normalizes the timestamp format.

    Args:
        timestamp: Timestamp string from Supabase (datetimes pass through)

    Returns:
        datetime object, or None for empty input
    """
    if timestamp is None or isinstance(timestamp, datetime):
        return timestamp

    # Replace 'Z' with '+00:00' for timezone
    timestamp_str = str(timestamp).replace("Z", "+00:00")

    # Handle microseconds with more than 6 digits
    # Format: 2026-02-21T02:08:26.18976+00:00
    if "." in timestamp_str:
        head, fraction = timestamp_str.split(".", 1)
        tz = ""
        for sign in ("+", "-"):
            if sign in fraction:
                fraction, tz_rest = fraction.split(sign, 1)
                tz = sign + tz_rest
                break
        # Truncate or pad microseconds to 6 digits
        fraction = fraction[:6].ljust(6, "0")
        timestamp_str = f"{head}.{fraction}{tz}"

    return datetime.fromisoformat(timestamp_str)


def rows(response: Any) -> List[Dict[str, Any]]:
    """Response data as a list, tolerating None."""
    data = getattr(response, "data", None)
    if data is None:
        return []
    return data if isinstance(data, list) else [data]
