"""Database module for appointment storage."""

from .base import AppointmentStore
from .supabase_client import SupabaseClient, get_db_client

__all__ = ["AppointmentStore", "SupabaseClient", "get_db_client"]
