"""
Database access layer for the BookSoul backend.

Includes:
- Supabase service-role client initialization (None when not configured)

Session reads and writes live in booksoul/services/session_service.py.
"""

from .client import get_service_role_client

__all__ = ["get_service_role_client"]
