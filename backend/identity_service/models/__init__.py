"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: User account, credentials and session state
"""
from .user import User, PUBLIC_FIELDS
