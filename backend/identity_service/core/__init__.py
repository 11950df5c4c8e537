"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Status-coded application errors
- security: Password hashing and JWT access/refresh tokens
"""
