# taxassist/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Application error taxonomy (status code + generic client message)
- middleware: Session gate for page requests and global exception handlers
- quota: Call-seconds thresholds and warning levels
- security: Password hashing, session credentials and one-time login tokens
"""
