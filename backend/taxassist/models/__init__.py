# taxassist/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: User account and authentication model
- Subscription: Per-user call-seconds quota and opaque billing fields
- Conversation: Finished voice conversation (transcript + summary)
"""
from .user import User
from .subscription import Subscription
from .conversation import Conversation
