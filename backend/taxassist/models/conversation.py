# taxassist/models/conversation.py
"""
Database model for conversations.
One finished (or attempted) voice session with the tax assistant: the
speaker-tagged transcript, its summary and call timing. Records are
immutable once created.
"""
import uuid
from tortoise import fields, models

NO_SUMMARY = "No summary available"
STATUSES = ("in_progress", "completed", "failed")


class Conversation(models.Model):
    """
    Conversation database model.

    Relationships:
    - Belongs to a User (many-to-one); deleted with the user
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField(
        "models.User",
        related_name="conversations",
        on_delete=fields.CASCADE,
    )
    transcript = fields.TextField()  # "You: ..." / "Assistant: ..." lines joined by blank lines
    summary = fields.TextField(default=NO_SUMMARY)
    duration = fields.IntField(default=0)  # seconds
    start_time = fields.DatetimeField(null=True)
    end_time = fields.DatetimeField(null=True)
    status = fields.CharField(max_length=16, default="completed")
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "conversations"
