# taxassist/models/user.py
"""
Database model for users.
Represents a user account: credentials, profile and language preference.
"""
import uuid
from tortoise import fields, models

JOB_TITLES = (
    "Tax Consultant",
    "Tax Manager",
    "Tax Director",
    "Tax Partner",
    "Tax Associate",
    "Tax Specialist",
    "Tax Analyst",
    "Tax Advisor",
    "Tax Accountant",
    "Other",
)

# Values stored in User.language (driven by the quick-start language picker)
LANGUAGES = ("english", "arabic", "chinese", "russian")


class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Conversations (related_name="conversations")
    - Has at most one Subscription (related_name="subscription")

    Security:
    - Password is stored as an argon2 hash
    - Email is the login identifier and must be unique
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    email = fields.CharField(max_length=256, unique=True, index=True)
    name = fields.CharField(max_length=256)
    job_title = fields.CharField(max_length=32)
    password_hash = fields.CharField(max_length=255)
    language = fields.CharField(max_length=16, null=True)  # null until the user picks one
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"
