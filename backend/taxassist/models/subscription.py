import uuid
from tortoise import fields, models


class Subscription(models.Model):
    """
    Billing state attached to a user.

    - call_seconds: remaining call-time allowance; null means no quota configured
    - plan / details: opaque billing fields owned by the external billing system
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.OneToOneField("models.User", related_name="subscription", on_delete=fields.CASCADE)
    call_seconds = fields.IntField(null=True)  # never negative, see services/quota_ledger.py
    plan = fields.CharField(max_length=32, null=True)
    details = fields.JSONField(null=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "subscriptions"
