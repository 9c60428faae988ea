import uuid

from django.conf import settings
from django.db import models


class AuditLogQuerySet(models.QuerySet):
    def for_entity(self, entity_type, entity_id):
        return self.filter(entity_type=entity_type, entity_id=str(entity_id))


class AuditLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Empty for entries written by the public booking form.
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="audit_entries",
    )
    action = models.CharField(max_length=80)
    entity_type = models.CharField(max_length=80)
    entity_id = models.CharField(max_length=80)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_lookup_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id}"
