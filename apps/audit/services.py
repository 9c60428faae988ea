import logging

from apps.audit.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(*, actor, action, entity_type, entity_id, payload=None):
    # Anonymous requests (public booking form) are stored without an actor.
    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None
    entry = AuditLog.objects.create(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        payload=payload or {},
    )
    logger.debug("audit %s %s:%s", action, entity_type, entity_id)
    return entry
