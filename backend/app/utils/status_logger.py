import logging
from sqlalchemy import event
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import NO_VALUE, get_history

from .. import models

logger = logging.getLogger(__name__)


def _listener_factory(model_name: str):
    """Return a SQLAlchemy attribute listener that logs status changes."""

    def _status_change(target, value, oldvalue, initiator):  # noqa: ANN001
        if oldvalue is NO_VALUE or oldvalue == value:
            return value
        entity_id = getattr(target, "id", "unknown")
        logger.info(
            "%s id=%s status changed from %s to %s",
            model_name,
            entity_id,
            getattr(oldvalue, "value", oldvalue),
            getattr(value, "value", value),
        )
        return value

    return _status_change


def _record_gig_status(session, flush_context, instances):  # noqa: ANN001
    """Queue a ``GigStatusHistory`` row for every new or changed gig status."""
    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, models.Gig):
            continue
        history = get_history(obj, "status")
        if obj in session.new:
            from_status = None
        elif history.has_changes() and history.deleted:
            from_status = history.deleted[0]
        else:
            continue
        to_status = obj.status or models.GigStatus.DATE_HOLD
        if from_status == to_status:
            continue
        session.add(
            models.GigStatusHistory(
                gig=obj,
                from_status=from_status,
                to_status=to_status,
                changed_by=obj.updated_by,
            )
        )


_registered = False


def register_status_listeners() -> None:
    """Attach listeners for all models with a ``status`` attribute."""
    global _registered
    if _registered:
        return
    for model in (
        models.Gig,
        models.GigStaffAssignment,
        models.Invitation,
    ):
        event.listen(
            model.status,  # type: ignore[arg-type]
            "set",
            _listener_factory(model.__name__),
            retval=False,
            propagate=True,
        )
    event.listen(Session, "before_flush", _record_gig_status)
    _registered = True
