"""
Connection registry.

A connection is stored once per unordered user pair: ``user_low`` and
``user_high`` hold the pair in id order and carry a unique constraint, so
A→B and B→A always land on the same row. A rejected pair can be asked
again; the existing row is reopened as a fresh pending request.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.translation import gettext as _

from .exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .forms import ConnectionRequestForm, clean_or_raise
from .models import Connection, ConnectionStatus
from .notifications import notify_connection_accepted, notify_connection_request
from .store import store_errors

logger = logging.getLogger(__name__)

DECISIONS = (ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED)


def request(requester, recipient, message=""):
    if requester.pk == recipient.pk:
        raise ValidationError(_("You cannot connect with yourself."))
    message = clean_or_raise(ConnectionRequestForm({"message": message}))["message"]
    with store_errors():
        try:
            with transaction.atomic():
                existing = (
                    Connection.objects.between(requester.pk, recipient.pk)
                    .select_for_update()
                    .first()
                )
                if existing is None:
                    connection = Connection.objects.create(
                        requester=requester,
                        recipient=recipient,
                        message=message,
                    )
                elif existing.status == ConnectionStatus.REJECTED:
                    connection = _reopen(existing, requester, recipient, message)
                else:
                    raise ConflictError(
                        _("A connection between these users already exists (%(status)s).")
                        % {"status": existing.status}
                    )
                notify_connection_request(connection)
        except IntegrityError:
            raise ConflictError(_("A connection between these users already exists."))
    logger.info(
        "Connection %s requested by user %s to user %s",
        connection.pk, requester.pk, recipient.pk,
    )
    return connection


def _reopen(connection, requester, recipient, message):
    updated = Connection.objects.filter(
        pk=connection.pk, status=ConnectionStatus.REJECTED,
    ).update(
        requester=requester,
        recipient=recipient,
        message=message,
        status=ConnectionStatus.PENDING,
        updated_at=timezone.now(),
    )
    if not updated:
        raise ConflictError(_("The connection was changed by someone else."))
    logger.info("Reopened rejected connection %s", connection.pk)
    return Connection.objects.select_related("requester", "recipient").get(pk=connection.pk)


def respond(connection_id, actor, decision):
    if decision not in DECISIONS:
        raise ValidationError(_("Decision must be \"accepted\" or \"rejected\"."))
    with store_errors(), transaction.atomic():
        try:
            connection = (
                Connection.objects.select_for_update(of=("self",))
                .select_related("requester", "recipient")
                .get(pk=connection_id)
            )
        except (Connection.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(_("Connection request not found."))
        if connection.recipient_id != actor.pk:
            raise ForbiddenError(_("You can only answer requests sent to you."))
        if connection.status != ConnectionStatus.PENDING:
            raise ConflictError(_("This connection request is no longer pending."))
        updated = Connection.objects.filter(
            pk=connection.pk, status=ConnectionStatus.PENDING,
        ).update(status=decision, updated_at=timezone.now())
        if not updated:
            raise ConflictError(_("This connection request is no longer pending."))
        connection.status = decision
        if decision == ConnectionStatus.ACCEPTED:
            notify_connection_accepted(connection)
    logger.info("Connection %s %s by user %s", connection.pk, decision, actor.pk)
    return connection


def list_for_user(user, status=None, direction=None):
    """Connections involving ``user``; ``direction`` is "sent" or "received"."""
    if direction == "sent":
        qs = Connection.objects.filter(requester=user)
    elif direction == "received":
        qs = Connection.objects.filter(recipient=user)
    else:
        qs = Connection.objects.involving(user)
    if status:
        qs = qs.filter(status=status)
    return list(qs.select_related("requester", "recipient"))


def summarize(connections, user):
    """Split a connection list into sent/received and count by status."""
    counts = {"total": len(connections)}
    for status in ConnectionStatus.values:
        counts[status] = sum(1 for c in connections if c.status == status)
    return {
        "sent": [c for c in connections if c.requester_id == user.pk],
        "received": [c for c in connections if c.recipient_id == user.pk],
        "counts": counts,
    }


def status_between(user, other):
    """Return (status, connection, role) where role is the caller's side."""
    connection = (
        Connection.objects.between(user.pk, other.pk)
        .select_related("requester", "recipient")
        .first()
    )
    if connection is None:
        return "none", None, None
    role = "requester" if connection.requester_id == user.pk else "recipient"
    return connection.status, connection, role
