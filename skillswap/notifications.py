import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils.translation import gettext as _

from .constants import RECENT_NOTIFICATIONS_LIMIT
from .exceptions import NotFoundError
from .models import ApplicationStatus, Notification, NotificationKind

logger = logging.getLogger(__name__)


def _display_name(user):
    profile = getattr(user, "profile", None)
    if profile is not None and profile.display_name:
        return profile.display_name
    return user.get_full_name() or user.get_username()


def _send_email(recipient, subject, body):
    if not recipient.email:
        return
    send_mail(
        subject=subject,
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient.email],
        fail_silently=True,
    )


def notify(recipient, kind, title, body="", sender=None, listing=None, connection=None):
    """Record a notification; email it after commit when enabled."""
    notification = Notification.objects.create(
        recipient=recipient,
        sender=sender,
        kind=kind,
        title=title,
        body=body,
        listing=listing,
        connection=connection,
    )
    if settings.SKILLSWAP_NOTIFY_BY_EMAIL:
        transaction.on_commit(lambda: _send_email(recipient, title, body))
    return notification


# ---------------------------------------------------------------------------
# Event helpers
# ---------------------------------------------------------------------------

def notify_application_received(application):
    listing = application.listing
    return notify(
        recipient=listing.owner,
        sender=application.applicant,
        kind=NotificationKind.APPLICATION_RECEIVED,
        title=_("New application for \"%(title)s\"") % {"title": listing.title},
        body=_("%(name)s applied: %(message)s") % {
            "name": _display_name(application.applicant),
            "message": application.message,
        },
        listing=listing,
    )


def notify_application_decided(application):
    listing = application.listing
    if application.status == ApplicationStatus.ACCEPTED:
        kind = NotificationKind.APPLICATION_ACCEPTED
        title = _("Your application for \"%(title)s\" was accepted") % {"title": listing.title}
        body = _("Open the conversation to arrange the details.")
    else:
        kind = NotificationKind.APPLICATION_REJECTED
        title = _("Your application for \"%(title)s\" was declined") % {"title": listing.title}
        body = ""
    return notify(
        recipient=application.applicant,
        sender=listing.owner,
        kind=kind,
        title=title,
        body=body,
        listing=listing,
    )


def notify_connection_request(connection):
    return notify(
        recipient=connection.recipient,
        sender=connection.requester,
        kind=NotificationKind.CONNECTION_REQUEST,
        title=_("%(name)s wants to connect") % {"name": _display_name(connection.requester)},
        body=connection.message,
        connection=connection,
    )


def notify_connection_accepted(connection):
    return notify(
        recipient=connection.requester,
        sender=connection.recipient,
        kind=NotificationKind.CONNECTION_ACCEPTED,
        title=_("%(name)s accepted your connection request") % {
            "name": _display_name(connection.recipient),
        },
        connection=connection,
    )


def notify_new_message(message, recipient):
    conversation = message.conversation
    return notify(
        recipient=recipient,
        sender=message.sender,
        kind=NotificationKind.NEW_MESSAGE,
        title=_("New message from %(name)s") % {"name": _display_name(message.sender)},
        body=message.content[:200],
        listing=conversation.listing,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def recent_for_user(user, limit=RECENT_NOTIFICATIONS_LIMIT):
    return list(
        Notification.objects.filter(recipient=user).select_related("sender")[:limit]
    )


def unread_count(user):
    return Notification.objects.filter(recipient=user, is_read=False).count()


def mark_read(notification_id, user):
    """Mark one of the user's notifications read. Idempotent."""
    updated = Notification.objects.filter(pk=notification_id, recipient=user).update(is_read=True)
    if not updated:
        raise NotFoundError(_("Notification not found."))
    return Notification.objects.get(pk=notification_id)


def mark_all_read(user):
    """Mark every unread notification of ``user`` read; returns how many changed."""
    updated = Notification.objects.filter(recipient=user, is_read=False).update(is_read=True)
    logger.debug("Marked %d notification(s) read for user %s", updated, user.pk)
    return updated
