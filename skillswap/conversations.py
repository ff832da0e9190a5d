"""
Conversation resolver.

A conversation is identified by a key built from the listing (if any) and
the two participant ids in ascending order, so both sides resolve the
same row no matter who asks first.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import dateformat, timezone
from django.utils.translation import gettext as _

from .constants import DAY, HOUR, WEEK
from .exceptions import ForbiddenError, NotFoundError, ValidationError
from .listings import get_listing
from .models import Application, ApplicationStatus, Conversation, Message
from .store import store_errors

logger = logging.getLogger(__name__)


def conversation_key(listing_id, user_a_id, user_b_id):
    low, high = sorted((user_a_id, user_b_id))
    if listing_id is None:
        return f"direct:{low}:{high}"
    return f"listing:{listing_id}:{low}:{high}"


def resolve(listing_id, participant_a, participant_b, item_title=None, item_type=None):
    """Return the conversation for this pairing, creating it on first use."""
    if participant_a.pk == participant_b.pk:
        raise ValidationError(_("A conversation needs two different people."))
    listing = get_listing(listing_id) if listing_id is not None else None
    if listing is not None:
        item_title = item_title or listing.title
        item_type = item_type or listing.kind
    key = conversation_key(
        listing.pk if listing is not None else None, participant_a.pk, participant_b.pk,
    )
    low, high = sorted((participant_a, participant_b), key=lambda user: user.pk)
    with store_errors():
        try:
            with transaction.atomic():
                conversation, created = Conversation.objects.get_or_create(
                    key=key,
                    defaults={
                        "listing": listing,
                        "participant_low": low,
                        "participant_high": high,
                        "item_title": item_title or "",
                        "item_type": item_type or "",
                    },
                )
        except IntegrityError:
            conversation, created = Conversation.objects.get(key=key), False
    if created:
        logger.info("Conversation %s created for %s", conversation.pk, key)
    return conversation


def resolve_for_application(application_id, actor):
    """Open the conversation between a listing owner and its accepted applicant."""
    try:
        application = Application.objects.select_related(
            "listing", "listing__owner", "applicant",
        ).get(pk=application_id)
    except (Application.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("Application not found."))
    listing = application.listing
    if actor.pk not in (listing.owner_id, application.applicant_id):
        raise ForbiddenError(_("You are not part of this application."))
    if application.status != ApplicationStatus.ACCEPTED:
        raise ForbiddenError(_("A conversation opens once the application is accepted."))
    return resolve(listing.pk, listing.owner, application.applicant)


def get_conversation(conversation_id):
    try:
        return Conversation.objects.select_related(
            "participant_low", "participant_high", "listing",
        ).get(pk=conversation_id)
    except (Conversation.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("Conversation not found."))


def get_for_participant(conversation_id, user):
    conversation = get_conversation(conversation_id)
    if not conversation.has_participant(user):
        raise ForbiddenError(_("You are not part of this conversation."))
    return conversation


def public_profile(user):
    profile = getattr(user, "profile", None)
    display_name = ""
    avatar_url = ""
    if profile is not None:
        display_name = profile.display_name
        avatar_url = profile.avatar_url
    return {
        "id": user.pk,
        "display_name": display_name or user.get_full_name() or user.get_username(),
        "avatar_url": avatar_url,
    }


def list_for_user(user):
    """Conversations for ``user``, most recent first, with unread counts.

    Each entry is ``(conversation, other_participant_profile, unread_count)``.
    """
    conversations = list(
        Conversation.objects.for_user(user)
        .select_related(
            "participant_low__profile",
            "participant_high__profile",
            "last_message",
        )
        .by_recency()
    )
    unread = _unread_by_conversation(user, [c.pk for c in conversations])
    return [
        (conversation, public_profile(conversation.other_participant(user)), unread.get(conversation.pk, 0))
        for conversation in conversations
    ]


def _unread_by_conversation(user, conversation_ids):
    if not conversation_ids:
        return {}
    rows = (
        Message.objects.unread_by(user)
        .filter(conversation_id__in=conversation_ids)
        .order_by()
        .values("conversation_id")
        .annotate(total=Count("id"))
    )
    return {row["conversation_id"]: row["total"] for row in rows}


def format_relative_age(value, now=None):
    """Short age label for a conversation list: "Just now", "3h ago", "Oct 3"."""
    if value is None:
        return ""
    now = now or timezone.now()
    seconds = (now - value).total_seconds()
    if seconds < HOUR:
        return _("Just now")
    if seconds < DAY:
        return _("%(count)dh ago") % {"count": int(seconds // HOUR)}
    if seconds < WEEK:
        return _("%(count)dd ago") % {"count": int(seconds // DAY)}
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return dateformat.format(value, "M j")
