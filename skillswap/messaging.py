"""
Message store.

Messages are append-only. Read state is the ``read_by`` set on each
message and only ever grows. The conversation's ``last_message`` summary
is written with a compare-and-swap on ``last_message_at`` so a slow writer
never moves it backwards.
"""
import logging

from django.conf import settings
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.utils.translation import gettext as _

from .conversations import get_conversation, get_for_participant
from .exceptions import ForbiddenError
from .forms import MessageForm, clean_or_raise
from .models import Conversation, Message
from .notifications import notify_new_message
from .store import read_with_retry, store_errors

logger = logging.getLogger(__name__)


def append(conversation_id, sender, content):
    conversation = get_conversation(conversation_id)
    if not conversation.has_participant(sender):
        raise ForbiddenError(_("You are not part of this conversation."))
    content = clean_or_raise(MessageForm({"content": content}))["content"]
    with store_errors(), transaction.atomic():
        message = Message.objects.create(
            conversation=conversation,
            sender=sender,
            content=content,
        )
        advance_summary(conversation.pk, message)
        notify_new_message(message, conversation.other_participant(sender))
    logger.debug("Message %s appended to conversation %s", message.pk, conversation.pk)
    return message


def advance_summary(conversation_id, message):
    """Point the conversation at ``message`` unless a newer one is already there."""
    return Conversation.objects.filter(
        Q(last_message_at__isnull=True) | Q(last_message_at__lt=message.created_at),
        pk=conversation_id,
    ).update(last_message=message, last_message_at=message.created_at)


def list_messages(conversation_id, actor, page=1, page_size=None):
    """One page of history; page 1 is the newest, oldest first within a page."""
    conversation = get_for_participant(conversation_id, actor)
    page_size = page_size or settings.SKILLSWAP_MESSAGE_PAGE_SIZE
    qs = (
        Message.objects.filter(conversation=conversation)
        .select_related("sender")
        .order_by("-created_at", "-id")
    )
    page_obj = Paginator(qs, page_size).get_page(page)
    return list(reversed(page_obj.object_list)), page_obj


def mark_read(conversation_id, user):
    """Add ``user`` to ``read_by`` of every message they have not read yet."""
    get_for_participant(conversation_id, user)
    through = Message.read_by.through
    with store_errors(), transaction.atomic():
        unread_ids = list(
            Message.objects.unread_by(user)
            .filter(conversation_id=conversation_id)
            .values_list("id", flat=True)
        )
        through.objects.bulk_create(
            [through(message_id=message_id, user_id=user.pk) for message_id in unread_ids],
            ignore_conflicts=True,
        )
    return len(unread_ids)


@read_with_retry
def unread_count(conversation_id, user):
    return (
        Message.objects.unread_by(user)
        .filter(conversation_id=conversation_id)
        .count()
    )