"""Read-side counts computed on demand; nothing here is stored."""
from django.db.models import Count

from .models import Application, Conversation, Message
from .store import read_with_retry

MAX_ID = 2 ** 63


def _parse_ids(listing_ids):
    parsed = {}
    for raw in listing_ids or ():
        try:
            pk = int(raw)
        except (TypeError, ValueError):
            pk = None
        if pk is not None and not 0 < pk < MAX_ID:
            pk = None
        parsed[raw] = pk
    return parsed


@read_with_retry
def response_counts(listing_ids):
    """Map each requested listing id to its number of non-rejected applications.

    Unknown or malformed ids map to 0. Keys are returned as given.
    """
    parsed = _parse_ids(listing_ids)
    valid = {pk for pk in parsed.values() if pk is not None}
    totals = {}
    if valid:
        rows = (
            Application.objects.live()
            .filter(listing_id__in=valid)
            .order_by()
            .values("listing_id")
            .annotate(total=Count("id"))
        )
        totals = {row["listing_id"]: row["total"] for row in rows}
    return {raw: totals.get(pk, 0) for raw, pk in parsed.items()}


@read_with_retry
def total_unread(user):
    """Unread messages across every conversation ``user`` takes part in."""
    return (
        Message.objects.unread_by(user)
        .filter(conversation__in=Conversation.objects.for_user(user))
        .count()
    )
