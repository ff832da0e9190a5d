from .aggregates import total_unread
from .notifications import unread_count


def unread_counts(request):
    """Unread message and notification badges for the signed-in user."""
    if hasattr(request, "user") and request.user.is_authenticated:
        return {
            "unread_messages": total_unread(request.user),
            "unread_notifications": unread_count(request.user),
        }
    return {"unread_messages": 0, "unread_notifications": 0}
