import functools
import json

from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.utils.translation import gettext as _
from django.views.decorators.http import require_http_methods, require_POST

from django_ratelimit.decorators import ratelimit

from . import aggregates, applications, connections, conversations, listings, messaging, notifications
from .exceptions import EngineError, NotFoundError, ValidationError
from .serializers import (
    serialize_application,
    serialize_connection,
    serialize_conversation,
    serialize_conversation_for,
    serialize_listing,
    serialize_message,
    serialize_notification,
)


# ---------------------------------------------------------------------------
# Plumbing
# ---------------------------------------------------------------------------

def api_view(view):
    """Require an authenticated user and render engine errors as JSON."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse(
                {"kind": "unauthenticated", "message": _("Log in to continue.")},
                status=401,
            )
        try:
            return view(request, *args, **kwargs)
        except EngineError as exc:
            return JsonResponse(exc.as_dict(), status=exc.status)

    return wrapper


def ratelimited(request, exception):
    return JsonResponse(
        {"kind": "rate_limited", "message": _("Too many requests. Slow down.")},
        status=429,
    )


def _body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise ValidationError(_("Request body must be JSON."))
    if not isinstance(data, dict):
        raise ValidationError(_("Request body must be a JSON object."))
    return data


def _get_user(user_id):
    try:
        return get_user_model().objects.get(pk=user_id)
    except (get_user_model().DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("User not found."))


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

@require_POST
@api_view
def listing_create(request):
    listing = listings.create_listing(request.user, _body(request))
    return JsonResponse(serialize_listing(listing), status=201)


@require_http_methods(["GET"])
@api_view
def listing_mine(request):
    items = listings.list_by_user(
        request.user,
        kind=request.GET.get("kind"),
        status=request.GET.get("status"),
    )
    return JsonResponse({"listings": [serialize_listing(item) for item in items]})


@require_http_methods(["GET"])
@api_view
def listing_detail(request, pk):
    return JsonResponse(serialize_listing(listings.get_listing(pk)))


@require_POST
@api_view
def listing_transition(request, pk):
    listing = listings.transition(pk, request.user, _body(request).get("status"))
    return JsonResponse(serialize_listing(listing))


@require_POST
@api_view
def response_counts(request):
    listing_ids = _body(request).get("listing_ids") or []
    if not isinstance(listing_ids, list):
        raise ValidationError(_("listing_ids must be a list."))
    counts = aggregates.response_counts([str(listing_id) for listing_id in listing_ids])
    return JsonResponse({"response_counts": counts})


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------

@require_http_methods(["GET", "POST"])
@api_view
@ratelimit(key="user", rate="20/h", method="POST", block=True)
def listing_applications(request, pk):
    if request.method == "POST":
        application = applications.submit(pk, request.user, _body(request))
        return JsonResponse(serialize_application(application), status=201)
    items = applications.list_for_listing(pk, request.user, status=request.GET.get("status"))
    return JsonResponse({"applications": [serialize_application(item) for item in items]})


@require_http_methods(["GET"])
@api_view
def application_mine(request):
    items = applications.list_for_applicant(request.user, status=request.GET.get("status"))
    return JsonResponse({"applications": [serialize_application(item) for item in items]})


@require_POST
@api_view
def application_accept(request, pk):
    application, listing = applications.accept(pk, request.user)
    return JsonResponse({
        "application": serialize_application(application),
        "listing": serialize_listing(listing),
    })


@require_POST
@api_view
def application_reject(request, pk):
    application = applications.reject(pk, request.user)
    return JsonResponse({"application": serialize_application(application)})


@require_POST
@api_view
def application_conversation(request, pk):
    conversation = conversations.resolve_for_application(pk, request.user)
    return JsonResponse(serialize_conversation_for(conversation, request.user))


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

@require_http_methods(["GET", "POST"])
@api_view
def connection_collection(request):
    if request.method == "POST":
        data = _body(request)
        recipient = _get_user(data.get("recipient_id"))
        connection = connections.request(request.user, recipient, data.get("message") or "")
        return JsonResponse(serialize_connection(connection), status=201)
    items = connections.list_for_user(
        request.user,
        status=request.GET.get("status"),
        direction=request.GET.get("direction"),
    )
    summary = connections.summarize(items, request.user)
    return JsonResponse({
        "all": [serialize_connection(c) for c in items],
        "sent": [serialize_connection(c) for c in summary["sent"]],
        "received": [serialize_connection(c) for c in summary["received"]],
        "counts": summary["counts"],
    })


@require_http_methods(["GET"])
@api_view
def connection_status(request, user_id):
    status, connection, role = connections.status_between(request.user, _get_user(user_id))
    return JsonResponse({
        "status": status,
        "connection": serialize_connection(connection) if connection else None,
        "role": role,
    })


@require_POST
@api_view
def connection_respond(request, pk):
    connection = connections.respond(pk, request.user, _body(request).get("decision"))
    return JsonResponse(serialize_connection(connection))


# ---------------------------------------------------------------------------
# Conversations & messages
# ---------------------------------------------------------------------------

@require_http_methods(["GET", "POST"])
@api_view
def conversation_collection(request):
    if request.method == "POST":
        data = _body(request)
        other = _get_user(data.get("participant_id"))
        conversation = conversations.resolve(
            data.get("listing_id"),
            request.user,
            other,
            item_title=data.get("item_title"),
            item_type=data.get("item_type"),
        )
        return JsonResponse(serialize_conversation_for(conversation, request.user))
    entries = conversations.list_for_user(request.user)
    return JsonResponse({
        "conversations": [
            serialize_conversation(conversation, other=other, unread_count=unread)
            for conversation, other, unread in entries
        ],
    })


@require_http_methods(["GET", "POST"])
@api_view
@ratelimit(key="user", rate="30/10m", method="POST", block=True)
def conversation_messages(request, pk):
    if request.method == "POST":
        message = messaging.append(pk, request.user, _body(request).get("content"))
        return JsonResponse(serialize_message(message), status=201)
    items, page_obj = messaging.list_messages(pk, request.user, page=request.GET.get("page"))
    messaging.mark_read(pk, request.user)
    return JsonResponse({
        "messages": [serialize_message(item) for item in items],
        "page": page_obj.number,
        "num_pages": page_obj.paginator.num_pages,
    })


@require_POST
@api_view
def conversation_read(request, pk):
    marked = messaging.mark_read(pk, request.user)
    return JsonResponse({"marked": marked, "unread_count": messaging.unread_count(pk, request.user)})


@require_http_methods(["GET"])
@api_view
def unread_total(request):
    return JsonResponse({"unread_count": aggregates.total_unread(request.user)})


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@require_http_methods(["GET"])
@api_view
def notification_list(request):
    items = notifications.recent_for_user(request.user)
    return JsonResponse({
        "notifications": [serialize_notification(item) for item in items],
        "unread_count": notifications.unread_count(request.user),
    })


@require_POST
@api_view
def notification_read(request, pk):
    notification = notifications.mark_read(pk, request.user)
    return JsonResponse(serialize_notification(notification))


@require_POST
@api_view
def notification_read_all(request):
    marked = notifications.mark_all_read(request.user)
    return JsonResponse({"marked": marked, "unread_count": 0})
