"""Plain dict renderings of engine records for the JSON API."""
from .conversations import format_relative_age, public_profile


def _iso(value):
    return value.isoformat() if value is not None else None


def serialize_listing(listing):
    return {
        "id": listing.pk,
        "owner_id": listing.owner_id,
        "kind": listing.kind,
        "title": listing.title,
        "description": listing.description,
        "category": listing.category,
        "availability": listing.availability,
        "location": listing.location,
        "is_paid": listing.is_paid,
        "price": str(listing.price) if listing.price is not None else None,
        "status": listing.status,
        "created_at": _iso(listing.created_at),
        "updated_at": _iso(listing.updated_at),
    }


def serialize_application(application):
    return {
        "id": application.pk,
        "listing_id": application.listing_id,
        "applicant_id": application.applicant_id,
        "message": application.message,
        "availability": application.availability,
        "contact_info": application.contact_info,
        "proposed_timeline": application.proposed_timeline,
        "status": application.status,
        "created_at": _iso(application.created_at),
    }


def serialize_connection(connection):
    return {
        "id": connection.pk,
        "requester_id": connection.requester_id,
        "recipient_id": connection.recipient_id,
        "message": connection.message,
        "status": connection.status,
        "created_at": _iso(connection.created_at),
        "updated_at": _iso(connection.updated_at),
    }


def serialize_message(message):
    return {
        "id": message.pk,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": _iso(message.created_at),
    }


def serialize_conversation(conversation, other=None, unread_count=None):
    data = {
        "id": conversation.pk,
        "listing_id": conversation.listing_id,
        "participant_ids": list(conversation.participant_ids),
        "item_title": conversation.item_title,
        "item_type": conversation.item_type,
        "last_message_at": _iso(conversation.last_message_at),
        "last_message_age": format_relative_age(conversation.last_message_at),
        "last_message": None,
    }
    if conversation.last_message is not None:
        data["last_message"] = serialize_message(conversation.last_message)
    if other is not None:
        data["other_participant"] = other
    if unread_count is not None:
        data["unread_count"] = unread_count
    return data


def serialize_conversation_for(conversation, user):
    other = public_profile(conversation.other_participant(user))
    return serialize_conversation(conversation, other=other)


def serialize_notification(notification):
    return {
        "id": notification.pk,
        "kind": notification.kind,
        "title": notification.title,
        "body": notification.body,
        "sender_id": notification.sender_id,
        "listing_id": notification.listing_id,
        "connection_id": notification.connection_id,
        "is_read": notification.is_read,
        "created_at": _iso(notification.created_at),
    }
