from datetime import timedelta
from unittest import mock

import pytest
from django.db import OperationalError

from skillswap import aggregates, applications, conversations, messaging
from skillswap.exceptions import ForbiddenError, NotFoundError, StoreUnavailable, ValidationError
from skillswap.models import Conversation, Message, Notification, NotificationKind
from skillswap.store import read_with_retry


@pytest.fixture
def conversation(listing, owner, alice):
    return conversations.resolve(listing.pk, owner, alice)


@pytest.mark.django_db
class TestAppend:
    def test_append_updates_summary(self, conversation, alice):
        message = messaging.append(conversation.pk, alice, "  Hello there  ")
        assert message.content == "Hello there"

        conversation.refresh_from_db()
        assert conversation.last_message_id == message.pk
        assert conversation.last_message_at == message.created_at

    def test_append_notifies_other_participant(self, conversation, owner, alice):
        messaging.append(conversation.pk, alice, "Hello")
        notification = Notification.objects.get(recipient=owner, kind=NotificationKind.NEW_MESSAGE)
        assert notification.sender == alice

    def test_outsider_cannot_post(self, conversation, bob):
        with pytest.raises(ForbiddenError):
            messaging.append(conversation.pk, bob, "Hi")
        assert not Message.objects.exists()

    def test_unknown_conversation(self, alice):
        with pytest.raises(NotFoundError):
            messaging.append(31337, alice, "Hi")

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_content_is_rejected(self, conversation, alice, content):
        with pytest.raises(ValidationError):
            messaging.append(conversation.pk, alice, content)

    def test_content_length_limit(self, settings, conversation, alice):
        settings.SKILLSWAP_MESSAGE_MAX_LENGTH = 10
        with pytest.raises(ValidationError):
            messaging.append(conversation.pk, alice, "x" * 11)
        assert messaging.append(conversation.pk, alice, "x" * 10).content == "x" * 10


@pytest.mark.django_db
class TestSummary:
    def test_older_message_never_moves_summary_back(self, conversation, owner, alice):
        newest = messaging.append(conversation.pk, alice, "newest")
        stale = Message.objects.create(conversation=conversation, sender=owner, content="stale")
        Message.objects.filter(pk=stale.pk).update(created_at=newest.created_at - timedelta(minutes=5))
        stale.refresh_from_db()

        assert messaging.advance_summary(conversation.pk, stale) == 0
        conversation.refresh_from_db()
        assert conversation.last_message_id == newest.pk

    def test_newer_message_advances_summary(self, conversation, owner, alice):
        first = messaging.append(conversation.pk, alice, "first")
        later = Message.objects.create(conversation=conversation, sender=owner, content="later")
        Message.objects.filter(pk=later.pk).update(created_at=first.created_at + timedelta(minutes=5))
        later.refresh_from_db()

        assert messaging.advance_summary(conversation.pk, later) == 1
        conversation.refresh_from_db()
        assert conversation.last_message_id == later.pk


@pytest.mark.django_db
class TestReadState:
    def test_unread_counts_only_other_senders(self, conversation, owner, alice):
        messaging.append(conversation.pk, alice, "one")
        messaging.append(conversation.pk, alice, "two")
        messaging.append(conversation.pk, owner, "reply")

        assert messaging.unread_count(conversation.pk, owner) == 2
        assert messaging.unread_count(conversation.pk, alice) == 1

    def test_mark_read_is_idempotent(self, conversation, owner, alice):
        messaging.append(conversation.pk, alice, "one")
        messaging.append(conversation.pk, alice, "two")

        assert messaging.mark_read(conversation.pk, owner) == 2
        assert messaging.unread_count(conversation.pk, owner) == 0
        assert messaging.mark_read(conversation.pk, owner) == 0
        assert all(owner in m.read_by.all() for m in Message.objects.all())

    def test_new_message_after_reading_is_unread(self, conversation, owner, alice):
        messaging.append(conversation.pk, alice, "one")
        messaging.mark_read(conversation.pk, owner)
        messaging.append(conversation.pk, alice, "two")
        assert messaging.unread_count(conversation.pk, owner) == 1

    def test_outsider_cannot_mark_read(self, conversation, bob):
        with pytest.raises(ForbiddenError):
            messaging.mark_read(conversation.pk, bob)


@pytest.mark.django_db
class TestListMessages:
    def test_first_page_is_newest(self, conversation, owner, alice):
        sent = [messaging.append(conversation.pk, alice, f"message {i}") for i in range(5)]

        items, page = messaging.list_messages(conversation.pk, owner, page=1, page_size=2)
        assert [m.pk for m in items] == [sent[3].pk, sent[4].pk]
        assert page.paginator.num_pages == 3

        items, _ = messaging.list_messages(conversation.pk, owner, page=3, page_size=2)
        assert [m.pk for m in items] == [sent[0].pk]

    def test_out_of_range_page_falls_back_to_last(self, conversation, owner, alice):
        first = messaging.append(conversation.pk, alice, "only")
        items, page = messaging.list_messages(conversation.pk, owner, page=9)
        assert [m.pk for m in items] == [first.pk]
        assert page.number == 1

    def test_outsider_cannot_list(self, conversation, bob):
        with pytest.raises(ForbiddenError):
            messaging.list_messages(conversation.pk, bob)


@pytest.mark.django_db
class TestAggregates:
    def test_response_counts_exclude_rejected(self, make_listing, owner, alice, bob, application_payload):
        busy = make_listing()
        quiet = make_listing(title="Quiet")
        first = applications.submit(busy.pk, alice, application_payload)
        applications.submit(busy.pk, bob, application_payload)
        applications.reject(first.pk, owner)

        counts = aggregates.response_counts([str(busy.pk), str(quiet.pk)])
        assert counts == {str(busy.pk): 1, str(quiet.pk): 0}

    def test_response_counts_tolerate_bad_ids(self):
        counts = aggregates.response_counts(["999999", "abc", "-4", str(2 ** 70)])
        assert counts == {"999999": 0, "abc": 0, "-4": 0, str(2 ** 70): 0}

    def test_response_counts_empty(self):
        assert aggregates.response_counts([]) == {}

    def test_total_unread_spans_conversations(self, make_listing, owner, alice, bob):
        one = conversations.resolve(make_listing().pk, owner, alice)
        two = conversations.resolve(None, owner, bob)
        messaging.append(one.pk, alice, "hi")
        messaging.append(two.pk, bob, "hey")
        messaging.append(two.pk, owner, "hello")

        assert aggregates.total_unread(owner) == 2
        assert aggregates.total_unread(bob) == 1
        messaging.mark_read(two.pk, owner)
        assert aggregates.total_unread(owner) == 1

    def test_conversation_without_messages_has_no_summary(self, conversation):
        assert Conversation.objects.get(pk=conversation.pk).last_message is None


class TestReadRetry:
    def test_retries_once_then_succeeds(self, settings):
        settings.SKILLSWAP_READ_RETRY_DELAY = 0
        query = mock.Mock(side_effect=[OperationalError("gone away"), 7])
        query.__name__ = "query"

        assert read_with_retry(query)() == 7
        assert query.call_count == 2

    def test_second_failure_is_store_unavailable(self, settings):
        settings.SKILLSWAP_READ_RETRY_DELAY = 0
        query = mock.Mock(side_effect=OperationalError("gone away"))
        query.__name__ = "query"

        with pytest.raises(StoreUnavailable) as excinfo:
            read_with_retry(query)()
        assert excinfo.value.status == 503
        assert query.call_count == 2

