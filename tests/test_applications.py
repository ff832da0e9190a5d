import functools
import threading
from unittest import mock

import pytest
from django.db import IntegrityError, connection, transaction
from django.test.utils import CaptureQueriesContext

from skillswap import applications, listings
from skillswap.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from skillswap.models import Application, ApplicationStatus, ListingStatus, Notification, NotificationKind


@pytest.mark.django_db
class TestSubmit:
    def test_submit_creates_pending_application(self, listing, alice, application_payload):
        application = applications.submit(listing.pk, alice, application_payload)
        assert application.status == ApplicationStatus.PENDING
        assert application.listing == listing
        assert application.contact_info == {
            "email": "helper@example.com",
            "phone": "",
            "preferred_contact": "platform",
        }

    def test_submit_notifies_owner(self, listing, owner, alice, application_payload):
        applications.submit(listing.pk, alice, application_payload)
        notification = Notification.objects.get(recipient=owner)
        assert notification.kind == NotificationKind.APPLICATION_RECEIVED
        assert notification.listing == listing
        assert "Alice" in notification.body

    def test_second_pending_application_conflicts(self, listing, alice, application_payload):
        applications.submit(listing.pk, alice, application_payload)
        with pytest.raises(ConflictError):
            applications.submit(listing.pk, alice, application_payload)
        assert Application.objects.filter(listing=listing, applicant=alice).count() == 1

    def test_owner_cannot_apply(self, listing, owner, application_payload):
        with pytest.raises(ForbiddenError):
            applications.submit(listing.pk, owner, application_payload)

    def test_closed_listing_rejects_submissions(self, listing, owner, alice, application_payload):
        listings.transition(listing.pk, owner, "cancelled")
        with pytest.raises(ConflictError):
            applications.submit(listing.pk, alice, application_payload)

    def test_message_and_availability_required(self, listing, alice):
        with pytest.raises(ValidationError) as excinfo:
            applications.submit(listing.pk, alice, {"message": "  ", "availability": ""})
        assert set(excinfo.value.errors) >= {"message", "availability"}

    def test_preferred_contact_defaults_to_email(self, listing, alice):
        application = applications.submit(
            listing.pk, alice, {"message": "Hi", "availability": "Mondays"},
        )
        assert application.preferred_contact == "email"

    def test_unknown_listing(self, alice, application_payload):
        with pytest.raises(NotFoundError):
            applications.submit(424242, alice, application_payload)

    def test_can_reapply_after_rejection(self, listing, owner, alice, application_payload):
        first = applications.submit(listing.pk, alice, application_payload)
        applications.reject(first.pk, owner)
        second = applications.submit(listing.pk, alice, application_payload)
        assert second.pk != first.pk
        assert second.status == ApplicationStatus.PENDING


@pytest.mark.django_db
class TestAccept:
    def test_accept_resolves_listing_and_siblings(self, listing, owner, alice, bob, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        a2 = applications.submit(listing.pk, bob, application_payload)

        application, updated_listing = applications.accept(a1.pk, owner)

        assert application.status == ApplicationStatus.ACCEPTED
        assert updated_listing.status == ListingStatus.IN_PROGRESS
        a2.refresh_from_db()
        listing.refresh_from_db()
        assert a2.status == ApplicationStatus.REJECTED
        assert listing.status == ListingStatus.IN_PROGRESS

    def test_accept_notifies_winner_and_rejected(self, listing, owner, alice, bob, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        applications.submit(listing.pk, bob, application_payload)
        applications.accept(a1.pk, owner)

        assert Notification.objects.get(recipient=alice).kind == NotificationKind.APPLICATION_ACCEPTED
        assert Notification.objects.get(recipient=bob).kind == NotificationKind.APPLICATION_REJECTED

    def test_only_owner_can_accept(self, listing, alice, bob, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        with pytest.raises(ForbiddenError):
            applications.accept(a1.pk, bob)
        a1.refresh_from_db()
        assert a1.status == ApplicationStatus.PENDING

    def test_accepting_twice_conflicts(self, listing, owner, alice, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        applications.accept(a1.pk, owner)
        with pytest.raises(ConflictError):
            applications.accept(a1.pk, owner)

    def test_sequential_accepts_have_one_winner(self, listing, owner, make_user, application_payload):
        pending = [
            applications.submit(listing.pk, make_user(f"helper{i}"), application_payload)
            for i in range(5)
        ]
        winners, conflicts = [], 0
        for application in pending:
            try:
                winners.append(applications.accept(application.pk, owner)[0])
            except ConflictError:
                conflicts += 1

        assert len(winners) == 1
        assert conflicts == 4
        assert Application.objects.filter(listing=listing, status="accepted").count() == 1

    def test_sibling_rejection_can_be_disabled(self, settings, listing, owner, alice, bob, application_payload):
        settings.SKILLSWAP_REJECT_SIBLINGS_ON_ACCEPT = False
        a1 = applications.submit(listing.pk, alice, application_payload)
        a2 = applications.submit(listing.pk, bob, application_payload)
        applications.accept(a1.pk, owner)

        a2.refresh_from_db()
        assert a2.status == ApplicationStatus.PENDING
        with pytest.raises(ConflictError):
            applications.accept(a2.pk, owner)
        assert Application.objects.filter(listing=listing, status="accepted").count() == 1

    def test_cancelled_listing_cannot_accept(self, listing, owner, alice, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        listings.transition(listing.pk, owner, "cancelled")
        with pytest.raises(ConflictError):
            applications.accept(a1.pk, owner)
        a1.refresh_from_db()
        assert a1.status == ApplicationStatus.PENDING

    def test_database_refuses_second_accepted_application(self, listing, owner, alice, bob, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        a2 = applications.submit(listing.pk, bob, application_payload)
        applications.accept(a1.pk, owner)
        with pytest.raises(IntegrityError), transaction.atomic():
            Application.objects.filter(pk=a2.pk).update(status="accepted")

    def test_unknown_application(self, owner):
        with pytest.raises(NotFoundError):
            applications.accept(123456, owner)


@pytest.mark.django_db
class TestReject:
    def test_reject_leaves_listing_open(self, listing, owner, alice, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        rejected = applications.reject(a1.pk, owner)
        assert rejected.status == ApplicationStatus.REJECTED
        listing.refresh_from_db()
        assert listing.status == ListingStatus.OPEN

    def test_reject_requires_pending(self, listing, owner, alice, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        applications.accept(a1.pk, owner)
        with pytest.raises(ConflictError):
            applications.reject(a1.pk, owner)

    def test_only_owner_can_reject(self, listing, alice, bob, application_payload):
        a1 = applications.submit(listing.pk, alice, application_payload)
        with pytest.raises(ForbiddenError):
            applications.reject(a1.pk, bob)


@pytest.mark.django_db
def test_list_for_listing_is_owner_only(listing, owner, alice, bob, application_payload):
    a1 = applications.submit(listing.pk, alice, application_payload)
    applications.submit(listing.pk, bob, application_payload)
    applications.reject(a1.pk, owner)

    assert len(applications.list_for_listing(listing.pk, owner)) == 2
    assert [a.pk for a in applications.list_for_listing(listing.pk, owner, status="rejected")] == [a1.pk]
    with pytest.raises(ForbiddenError):
        applications.list_for_listing(listing.pk, alice)


@pytest.mark.django_db
def test_list_for_applicant(make_listing, alice, application_payload):
    first = make_listing()
    second = make_listing(title="Other")
    applications.submit(first.pk, alice, application_payload)
    applications.submit(second.pk, alice, application_payload)
    assert {a.listing_id for a in applications.list_for_applicant(alice)} == {first.pk, second.pk}


needs_row_locks = pytest.mark.skipif(
    not connection.features.has_select_for_update,
    reason="needs a database with row locks; set TEST_DATABASE_URL to a Postgres database",
)


def race(*calls):
    """Start ``calls`` together in threads; return "ok", "conflict" or the error per call."""
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def run(index, call):
        barrier.wait()
        try:
            call()
            outcomes[index] = "ok"
        except ConflictError:
            outcomes[index] = "conflict"
        except Exception as exc:
            outcomes[index] = repr(exc)
        finally:
            connection.close()

    threads = [threading.Thread(target=run, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


@pytest.mark.postgres
@needs_row_locks
@pytest.mark.django_db(transaction=True)
def test_concurrent_accepts_have_exactly_one_winner(make_listing, owner, make_user, application_payload):
    listing = make_listing()
    pending = [
        applications.submit(listing.pk, make_user(f"racer{i}"), application_payload)
        for i in range(6)
    ]

    outcomes = race(*[
        functools.partial(applications.accept, application.pk, owner) for application in pending
    ])

    assert sorted(outcomes) == ["conflict"] * (len(pending) - 1) + ["ok"]
    listing.refresh_from_db()
    assert listing.status == ListingStatus.IN_PROGRESS
    assert Application.objects.filter(listing=listing, status="accepted").count() == 1
    assert Application.objects.filter(listing=listing, status="pending").count() == 0


@pytest.mark.postgres
@needs_row_locks
@pytest.mark.django_db(transaction=True)
def test_concurrent_accept_and_reject_of_one_application(listing, owner, alice, application_payload):
    application = applications.submit(listing.pk, alice, application_payload)

    accepted, rejected = race(
        functools.partial(applications.accept, application.pk, owner),
        functools.partial(applications.reject, application.pk, owner),
    )

    assert sorted([accepted, rejected]) == ["conflict", "ok"]
    application.refresh_from_db()
    listing.refresh_from_db()
    if accepted == "ok":
        assert application.status == ApplicationStatus.ACCEPTED
        assert listing.status == ListingStatus.IN_PROGRESS
    else:
        assert application.status == ApplicationStatus.REJECTED
        assert listing.status == ListingStatus.OPEN


@pytest.mark.postgres
@needs_row_locks
@pytest.mark.django_db(transaction=True)
def test_reject_racing_accept_of_a_sibling(listing, owner, alice, bob, application_payload):
    winner = applications.submit(listing.pk, alice, application_payload)
    sibling = applications.submit(listing.pk, bob, application_payload)

    accepted, rejected = race(
        functools.partial(applications.accept, winner.pk, owner),
        functools.partial(applications.reject, sibling.pk, owner),
    )

    assert accepted == "ok"
    assert rejected in ("ok", "conflict")
    winner.refresh_from_db()
    sibling.refresh_from_db()
    assert winner.status == ApplicationStatus.ACCEPTED
    assert sibling.status == ApplicationStatus.REJECTED


@pytest.mark.django_db
@pytest.mark.parametrize("decide", [applications.accept, applications.reject])
def test_decisions_lock_the_listing_before_the_application(decide, listing, owner, alice, application_payload):
    application = applications.submit(listing.pk, alice, application_payload)
    locked = []
    real_lock_listing = applications._lock_listing
    real_get_application = applications._get_application

    def lock_listing(listing_id):
        locked.append("listing")
        return real_lock_listing(listing_id)

    def get_application(application_id, lock=False):
        locked.append("application")
        return real_get_application(application_id, lock=lock)

    with mock.patch.object(applications, "_lock_listing", lock_listing):
        with mock.patch.object(applications, "_get_application", get_application):
            decide(application.pk, owner)

    assert locked == ["listing", "application"]


@pytest.mark.postgres
@needs_row_locks
@pytest.mark.django_db
def test_listing_lock_leaves_the_owner_row_alone(listing, alice, application_payload):
    with CaptureQueriesContext(connection) as queries:
        applications.submit(listing.pk, alice, application_payload)

    locks = [query["sql"] for query in queries if "FOR UPDATE" in query["sql"]]
    assert locks
    assert all('FOR UPDATE OF "skillswap_listing"' in sql for sql in locks)
