"""
Application engine.

Applicants submit against open listings; the listing owner accepts exactly
one. Acceptance is a single transaction over the application, its pending
siblings and the listing: the listing row is locked before any of its
applications, every write is conditional on the status read under the
lock, and the database refuses a second accepted application per listing.
A caller that loses the race gets ``ConflictError`` and nothing is written.
"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.translation import gettext as _

from .exceptions import ConflictError, ForbiddenError, NotFoundError
from .forms import ApplicationForm, clean_or_raise
from .listings import claim_status, get_listing
from .models import Application, ApplicationStatus, Listing, ListingStatus
from .notifications import notify_application_decided, notify_application_received
from .store import store_errors

logger = logging.getLogger(__name__)


def _get_application(application_id, lock=False):
    qs = Application.objects.select_related("applicant")
    if lock:
        qs = qs.select_for_update(of=("self",))
    try:
        return qs.get(pk=application_id)
    except (Application.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("Application not found."))


def _lock_listing(listing_id):
    try:
        return (
            Listing.objects.select_for_update(of=("self",))
            .select_related("owner")
            .get(pk=listing_id)
        )
    except (Listing.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("Listing not found."))


def _lock_for_decision(application_id):
    """Lock the listing, then the application.

    Every writer on a listing's applications takes the listing row first.
    """
    try:
        listing_id = Application.objects.values_list("listing_id", flat=True).get(pk=application_id)
    except (Application.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("Application not found."))
    listing = _lock_listing(listing_id)
    application = _get_application(application_id, lock=True)
    application.listing = listing
    return application, listing


def submit(listing_id, applicant, payload):
    form = ApplicationForm(payload)
    clean_or_raise(form)
    with store_errors():
        try:
            with transaction.atomic():
                listing = _lock_listing(listing_id)
                if listing.owner_id == applicant.pk:
                    raise ForbiddenError(_("You cannot apply to your own listing."))
                if listing.status != ListingStatus.OPEN:
                    raise ConflictError(_("This listing is no longer open."))
                duplicate = Application.objects.pending().filter(
                    listing=listing, applicant=applicant,
                ).exists()
                if duplicate:
                    raise ConflictError(_("You already have a pending application for this listing."))
                application = form.save(commit=False)
                application.listing = listing
                application.applicant = applicant
                application.save()
                notify_application_received(application)
        except IntegrityError:
            raise ConflictError(_("You already have a pending application for this listing."))
    logger.info(
        "Application %s submitted to listing %s by user %s",
        application.pk, listing.pk, applicant.pk,
    )
    return application


def accept(application_id, actor):
    """Accept one application; the listing moves to in_progress."""
    with store_errors():
        try:
            with transaction.atomic():
                application, listing = _lock_for_decision(application_id)
                if listing.owner_id != actor.pk:
                    raise ForbiddenError(_("Only the listing owner can accept applications."))
                if application.status != ApplicationStatus.PENDING:
                    raise ConflictError(_("This application has already been resolved."))
                if listing.status != ListingStatus.OPEN:
                    raise ConflictError(_("This listing already has an accepted application."))

                claim_status(listing, ListingStatus.OPEN, ListingStatus.IN_PROGRESS)
                now = timezone.now()
                won = Application.objects.filter(
                    pk=application.pk, status=ApplicationStatus.PENDING,
                ).update(status=ApplicationStatus.ACCEPTED, updated_at=now)
                if not won:
                    raise ConflictError(_("This application has already been resolved."))
                application.status = ApplicationStatus.ACCEPTED
                application.updated_at = now

                rejected = []
                if settings.SKILLSWAP_REJECT_SIBLINGS_ON_ACCEPT:
                    rejected = list(
                        Application.objects.pending()
                        .filter(listing=listing)
                        .exclude(pk=application.pk)
                        .select_related("applicant")
                        .select_for_update(of=("self",))
                    )
                    Application.objects.filter(
                        pk__in=[sibling.pk for sibling in rejected],
                        status=ApplicationStatus.PENDING,
                    ).update(status=ApplicationStatus.REJECTED, updated_at=now)

                notify_application_decided(application)
                for sibling in rejected:
                    sibling.status = ApplicationStatus.REJECTED
                    sibling.listing = listing
                    notify_application_decided(sibling)
        except IntegrityError:
            logger.info("Accept of application %s lost the arbitration race", application_id)
            raise ConflictError(_("This listing already has an accepted application."))
    logger.info(
        "Application %s accepted for listing %s; %d sibling(s) rejected",
        application.pk, listing.pk, len(rejected),
    )
    return application, listing


def reject(application_id, actor):
    with store_errors(), transaction.atomic():
        application, listing = _lock_for_decision(application_id)
        if listing.owner_id != actor.pk:
            raise ForbiddenError(_("Only the listing owner can reject applications."))
        if application.status != ApplicationStatus.PENDING:
            raise ConflictError(_("This application has already been resolved."))
        updated = Application.objects.filter(
            pk=application.pk, status=ApplicationStatus.PENDING,
        ).update(status=ApplicationStatus.REJECTED, updated_at=timezone.now())
        if not updated:
            raise ConflictError(_("This application has already been resolved."))
        application.status = ApplicationStatus.REJECTED
        notify_application_decided(application)
    logger.info("Application %s rejected by user %s", application.pk, actor.pk)
    return application


def list_for_listing(listing_id, actor, status=None):
    listing = get_listing(listing_id)
    if listing.owner_id != actor.pk:
        raise ForbiddenError(_("Only the listing owner can see its applications."))
    qs = Application.objects.filter(listing=listing).select_related("applicant")
    if status:
        qs = qs.filter(status=status)
    return list(qs)


def list_for_applicant(user, status=None):
    qs = Application.objects.filter(applicant=user).select_related("listing")
    if status:
        qs = qs.filter(status=status)
    return list(qs)
