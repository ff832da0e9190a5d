"""
Listing store: offers and requests and their lifecycle.

    open ──► in_progress ──► completed
      │           │
      └──► cancelled ◄──┘

``open → in_progress`` is taken by accepting an application; the other
moves are made by the owner. Every write is conditional on the status the
caller observed so a concurrent change is reported instead of overwritten.
"""
import logging

from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext as _

from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .forms import ListingForm, clean_or_raise
from .models import Application, ApplicationStatus, Listing, ListingStatus
from .store import store_errors

logger = logging.getLogger(__name__)

TRANSITIONS = {
    ListingStatus.OPEN: {ListingStatus.IN_PROGRESS, ListingStatus.CANCELLED},
    ListingStatus.IN_PROGRESS: {ListingStatus.COMPLETED, ListingStatus.CANCELLED},
    ListingStatus.COMPLETED: set(),
    ListingStatus.CANCELLED: set(),
}


def create_listing(owner, data):
    form = ListingForm(data)
    cleaned = clean_or_raise(form)
    listing = form.save(commit=False)
    listing.owner = owner
    listing.price = cleaned["price"]
    with store_errors():
        listing.save()
    logger.info("Listing %s created by user %s (%s)", listing.pk, owner.pk, listing.kind)
    return listing


def get_listing(listing_id):
    try:
        return Listing.objects.select_related("owner").get(pk=listing_id)
    except (Listing.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(_("Listing not found."))


def list_by_user(user, kind=None, status=None):
    qs = Listing.objects.owned_by(user)
    if kind:
        qs = qs.filter(kind=kind)
    if status:
        qs = qs.filter(status=status)
    return list(qs)


def claim_status(listing, expected, target):
    """Move ``listing`` from ``expected`` to ``target`` if nobody beat us to it."""
    now = timezone.now()
    updated = Listing.objects.filter(pk=listing.pk, status=expected).update(
        status=target, updated_at=now,
    )
    if not updated:
        raise ConflictError(_("The listing was changed by someone else."))
    listing.status = target
    listing.updated_at = now
    return listing


def transition(listing_id, actor, target_status):
    if target_status not in ListingStatus.values:
        raise ValidationError(_("Unknown listing status: %(status)s") % {"status": target_status})
    target = ListingStatus(target_status)
    with store_errors(), transaction.atomic():
        listing = get_listing(listing_id)
        if listing.owner_id != actor.pk:
            raise ForbiddenError(_("Only the owner can change this listing."))
        if listing.status == target:
            return listing
        if target not in TRANSITIONS[ListingStatus(listing.status)]:
            raise InvalidTransitionError(
                _("Cannot move a listing from %(current)s to %(target)s.") % {
                    "current": listing.status,
                    "target": target,
                }
            )
        if target == ListingStatus.IN_PROGRESS:
            has_winner = Application.objects.filter(
                listing=listing, status=ApplicationStatus.ACCEPTED,
            ).exists()
            if not has_winner:
                raise InvalidTransitionError(
                    _("A listing starts only once an application is accepted."),
                )
        claim_status(listing, listing.status, target)
    logger.info("Listing %s moved to %s by user %s", listing.pk, target, actor.pk)
    return listing
