from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from .constants import CONNECTION_MESSAGE_MAX_LENGTH, PREFERRED_CONTACT_CHOICES, TITLE_MAX_LENGTH
from .managers import (
    ApplicationQuerySet,
    ConnectionQuerySet,
    ConversationQuerySet,
    ListingQuerySet,
    MessageQuerySet,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ListingKind(models.TextChoices):
    OFFER = "offer", _("Offer")
    REQUEST = "request", _("Request")


class ListingStatus(models.TextChoices):
    OPEN = "open", _("Open")
    IN_PROGRESS = "in_progress", _("In progress")
    COMPLETED = "completed", _("Completed")
    CANCELLED = "cancelled", _("Cancelled")


class ApplicationStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    ACCEPTED = "accepted", _("Accepted")
    REJECTED = "rejected", _("Rejected")


class ConnectionStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    ACCEPTED = "accepted", _("Accepted")
    REJECTED = "rejected", _("Rejected")


class NotificationKind(models.TextChoices):
    APPLICATION_RECEIVED = "application_received", _("Application received")
    APPLICATION_ACCEPTED = "application_accepted", _("Application accepted")
    APPLICATION_REJECTED = "application_rejected", _("Application rejected")
    CONNECTION_REQUEST = "connection_request", _("Connection request")
    CONNECTION_ACCEPTED = "connection_accepted", _("Connection accepted")
    NEW_MESSAGE = "new_message", _("New message")


# ---------------------------------------------------------------------------
# Profile (public fields shown next to conversations)
# ---------------------------------------------------------------------------

class Profile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    display_name = models.CharField(_("display name"), max_length=100, blank=True)
    avatar_url = models.URLField(_("avatar URL"), blank=True)

    def __str__(self):
        return self.display_name or str(self.user)


# ---------------------------------------------------------------------------
# Listing (offer or request)
# ---------------------------------------------------------------------------

class Listing(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    kind = models.CharField(max_length=10, choices=ListingKind.choices)
    title = models.CharField(_("title"), max_length=TITLE_MAX_LENGTH)
    description = models.TextField(_("description"), blank=True)
    category = models.CharField(_("category"), max_length=100, blank=True)
    availability = models.CharField(_("availability"), max_length=255, blank=True)
    location = models.CharField(_("location"), max_length=255, blank=True)
    is_paid = models.BooleanField(_("paid"), default=False)
    price = models.DecimalField(
        _("price"), max_digits=10, decimal_places=2, null=True, blank=True,
    )
    status = models.CharField(
        max_length=12,
        choices=ListingStatus.choices,
        default=ListingStatus.OPEN,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ListingQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
            models.Index(fields=["kind", "status"], name="listing_kind_status_idx"),
        ]

    def __str__(self):
        return self.title


# ---------------------------------------------------------------------------
# Application (a response to a listing)
# ---------------------------------------------------------------------------

class Application(models.Model):
    listing = models.ForeignKey(
        Listing, on_delete=models.CASCADE, related_name="applications",
    )
    applicant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="applications",
    )
    message = models.TextField(_("message"))
    availability = models.CharField(_("availability"), max_length=255)
    contact_email = models.EmailField(_("contact email"), blank=True)
    contact_phone = models.CharField(_("contact phone"), max_length=40, blank=True)
    preferred_contact = models.CharField(
        _("preferred contact"),
        max_length=10,
        choices=PREFERRED_CONTACT_CHOICES,
        default="email",
    )
    proposed_timeline = models.CharField(_("proposed timeline"), max_length=255, blank=True)
    status = models.CharField(
        max_length=10,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.PENDING,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ApplicationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["listing", "status"], name="app_listing_status_idx"),
            models.Index(fields=["applicant", "status"], name="app_applicant_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "applicant"],
                condition=models.Q(status="pending"),
                name="unique_pending_application",
            ),
            models.UniqueConstraint(
                fields=["listing"],
                condition=models.Q(status="accepted"),
                name="one_accepted_application_per_listing",
            ),
        ]

    def __str__(self):
        return f"Application #{self.pk}"

    @property
    def contact_info(self):
        return {
            "email": self.contact_email,
            "phone": self.contact_phone,
            "preferred_contact": self.preferred_contact,
        }


# ---------------------------------------------------------------------------
# Connection (one row per unordered user pair)
# ---------------------------------------------------------------------------

class Connection(models.Model):
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_connections",
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_connections",
    )
    # Canonical ordering of the pair, min id first.
    user_low = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    user_high = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    message = models.CharField(
        _("message"), max_length=CONNECTION_MESSAGE_MAX_LENGTH, blank=True,
    )
    status = models.CharField(
        max_length=10,
        choices=ConnectionStatus.choices,
        default=ConnectionStatus.PENDING,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ConnectionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "status"], name="conn_recipient_status_idx"),
            models.Index(fields=["requester", "status"], name="conn_requester_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user_low", "user_high"],
                name="unique_connection_pair",
            ),
            models.CheckConstraint(
                condition=~models.Q(requester=models.F("recipient")),
                name="connection_not_self",
            ),
        ]

    def __str__(self):
        return f"Connection #{self.pk}"

    def save(self, *args, **kwargs):
        if self.requester_id is not None and self.recipient_id is not None:
            self.user_low_id, self.user_high_id = sorted(
                (self.requester_id, self.recipient_id),
            )
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Conversation & Message
# ---------------------------------------------------------------------------

class Conversation(models.Model):
    key = models.CharField(max_length=100, unique=True)
    listing = models.ForeignKey(
        Listing,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="conversations",
    )
    participant_low = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    participant_high = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    item_title = models.CharField(max_length=TITLE_MAX_LENGTH, blank=True)
    item_type = models.CharField(max_length=20, blank=True)
    last_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ConversationQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["participant_low", "last_message_at"], name="conv_low_last_msg_idx"),
            models.Index(fields=["participant_high", "last_message_at"], name="conv_high_last_msg_idx"),
        ]

    def __str__(self):
        return f"Conversation #{self.pk}"

    @property
    def participant_ids(self):
        return (self.participant_low_id, self.participant_high_id)

    def has_participant(self, user):
        return user.pk in self.participant_ids

    def other_participant(self, user):
        if user.pk == self.participant_low_id:
            return self.participant_high
        return self.participant_low


class Message(models.Model):
    conversation = models.ForeignKey(
        Conversation, on_delete=models.CASCADE, related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    content = models.TextField()
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="read_messages",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = MessageQuerySet.as_manager()

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Message #{self.pk}"


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------

class Notification(models.Model):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    kind = models.CharField(max_length=30, choices=NotificationKind.choices)
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True)
    listing = models.ForeignKey(
        Listing, on_delete=models.CASCADE, null=True, blank=True, related_name="+",
    )
    connection = models.ForeignKey(
        Connection, on_delete=models.CASCADE, null=True, blank=True, related_name="+",
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notification_unread_idx"),
        ]

    def __str__(self):
        return self.title
