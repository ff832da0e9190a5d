from django.db import models


class ListingQuerySet(models.QuerySet):
    def owned_by(self, user):
        return self.filter(owner=user)


class ApplicationQuerySet(models.QuerySet):
    def pending(self):
        return self.filter(status="pending")

    def live(self):
        """Applications that still count as responses (pending or accepted)."""
        return self.exclude(status="rejected")


class ConnectionQuerySet(models.QuerySet):
    def between(self, user_a_id, user_b_id):
        low, high = sorted((user_a_id, user_b_id))
        return self.filter(user_low_id=low, user_high_id=high)

    def involving(self, user):
        return self.filter(models.Q(requester=user) | models.Q(recipient=user))


class ConversationQuerySet(models.QuerySet):
    def for_user(self, user):
        return self.filter(
            models.Q(participant_low=user) | models.Q(participant_high=user),
        )

    def by_recency(self):
        return self.order_by(
            models.F("last_message_at").desc(nulls_last=True),
            "-created_at",
            "-id",
        )


class MessageQuerySet(models.QuerySet):
    def unread_by(self, user):
        return self.exclude(sender=user).exclude(read_by=user)
