from django.core.management.base import BaseCommand
from django.db.models import OuterRef, Subquery

from skillswap.models import Conversation, Message


class Command(BaseCommand):
    help = "Recompute last_message / last_message_at for every conversation from the message log"

    def handle(self, *args, **options):
        latest = Message.objects.filter(
            conversation=OuterRef("pk"),
        ).order_by("-created_at", "-id")

        self.stdout.write("Rebuilding conversation summaries...")
        count = Conversation.objects.update(
            last_message=Subquery(latest.values("pk")[:1]),
            last_message_at=Subquery(latest.values("created_at")[:1]),
        )
        self.stdout.write(self.style.SUCCESS(f"Rebuilt {count} conversations."))
