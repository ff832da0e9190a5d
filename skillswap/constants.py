from django.utils.translation import gettext_lazy as _

TITLE_MAX_LENGTH = 200
CONNECTION_MESSAGE_MAX_LENGTH = 500

RECENT_NOTIFICATIONS_LIMIT = 50

PREFERRED_CONTACT_CHOICES = [
    ("email", _("Email")),
    ("phone", _("Phone")),
    ("platform", _("Platform messages")),
]

# Relative-age thresholds for conversation lists, in seconds.
HOUR = 60 * 60
DAY = 24 * HOUR
WEEK = 7 * DAY
