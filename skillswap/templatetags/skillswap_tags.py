from django import template

from skillswap.conversations import format_relative_age

register = template.Library()


@register.filter
def relative_age(value):
    """Render a timestamp as "Just now", "3h ago", "2d ago" or "Oct 3"."""
    return format_relative_age(value)
