from django.contrib import admin

from .models import (
    Application,
    Connection,
    Conversation,
    Listing,
    Message,
    Notification,
    Profile,
)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "display_name")
    search_fields = ("display_name", "user__username", "user__email")


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ("title", "kind", "owner", "status", "is_paid", "created_at")
    list_filter = ("kind", "status", "is_paid")
    search_fields = ("title", "category")


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "applicant", "status", "created_at")
    list_filter = ("status",)


@admin.register(Connection)
class ConnectionAdmin(admin.ModelAdmin):
    list_display = ("id", "requester", "recipient", "status", "updated_at")
    list_filter = ("status",)
    readonly_fields = ("user_low", "user_high")


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "item_title", "last_message_at")
    readonly_fields = ("key", "last_message", "last_message_at")


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "conversation", "sender", "created_at")

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "recipient", "kind", "is_read", "created_at")
    list_filter = ("kind", "is_read")
