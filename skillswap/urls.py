from django.urls import path

from . import views

app_name = "skillswap"

urlpatterns = [
    # Listings
    path("listings/", views.listing_create, name="listing_create"),
    path("listings/mine/", views.listing_mine, name="listing_mine"),
    path("listings/response-counts/", views.response_counts, name="response_counts"),
    path("listings/<int:pk>/", views.listing_detail, name="listing_detail"),
    path("listings/<int:pk>/transition/", views.listing_transition, name="listing_transition"),
    path("listings/<int:pk>/applications/", views.listing_applications, name="listing_applications"),
    # Applications
    path("applications/mine/", views.application_mine, name="application_mine"),
    path("applications/<int:pk>/accept/", views.application_accept, name="application_accept"),
    path("applications/<int:pk>/reject/", views.application_reject, name="application_reject"),
    path("applications/<int:pk>/conversation/", views.application_conversation, name="application_conversation"),
    # Connections
    path("connections/", views.connection_collection, name="connection_collection"),
    path("connections/status/<int:user_id>/", views.connection_status, name="connection_status"),
    path("connections/<int:pk>/respond/", views.connection_respond, name="connection_respond"),
    # Messaging
    path("conversations/", views.conversation_collection, name="conversation_collection"),
    path("conversations/<int:pk>/messages/", views.conversation_messages, name="conversation_messages"),
    path("conversations/<int:pk>/read/", views.conversation_read, name="conversation_read"),
    path("messages/unread/", views.unread_total, name="unread_total"),
    # Notifications
    path("notifications/", views.notification_list, name="notification_list"),
    path("notifications/read-all/", views.notification_read_all, name="notification_read_all"),
    path("notifications/<int:pk>/read/", views.notification_read, name="notification_read"),
]
