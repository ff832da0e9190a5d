import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("display_name", models.CharField(blank=True, max_length=100, verbose_name="display name")),
                ("avatar_url", models.URLField(blank=True, verbose_name="avatar URL")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("offer", "Offer"), ("request", "Request")], max_length=10)),
                ("title", models.CharField(max_length=200, verbose_name="title")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                ("category", models.CharField(blank=True, max_length=100, verbose_name="category")),
                ("availability", models.CharField(blank=True, max_length=255, verbose_name="availability")),
                ("location", models.CharField(blank=True, max_length=255, verbose_name="location")),
                ("is_paid", models.BooleanField(default=False, verbose_name="paid")),
                ("price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name="price")),
                ("status", models.CharField(choices=[("open", "Open"), ("in_progress", "In progress"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="open", max_length=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="listings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
                    models.Index(fields=["kind", "status"], name="listing_kind_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Application",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("message", models.TextField(verbose_name="message")),
                ("availability", models.CharField(max_length=255, verbose_name="availability")),
                ("contact_email", models.EmailField(blank=True, max_length=254, verbose_name="contact email")),
                ("contact_phone", models.CharField(blank=True, max_length=40, verbose_name="contact phone")),
                ("preferred_contact", models.CharField(choices=[("email", "Email"), ("phone", "Phone"), ("platform", "Platform messages")], default="email", max_length=10, verbose_name="preferred contact")),
                ("proposed_timeline", models.CharField(blank=True, max_length=255, verbose_name="proposed timeline")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("accepted", "Accepted"), ("rejected", "Rejected")], default="pending", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("applicant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="applications", to=settings.AUTH_USER_MODEL)),
                ("listing", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="applications", to="skillswap.listing")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["listing", "status"], name="app_listing_status_idx"),
                    models.Index(fields=["applicant", "status"], name="app_applicant_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "pending")), fields=("listing", "applicant"), name="unique_pending_application"),
                    models.UniqueConstraint(condition=models.Q(("status", "accepted")), fields=("listing",), name="one_accepted_application_per_listing"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Connection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("message", models.CharField(blank=True, max_length=500, verbose_name="message")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("accepted", "Accepted"), ("rejected", "Rejected")], default="pending", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="received_connections", to=settings.AUTH_USER_MODEL)),
                ("requester", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sent_connections", to=settings.AUTH_USER_MODEL)),
                ("user_high", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("user_low", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "status"], name="conn_recipient_status_idx"),
                    models.Index(fields=["requester", "status"], name="conn_requester_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("user_low", "user_high"), name="unique_connection_pair"),
                    models.CheckConstraint(condition=models.Q(("requester", models.F("recipient")), _negated=True), name="connection_not_self"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("item_title", models.CharField(blank=True, max_length=200)),
                ("item_type", models.CharField(blank=True, max_length=20)),
                ("last_message_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("listing", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="conversations", to="skillswap.listing")),
                ("participant_high", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("participant_low", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["participant_low", "last_message_at"], name="conv_low_last_msg_idx"),
                    models.Index(fields=["participant_high", "last_message_at"], name="conv_high_last_msg_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("content", models.TextField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("conversation", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="messages", to="skillswap.conversation")),
                ("read_by", models.ManyToManyField(blank=True, related_name="read_messages", to=settings.AUTH_USER_MODEL)),
                ("sender", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sent_messages", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.AddField(
            model_name="conversation",
            name="last_message",
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="skillswap.message"),
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("application_received", "Application received"), ("application_accepted", "Application accepted"), ("application_rejected", "Application rejected"), ("connection_request", "Connection request"), ("connection_accepted", "Connection accepted"), ("new_message", "New message")], max_length=30)),
                ("title", models.CharField(max_length=255)),
                ("body", models.TextField(blank=True)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("connection", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="+", to="skillswap.connection")),
                ("listing", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="+", to="skillswap.listing")),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
                ("sender", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read"], name="notification_unread_idx"),
                ],
            },
        ),
    ]
