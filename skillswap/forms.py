from django import forms
from django.conf import settings
from django.utils.translation import gettext_lazy as _

from .constants import CONNECTION_MESSAGE_MAX_LENGTH
from .exceptions import ValidationError
from .models import Application, Listing


def clean_or_raise(form):
    """Return ``form.cleaned_data`` or raise the engine ``ValidationError``."""
    if not form.is_valid():
        raise ValidationError(errors=form.errors.get_json_data())
    return form.cleaned_data


class ListingForm(forms.ModelForm):
    class Meta:
        model = Listing
        fields = [
            "kind",
            "title",
            "description",
            "category",
            "availability",
            "location",
            "is_paid",
            "price",
        ]

    def clean_title(self):
        title = self.cleaned_data["title"].strip()
        if not title:
            raise forms.ValidationError(_("Title is required."))
        return title

    def clean(self):
        cleaned = super().clean()
        price = cleaned.get("price")
        if price is not None and price < 0:
            self.add_error("price", _("Price cannot be negative."))
        if cleaned.get("is_paid"):
            if price is None:
                self.add_error("price", _("A paid listing needs a price."))
        else:
            cleaned["price"] = None
        return cleaned


class ApplicationForm(forms.ModelForm):
    class Meta:
        model = Application
        fields = [
            "message",
            "availability",
            "contact_email",
            "contact_phone",
            "preferred_contact",
            "proposed_timeline",
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["preferred_contact"].required = False

    def clean_message(self):
        message = self.cleaned_data["message"].strip()
        if not message:
            raise forms.ValidationError(_("Message is required."))
        return message

    def clean_availability(self):
        availability = self.cleaned_data["availability"].strip()
        if not availability:
            raise forms.ValidationError(_("Availability is required."))
        return availability

    def clean_preferred_contact(self):
        return self.cleaned_data.get("preferred_contact") or "email"


class ConnectionRequestForm(forms.Form):
    message = forms.CharField(
        max_length=CONNECTION_MESSAGE_MAX_LENGTH, required=False, label=_("Message"),
    )


class MessageForm(forms.Form):
    content = forms.CharField(label=_("Message"))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["content"] = forms.CharField(
            max_length=settings.SKILLSWAP_MESSAGE_MAX_LENGTH, label=_("Message"),
        )
