from django import forms
from django.conf import settings
from django.core.exceptions import NON_FIELD_ERRORS

from dashboard.utils.time_utils import duration_minutes, parse_datetime
from .constants import (
    APPOINTMENT_CHANNELS,
    APPOINTMENT_STATUSES,
    CHANNEL_IN_PERSON,
    STATUS_SCHEDULED,
)
from .models import Consultation

DATETIME_HINT = "must be 'YYYY-MM-DD HH:MM:SS'"


class AppointmentForm(forms.Form):
    """
    Input validation for appointment create/update.
    Used by:
      - dashboard.services (JSON API)
      - Django admin (AppointmentAdmin)

    Only checks the shape of the input. Existence of client/case/lawyer and
    the overlap check need the database and live in dashboard.services.
    """

    client_id = forms.IntegerField(error_messages={
        "required": "client_id is required",
        "invalid": "client_id must be an integer",
    })
    case_id = forms.IntegerField(required=False, error_messages={
        "invalid": "case_id must be an integer",
    })
    lawyer_id = forms.IntegerField(required=False, error_messages={
        "invalid": "lawyer_id must be an integer",
    })
    start_at = forms.CharField(error_messages={"required": f"start_at {DATETIME_HINT}"})
    end_at = forms.CharField(error_messages={"required": f"end_at {DATETIME_HINT}"})
    channel = forms.CharField(required=False)
    status = forms.CharField(required=False)
    title = forms.CharField(required=False)
    notes = forms.CharField(required=False)

    def _clean_datetime(self, name):
        value = parse_datetime(self.cleaned_data.get(name))
        if value is None:
            raise forms.ValidationError(f"{name} {DATETIME_HINT}")
        return value

    def clean_start_at(self):
        return self._clean_datetime("start_at")

    def clean_end_at(self):
        return self._clean_datetime("end_at")

    def clean_channel(self):
        channel = self.cleaned_data.get("channel") or CHANNEL_IN_PERSON
        if channel not in dict(APPOINTMENT_CHANNELS):
            raise forms.ValidationError("Invalid channel")
        return channel

    def clean_status(self):
        status = self.cleaned_data.get("status") or STATUS_SCHEDULED
        if status not in dict(APPOINTMENT_STATUSES):
            raise forms.ValidationError("Invalid status")
        return status

    def clean_title(self):
        # blank means "no title"; CharField already stripped it
        title = self.cleaned_data.get("title") or ""
        if len(title) > 120:
            raise forms.ValidationError("title must be 1-120 characters")
        return title

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("start_at")
        end = cleaned.get("end_at")

        # Check if either is missing; the field errors already cover it
        if not start or not end:
            return cleaned

        if end <= start:
            self.add_error("end_at", "end_at must be after start_at")
            return cleaned

        minutes = duration_minutes(start, end)
        if minutes < settings.APPOINTMENT_MIN_MINUTES or minutes > settings.APPOINTMENT_MAX_MINUTES:
            self.add_error(
                "end_at",
                f"Appointment duration must be between {settings.APPOINTMENT_MIN_MINUTES} "
                f"and {settings.APPOINTMENT_MAX_MINUTES} minutes",
            )

        return cleaned

    def first_error(self):
        """
        (field, message) of the first problem in field declaration order,
        or (None, None) when the form is valid.
        """
        for name in [*self.fields, NON_FIELD_ERRORS]:
            if name in self.errors:
                field = None if name == NON_FIELD_ERRORS else name
                return field, self.errors[name][0]
        return None, None


class ConsultationForm(forms.ModelForm):
    """Public contact form (landing page -> /api/consultas/)."""

    class Meta:
        model = Consultation
        fields = ["full_name", "email", "phone", "area", "message", "urgency"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["urgency"].required = False

    def clean_full_name(self):
        name = (self.cleaned_data.get("full_name") or "").strip()
        if not 3 <= len(name) <= 120:
            raise forms.ValidationError("full_name is required (3-120)")
        return name

    def clean_message(self):
        message = (self.cleaned_data.get("message") or "").strip()
        if not 10 <= len(message) <= 2000:
            raise forms.ValidationError("message must be 10-2000 characters")
        return message

    def clean_urgency(self):
        return self.cleaned_data.get("urgency") or "normal"

    def first_error(self):
        for name, errors in self.errors.items():
            field = None if name == NON_FIELD_ERRORS else name
            return field, errors[0]
        return None, None
