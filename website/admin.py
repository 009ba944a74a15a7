from django import forms
from django.contrib import admin
from django.utils import timezone

from dashboard import services
from dashboard.errors import SchedulingError
from dashboard.utils.time_utils import format_datetime
from .models import Appointment, Case, Client, Consultation, Document, Lawyer


class SoftDeleteAdmin(admin.ModelAdmin):
    """Hide soft-deleted rows; 'delete' only stamps deleted_at."""

    readonly_fields = ("created_at", "updated_at")

    def get_queryset(self, request):
        return super().get_queryset(request).filter(deleted_at__isnull=True)

    def delete_model(self, request, obj):
        obj.deleted_at = timezone.now()
        obj.save(update_fields=["deleted_at", "updated_at"])

    def delete_queryset(self, request, queryset):
        queryset.update(deleted_at=timezone.now(), updated_at=timezone.now())


@admin.register(Client)
class ClientAdmin(SoftDeleteAdmin):
    list_display = ("id", "full_name", "dni", "email", "phone", "status", "created_at")
    list_display_links = ("id", "full_name")
    list_filter = ("status", "created_at")
    search_fields = ("full_name", "dni", "email", "phone")
    list_per_page = 25


@admin.register(Lawyer)
class LawyerAdmin(SoftDeleteAdmin):
    list_display = ("id", "full_name", "email", "specialty", "status")
    list_display_links = ("id", "full_name")
    list_filter = ("status",)
    search_fields = ("full_name", "email", "specialty")


@admin.register(Case)
class CaseAdmin(SoftDeleteAdmin):
    list_display = ("id", "title", "client", "area", "status", "priority", "opened_at")
    list_display_links = ("id", "title")
    list_filter = ("status", "priority", "area")
    search_fields = ("title", "area", "description", "client__full_name")
    list_select_related = ("client",)


@admin.register(Document)
class DocumentAdmin(SoftDeleteAdmin):
    list_display = ("id", "title", "case", "kind", "created_at")
    search_fields = ("title", "case__title")
    list_select_related = ("case",)


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ("id", "full_name", "email", "phone", "area", "urgency", "status", "created_at")
    list_filter = ("status", "urgency", "created_at")
    search_fields = ("full_name", "email", "phone", "message")
    readonly_fields = ("created_at", "updated_at")
    date_hierarchy = "created_at"


class AppointmentAdminForm(forms.ModelForm):
    """
    Runs the same checks as the API (references, status changes, overlap)
    so problems show up on the form instead of as a server error.
    """

    class Meta:
        model = Appointment
        fields = ["client", "case", "lawyer", "start_at", "end_at", "channel", "status", "title", "notes"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["client"].queryset = Client.objects.active()
        self.fields["case"].queryset = Case.objects.active()
        self.fields["lawyer"].queryset = Lawyer.objects.active()

    def scheduling_data(self):
        cleaned = self.cleaned_data
        return {
            "client_id": cleaned["client"].pk if cleaned.get("client") else None,
            "case_id": cleaned["case"].pk if cleaned.get("case") else None,
            "lawyer_id": cleaned["lawyer"].pk if cleaned.get("lawyer") else None,
            "start_at": format_datetime(cleaned.get("start_at")),
            "end_at": format_datetime(cleaned.get("end_at")),
            "channel": cleaned.get("channel"),
            "status": cleaned.get("status"),
            "title": cleaned.get("title"),
            "notes": cleaned.get("notes"),
        }

    def clean(self):
        cleaned = super().clean()
        if self.errors:
            return cleaned

        try:
            services.check_appointment(self.scheduling_data(), appointment_id=self.instance.pk)
        except SchedulingError as e:
            if e.field and e.field.removesuffix("_id") in self.fields:
                self.add_error(e.field.removesuffix("_id"), e.message)
            else:
                raise forms.ValidationError(e.message)
        return cleaned


@admin.register(Appointment)
class AppointmentAdmin(SoftDeleteAdmin):
    form = AppointmentAdminForm

    # table columns
    list_display = ("id", "start_at", "end_at", "client", "lawyer", "case", "channel", "status")
    list_display_links = ("id", "start_at")

    # right sidebar filters
    list_filter = ("status", "channel", "lawyer", "start_at")

    # top search bar
    search_fields = ("client__full_name", "lawyer__full_name", "title")

    # date drilldown nav
    date_hierarchy = "start_at"

    list_select_related = ("client", "lawyer", "case")

    # pagination
    list_per_page = 25

    # how the edit form is grouped
    fieldsets = (
        ("Parties", {"fields": ("client", "case", "lawyer")}),
        ("Booking", {"fields": ("start_at", "end_at", "channel", "status")}),
        ("Notes",   {"fields": ("title", "notes")}),
        ("Meta",    {"fields": ("created_at", "updated_at")}),
    )

    def save_model(self, request, obj, form, change):
        """
        Writes go through the scheduler service so the overlap check and the
        write share one transaction.
        """
        data = form.scheduling_data()
        if change:
            appt = services.update_appointment(obj.pk, data)
        else:
            appt = services.create_appointment(data)
        obj.pk = appt.pk
        obj.created_at = appt.created_at
        obj.updated_at = appt.updated_at

    def delete_model(self, request, obj):
        services.soft_delete_appointment(obj.pk)

    def delete_queryset(self, request, queryset):
        for appt_id in queryset.values_list("id", flat=True):
            services.soft_delete_appointment(appt_id)
