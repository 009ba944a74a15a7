from django.db import models
from django.db.models import F, Q

from .constants import (
    APPOINTMENT_CHANNELS,
    APPOINTMENT_STATUSES,
    CHANNEL_IN_PERSON,
    CONSULTATION_STATUSES,
    STATUS_SCHEDULED,
    URGENCY_CHOICES,
)


class SoftDeleteQuerySet(models.QuerySet):
    def active(self):
        return self.filter(deleted_at__isnull=True)


# Create your models here.
class Client(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
    ]

    full_name = models.CharField(max_length=120)
    dni = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=40, blank=True)
    address = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["full_name"], name="client_full_name_idx"),
        ]
        ordering = ["full_name"]

    def __str__(self):
        return self.full_name


class Lawyer(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
    ]

    full_name = models.CharField(max_length=120)
    email = models.EmailField(blank=True)
    specialty = models.CharField(max_length=120, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["full_name"]

    def __str__(self):
        return self.full_name


class Case(models.Model):
    STATUS_OPEN = "open"
    STATUS_PAUSED = "paused"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_PAUSED, "Paused"),
        (STATUS_CLOSED, "Closed"),
    ]

    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
    ]

    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="cases")
    title = models.CharField(max_length=160)
    area = models.CharField(max_length=80, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_OPEN)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    description = models.TextField(blank=True)
    opened_at = models.DateField(null=True, blank=True)
    closed_at = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title


class Document(models.Model):
    case = models.ForeignKey(Case, on_delete=models.PROTECT, related_name="documents")
    title = models.CharField(max_length=160)
    kind = models.CharField(max_length=40, blank=True)
    file_url = models.URLField(max_length=500, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title


class Consultation(models.Model):
    """Inbound request from the public contact form."""

    full_name = models.CharField(max_length=120)
    email = models.EmailField()
    phone = models.CharField(max_length=40, blank=True)
    area = models.CharField(max_length=80, blank=True)
    message = models.TextField()
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default="normal")
    status = models.CharField(max_length=12, choices=CONSULTATION_STATUSES, default="new")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.full_name} ({self.created_at:%Y-%m-%d})"


class Appointment(models.Model):
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="appointments")
    case = models.ForeignKey(Case, on_delete=models.PROTECT, null=True, blank=True, related_name="appointments")
    lawyer = models.ForeignKey(Lawyer, on_delete=models.PROTECT, null=True, blank=True, related_name="appointments")

    # naive local wall-clock times, serialized as 'YYYY-MM-DD HH:MM:SS'
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()

    channel = models.CharField(max_length=10, choices=APPOINTMENT_CHANNELS, default=CHANNEL_IN_PERSON)
    status = models.CharField(max_length=10, choices=APPOINTMENT_STATUSES, default=STATUS_SCHEDULED)
    title = models.CharField(max_length=120, blank=True)
    notes = models.TextField(blank=True) # for staff notes

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["start_at"], name="appt_start_idx"),
            models.Index(fields=["lawyer", "start_at"], name="appt_lawyer_start_idx"),
            models.Index(fields=["client"], name="appt_client_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_at__gt=F("start_at")),
                name="appointment_end_after_start",
            ),
        ]
        ordering = ["-start_at"]

    def __str__(self):
        return f"{self.client} - {self.start_at:%Y-%m-%d %H:%M}"
