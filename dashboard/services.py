import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from dashboard.errors import (
    AppointmentValidationError,
    ConflictError,
    NotFoundError,
)
from dashboard.utils.query_utils import parse_pagination, pick_sort, to_int_or_none, trim_or_none
from dashboard.utils.time_utils import format_datetime, parse_datetime
from website.constants import (
    APPOINTMENT_STATUSES,
    BOOKING_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_DONE,
    STATUS_NO_SHOW,
    can_transition,
    is_booking_impacting,
)
from website.forms import AppointmentForm
from website.models import Appointment, Case, Client, Consultation, Document, Lawyer

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = ("start_at", "created_at", "updated_at", "status")

OVERLAP_MESSAGE = "Appointment overlaps with existing booking"


# --- Collaborator stores (read-only, active rows only) ---

def client_exists(client_id: int) -> bool:
    return Client.objects.active().filter(pk=client_id).exists()


def get_case(case_id: int) -> Optional[Case]:
    return Case.objects.active().filter(pk=case_id).first()


def lawyer_exists(lawyer_id: int, lock: bool = False) -> bool:
    """
    With lock=True the lawyer row is selected FOR UPDATE, which serializes
    concurrent bookings for the same lawyer until the transaction ends.
    Must be called inside transaction.atomic() in that case.
    """
    qs = Lawyer.objects.active().filter(pk=lawyer_id)
    if lock:
        qs = qs.select_for_update()
    return qs.first() is not None


# --- Overlap check ---

def has_conflict(lawyer_id, start_at: datetime, end_at: datetime, exclude_id=None) -> bool:
    """
    True if another active, booking-impacting appointment of the same lawyer
    intersects [start_at, end_at). Intervals are half-open, so back-to-back
    slots (one ends exactly when the next starts) do not conflict.
    Unassigned appointments (lawyer_id None) never conflict.
    """
    if lawyer_id is None:
        return False

    qs = Appointment.objects.active().filter(
        lawyer_id=lawyer_id,
        status__in=BOOKING_STATUSES,
        start_at__lt=end_at,
        end_at__gt=start_at,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)

    return qs.exists()


# --- Validation ---

def _clean(data) -> Dict:
    form = AppointmentForm(data)
    if not form.is_valid():
        field, message = form.first_error()
        raise AppointmentValidationError(message, field=field)
    return form.cleaned_data


def _check_references(cleaned: Dict) -> None:
    """Client/case/lawyer must exist and be consistent. Locks the lawyer row."""
    client_id = cleaned["client_id"]
    if not client_exists(client_id):
        raise NotFoundError("client not found", field="client_id")

    case_id = cleaned.get("case_id")
    if case_id is not None:
        case = get_case(case_id)
        if case is None:
            raise NotFoundError("case not found", field="case_id")
        if case.client_id != client_id:
            raise AppointmentValidationError("case does not belong to client", field="case_id")

    lawyer_id = cleaned.get("lawyer_id")
    if lawyer_id is not None and not lawyer_exists(lawyer_id, lock=True):
        raise NotFoundError("lawyer not found", field="lawyer_id")


def _prepare(data, current: Optional[Appointment] = None) -> Dict:
    """
    Run every check for a create (current=None) or full update of `current`.
    Raises SchedulingError subclasses; never writes. Callers run it inside
    the same transaction as the write.
    """
    cleaned = _clean(data)

    if current is not None and not can_transition(current.status, cleaned["status"]):
        raise AppointmentValidationError(
            f"cannot change status from {current.status} to {cleaned['status']}",
            field="status",
        )

    _check_references(cleaned)

    if is_booking_impacting(cleaned["status"]):
        exclude_id = current.pk if current is not None else None
        if has_conflict(cleaned.get("lawyer_id"), cleaned["start_at"], cleaned["end_at"], exclude_id):
            logger.warning(
                "Booking rejected: lawyer %s is busy between %s and %s",
                cleaned.get("lawyer_id"),
                format_datetime(cleaned["start_at"]),
                format_datetime(cleaned["end_at"]),
            )
            raise ConflictError(OVERLAP_MESSAGE)

    return cleaned


def check_appointment(data, appointment_id=None) -> Dict:
    """
    Dry run of create/update: returns the cleaned data or raises.
    Used by the admin form to show errors next to the fields.
    """
    with transaction.atomic():
        current = _get_active(appointment_id) if appointment_id is not None else None
        return _prepare(data, current)


def _apply(appt: Appointment, cleaned: Dict) -> None:
    appt.client_id = cleaned["client_id"]
    appt.case_id = cleaned.get("case_id")
    appt.lawyer_id = cleaned.get("lawyer_id")
    appt.start_at = cleaned["start_at"]
    appt.end_at = cleaned["end_at"]
    appt.channel = cleaned["channel"]
    appt.status = cleaned["status"]
    appt.title = cleaned.get("title") or ""
    appt.notes = cleaned.get("notes") or ""


def _get_active(appointment_id, lock: bool = False) -> Appointment:
    qs = Appointment.objects.active()
    if lock:
        qs = qs.select_for_update()
    appt = qs.filter(pk=appointment_id).first()
    if appt is None:
        raise NotFoundError("appointment not found")
    return appt


# --- Operations ---

def create_appointment(data) -> Appointment:
    with transaction.atomic():
        cleaned = _prepare(data)
        appt = Appointment()
        _apply(appt, cleaned)
        appt.save()

    logger.info("Appointment %s created (%s) for client %s", appt.pk, appt.status, appt.client_id)
    return appt


def get_appointment(appointment_id) -> Appointment:
    qs = Appointment.objects.active().select_related("client", "case", "lawyer")
    appt = qs.filter(pk=appointment_id).first()
    if appt is None:
        raise NotFoundError("appointment not found")
    return appt


def update_appointment(appointment_id, data) -> Appointment:
    with transaction.atomic():
        appt = _get_active(appointment_id, lock=True)
        cleaned = _prepare(data, current=appt)
        _apply(appt, cleaned)
        appt.save()

    logger.info("Appointment %s updated (%s)", appt.pk, appt.status)
    return appt


def _set_status(appointment_id, new_status: str, recheck_overlap: bool = False) -> Appointment:
    with transaction.atomic():
        appt = _get_active(appointment_id, lock=True)

        if not can_transition(appt.status, new_status):
            raise AppointmentValidationError(
                f"cannot change status from {appt.status} to {new_status}",
                field="status",
            )

        if recheck_overlap and appt.lawyer_id is not None:
            # the slot may have been taken since this one was booked
            lawyer_exists(appt.lawyer_id, lock=True)
            if has_conflict(appt.lawyer_id, appt.start_at, appt.end_at, exclude_id=appt.pk):
                logger.warning("Confirm rejected for appointment %s: slot is taken", appt.pk)
                raise ConflictError(OVERLAP_MESSAGE)

        if appt.status != new_status:
            previous = appt.status
            appt.status = new_status
            appt.save(update_fields=["status", "updated_at"])
            logger.info("Appointment %s: %s -> %s", appt.pk, previous, new_status)

    return appt


def confirm_appointment(appointment_id) -> Appointment:
    return _set_status(appointment_id, STATUS_CONFIRMED, recheck_overlap=True)


def cancel_appointment(appointment_id) -> Appointment:
    return _set_status(appointment_id, STATUS_CANCELLED)


def mark_done(appointment_id) -> Appointment:
    return _set_status(appointment_id, STATUS_DONE)


def mark_no_show(appointment_id) -> Appointment:
    return _set_status(appointment_id, STATUS_NO_SHOW)


def soft_delete_appointment(appointment_id) -> None:
    with transaction.atomic():
        appt = _get_active(appointment_id, lock=True)
        appt.deleted_at = timezone.now()
        appt.save(update_fields=["deleted_at", "updated_at"])

    logger.info("Appointment %s deleted", appt.pk)


# --- Listing / serialization ---

def _name_if_active(obj, attr: str):
    if obj is None or obj.deleted_at is not None:
        return None
    return getattr(obj, attr)


def serialize_appointment(appt: Appointment, with_names: bool = False) -> Dict:
    row = {
        "id": appt.pk,
        "client_id": appt.client_id,
        "case_id": appt.case_id,
        "lawyer_id": appt.lawyer_id,
        "start_at": format_datetime(appt.start_at),
        "end_at": format_datetime(appt.end_at),
        "channel": appt.channel,
        "status": appt.status,
        "title": appt.title or None,
        "notes": appt.notes or None,
        "created_at": format_datetime(appt.created_at),
        "updated_at": format_datetime(appt.updated_at),
    }
    if with_names:
        row["client_name"] = _name_if_active(appt.client, "full_name")
        row["case_title"] = _name_if_active(appt.case, "title")
        row["lawyer_name"] = _name_if_active(appt.lawyer, "full_name")
    return row


def list_appointments(params) -> Dict:
    """
    Filtered, sorted, paginated listing of active appointments.
    params: QueryDict or dict with from, to, status, client_id, case_id,
    lawyer_id, sort, dir, page, limit (all optional).
    """
    page, limit, offset = parse_pagination(params)
    order = pick_sort(params, SORTABLE_COLUMNS, "start_at")

    qs = Appointment.objects.active()

    for key, lookup in (("from", "start_at__gte"), ("to", "start_at__lt")):
        raw = trim_or_none(params.get(key))
        if raw is None:
            continue
        value = parse_datetime(raw)
        if value is None:
            raise AppointmentValidationError(f"{key} must be 'YYYY-MM-DD HH:MM:SS'", field=key)
        qs = qs.filter(**{lookup: value})

    status = trim_or_none(params.get("status"))
    if status:
        if status not in dict(APPOINTMENT_STATUSES):
            raise AppointmentValidationError("Invalid status", field="status")
        qs = qs.filter(status=status)

    for key in ("client_id", "case_id", "lawyer_id"):
        value = to_int_or_none(params.get(key))
        if value is not None:
            qs = qs.filter(**{key: value})

    total = qs.count()
    rows = qs.select_related("client", "case", "lawyer").order_by(order, "id")[offset:offset + limit]

    return {
        "page": page,
        "limit": limit,
        "total": total,
        "items": [serialize_appointment(a, with_names=True) for a in rows],
    }


# --- Dashboard ---

def get_latest_consultations(limit: int = 5) -> List[Consultation]:
    """
    Latest consultations widget.
    De-dupe by (email, name) so the same person doesn't appear repeatedly.
    """
    latest: List[Consultation] = []
    seen: set[Tuple[str, str]] = set()

    for c in Consultation.objects.order_by("-created_at", "-id"):
        key = (
            (c.email or "").strip().lower(),
            (c.full_name or "").strip().lower(),
        )
        if key in seen:
            continue
        seen.add(key)
        latest.append(c)
        if len(latest) >= limit:
            break

    return latest


def serialize_consultation(c: Consultation) -> Dict:
    return {
        "id": c.pk,
        "full_name": c.full_name,
        "email": c.email,
        "phone": c.phone or None,
        "area": c.area or None,
        "urgency": c.urgency,
        "status": c.status,
        "created_at": format_datetime(c.created_at),
        "updated_at": format_datetime(c.updated_at),
    }


def get_dashboard_summary(day: date) -> Dict:
    """KPIs, the agenda for `day` and booked appointments for the 7 days after it."""
    day_start = datetime.combine(day, datetime.min.time())
    day_end = day_start + timedelta(days=1)
    week_end = day_start + timedelta(days=8)

    active = Appointment.objects.active().select_related("client", "case", "lawyer")

    agenda = active.filter(start_at__gte=day_start, start_at__lt=day_end).order_by("start_at", "id")
    upcoming = (
        active
        .filter(start_at__gte=day_end, start_at__lt=week_end, status__in=BOOKING_STATUSES)
        .order_by("start_at", "id")
    )

    return {
        "ok": True,
        "date": day.isoformat(),
        "kpis": {
            "clients": Client.objects.active().count(),
            "cases": Case.objects.active().count(),
            "appointments": Appointment.objects.active().count(),
            "documents": Document.objects.active().count(),
            "consultations_new": Consultation.objects.filter(status="new").count(),
        },
        "agenda": [serialize_appointment(a, with_names=True) for a in agenda],
        "upcoming": [serialize_appointment(a, with_names=True) for a in upcoming],
        "latest_consultations": [serialize_consultation(c) for c in get_latest_consultations()],
    }
