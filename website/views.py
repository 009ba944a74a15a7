import json
import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import send_mail
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .forms import ConsultationForm

logger = logging.getLogger(__name__)


@require_GET
def health(request):
    return JsonResponse({
        "status": "ok",
        "env": "development" if settings.DEBUG else "production",
        "time": timezone.now().isoformat(),
    })


def _error(status, code, message, field=None):
    error = {"code": code, "message": message}
    if field:
        error["details"] = {"field": field}
    return JsonResponse({"error": error}, status=status)


# Public contact form on the landing page; no session, so no CSRF token either
@csrf_exempt
@require_POST
def consultation_create(request):
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return _error(400, "VALIDATION_ERROR", "Invalid JSON body")
        if not isinstance(data, dict):
            return _error(400, "VALIDATION_ERROR", "JSON body must be an object")
    else:
        data = request.POST

    form = ConsultationForm(data)
    if not form.is_valid():
        field, message = form.first_error()
        return _error(400, "VALIDATION_ERROR", message, field)

    consultation = form.save()
    logger.info("Consultation %s received (%s)", consultation.pk, consultation.urgency)

    notify_new_consultation(consultation)

    return JsonResponse({"ok": True, "id": consultation.pk}, status=201)


def notify_new_consultation(consultation):
    """Email the firm about a new consultation. The request is already stored."""
    if not settings.CONSULTATION_NOTIFY_EMAIL:
        return

    try:
        send_mail(
            f"New consultation: {consultation.full_name}", # subject
            (
                f"Name: {consultation.full_name}\n"
                f"Email: {consultation.email}\n"
                f"Phone: {consultation.phone or '-'}\n"
                f"Area: {consultation.area or '-'}\n"
                f"Urgency: {consultation.urgency}\n\n"
                f"{consultation.message}"
            ), # message
            settings.DEFAULT_FROM_EMAIL, # from email
            [settings.CONSULTATION_NOTIFY_EMAIL], # to email
        )
    except (SMTPException, OSError):
        logger.exception("Could not send notification for consultation %s", consultation.pk)
