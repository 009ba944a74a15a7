import json
import logging
from functools import wraps

from django.contrib.auth import login, logout
from django.contrib.auth.forms import AuthenticationForm
from django.http import JsonResponse, QueryDict
from django.utils import timezone
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from dashboard import services
from dashboard.errors import AppointmentValidationError, NotFoundError, SchedulingError
from dashboard.utils.query_utils import to_int_or_none
from dashboard.utils.time_utils import parse_date
from website.models import Consultation

logger = logging.getLogger(__name__)

REMEMBER_ME_SECONDS = 1209600  # 2 weeks


def staff_api(view):
    """
    Staff-only JSON endpoint: 401/403 instead of a login redirect, and
    SchedulingError rendered as {"error": {code, message, details}}.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"ok": False, "error": "Unauthorized"}, status=401)
        if not request.user.is_staff:
            return JsonResponse({"ok": False, "error": "Forbidden"}, status=403)
        try:
            return view(request, *args, **kwargs)
        except SchedulingError as e:
            return JsonResponse(e.as_dict(), status=e.status)
    return wrapper


def _payload(request):
    """Request body as a dict-like: JSON or form-encoded."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            raise AppointmentValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise AppointmentValidationError("JSON body must be an object")
        return data
    if request.method == "POST":
        return request.POST
    return QueryDict(request.body)


def _parse_id(raw):
    pk = to_int_or_none(raw)
    if pk is None:
        raise AppointmentValidationError("Invalid id")
    return pk


# --- Appointments ---

@require_http_methods(["GET", "POST"])
@staff_api
def appointments(request):
    if request.method == "POST":
        appt = services.create_appointment(_payload(request))
        return JsonResponse({"id": appt.pk}, status=201)

    return JsonResponse(services.list_appointments(request.GET))


@require_http_methods(["GET", "PUT", "DELETE"])
@staff_api
def appointment_detail(request, pk):
    pk = _parse_id(pk)

    if request.method == "PUT":
        services.update_appointment(pk, _payload(request))
        return JsonResponse({"ok": True})

    if request.method == "DELETE":
        services.soft_delete_appointment(pk)
        return JsonResponse({"ok": True})

    return JsonResponse(services.serialize_appointment(services.get_appointment(pk)))


# Status buttons (Confirm / Cancel / Done / No-show)
APPOINTMENT_ACTIONS = {
    "confirm": services.confirm_appointment,
    "cancel": services.cancel_appointment,
    "mark-done": services.mark_done,
    "no-show": services.mark_no_show,
}


@require_POST
@staff_api
def appointment_action(request, pk, action):
    pk = _parse_id(pk)
    handler = APPOINTMENT_ACTIONS.get(action)
    if handler is None:
        raise NotFoundError(f"unknown action '{action}'")

    handler(pk)
    return JsonResponse({"ok": True})


# --- Dashboard ---

@require_GET
@staff_api
def index(request):
    day = parse_date(request.GET.get("date")) or timezone.now().date()
    return JsonResponse(services.get_dashboard_summary(day))


@require_GET
@staff_api
def consultations(request):
    rows = Consultation.objects.order_by("-created_at", "-id")[:200]
    return JsonResponse({
        "ok": True,
        "consultations": [services.serialize_consultation(c) for c in rows],
    })


# --- Session ---

@require_POST
def login_view(request):
    payload = _login_payload(request)
    form = AuthenticationForm(request, data=payload)
    if not form.is_valid():
        return JsonResponse({"ok": False, "error": "Invalid credentials"}, status=401)

    user = form.get_user()
    if not user.is_staff:
        return JsonResponse({"ok": False, "error": "Forbidden"}, status=403)

    login(request, user)
    remember = payload.get("remember") in ("on", True, "true", "1")
    # 2 weeks if checked; session-only if not
    request.session.set_expiry(REMEMBER_ME_SECONDS if remember else 0)

    logger.info("Staff login: %s", user.get_username())
    return JsonResponse({"ok": True, "user": _user_dict(user)})


def _login_payload(request):
    try:
        return _payload(request)
    except AppointmentValidationError:
        return {}


@require_POST
@staff_api
def logout_view(request):
    logout(request)
    return JsonResponse({"ok": True})


@require_GET
@ensure_csrf_cookie
@staff_api
def me(request):
    return JsonResponse({"ok": True, "user": _user_dict(request.user)})


def _user_dict(user):
    return {
        "id": user.pk,
        "username": user.get_username(),
        "email": user.email,
        "full_name": user.get_full_name(),
        "is_superuser": user.is_superuser,
    }
