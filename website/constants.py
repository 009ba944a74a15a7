DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Appointment statuses
STATUS_SCHEDULED = "scheduled"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUS_DONE = "done"
STATUS_NO_SHOW = "no_show"

APPOINTMENT_STATUSES = [
    (STATUS_SCHEDULED, "Scheduled"),
    (STATUS_CONFIRMED, "Confirmed"),
    (STATUS_CANCELLED, "Cancelled"),
    (STATUS_DONE, "Done"),
    (STATUS_NO_SHOW, "No show"),
]

# statuses whose time slot blocks other bookings for the same lawyer
BOOKING_STATUSES = frozenset({STATUS_SCHEDULED, STATUS_CONFIRMED})

# statuses that close an appointment; cancel / mark-done / no-show set them
# from any active row
CLOSING_STATUSES = frozenset({STATUS_CANCELLED, STATUS_DONE, STATUS_NO_SHOW})

# allowed status changes. A closed appointment can be corrected to another
# closing status but never goes back to scheduled or confirmed.
STATUS_TRANSITIONS = {
    STATUS_SCHEDULED: {STATUS_CONFIRMED} | CLOSING_STATUSES,
    STATUS_CONFIRMED: set(CLOSING_STATUSES),
    STATUS_CANCELLED: CLOSING_STATUSES - {STATUS_CANCELLED},
    STATUS_DONE: CLOSING_STATUSES - {STATUS_DONE},
    STATUS_NO_SHOW: CLOSING_STATUSES - {STATUS_NO_SHOW},
}

CHANNEL_IN_PERSON = "in_person"
CHANNEL_PHONE = "phone"
CHANNEL_VIDEO = "video"

APPOINTMENT_CHANNELS = [
    (CHANNEL_IN_PERSON, "In person"),
    (CHANNEL_PHONE, "Phone"),
    (CHANNEL_VIDEO, "Video"),
]

# Consultations (public contact form)
URGENCY_CHOICES = [
    ("low", "Low"),
    ("normal", "Normal"),
    ("high", "High"),
]

CONSULTATION_STATUSES = [
    ("new", "New"),
    ("in_progress", "In progress"),
    ("closed", "Closed"),
]

PRACTICE_AREAS = [
    "Civil",
    "Family",
    "Labor",
    "Criminal",
    "Commercial",
    "Real Estate",
    "Inheritance",
]


def is_booking_impacting(status: str) -> bool:
    return status in BOOKING_STATUSES


def can_transition(current: str, new: str) -> bool:
    """
    Same status is always allowed (no-op). Otherwise the move has to be
    listed in STATUS_TRANSITIONS.
    """
    if current == new:
        return True
    return new in STATUS_TRANSITIONS.get(current, set())
