import logging
import time

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """One short line per request: 'GET /api/appointments/ -> 200 (12ms)'."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start = time.monotonic()
        response = self.get_response(request)
        ms = round((time.monotonic() - start) * 1000)
        logger.info("%s %s -> %s (%sms)", request.method, request.get_full_path(), response.status_code, ms)
        return response
