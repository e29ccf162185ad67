"""
Correlation ids for log lines.

HTTP requests get the caller's ``X-Request-ID`` (or a fresh one); scheduler
commands open their own id per run so every line of a batch can be grepped
together.
"""

import uuid
import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

NO_ID = 'no-id'

_thread_locals = threading.local()


def get_current_request_id():
    return getattr(_thread_locals, 'request_id', NO_ID)


@contextmanager
def correlation_id(value=None):
    previous = get_current_request_id()
    _thread_locals.request_id = value or uuid.uuid4().hex
    try:
        yield _thread_locals.request_id
    finally:
        _thread_locals.request_id = previous


class RequestIDFilter(logging.Filter):
    def filter(self, record):
        record.request_id = get_current_request_id()
        return True


class RequestIDMiddleware:
    header = 'X-Request-ID'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        with correlation_id(request.headers.get(self.header)) as request_id:
            request.request_id = request_id
            response = self.get_response(request)
        response[self.header] = request_id
        return response
