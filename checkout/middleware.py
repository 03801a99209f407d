import logging

from django.shortcuts import render

from checkout.client import SquareAPIError, SquareConflictError, SquareNotFoundError

logger = logging.getLogger(__name__)


class SquareAPIErrorMiddleware:
    """Render a generic error page for any Square failure raised by a view."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, SquareAPIError):
            return None

        if isinstance(exception, SquareNotFoundError):
            status = 404
            title = "We couldn't find that order"
        elif isinstance(exception, SquareConflictError):
            status = 409
            title = "This order was changed somewhere else"
        else:
            status = 502
            title = "Something went wrong talking to our payment provider"

        logger.warning("%s %s failed: %s", request.method, request.path, exception)

        context = {
            "title": title,
            "message": str(exception),
            "errors": exception.errors,
        }
        return render(request, "error.html", context, status=status)
