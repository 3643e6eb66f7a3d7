"""Error taxonomy for the checkout workflow.

Services raise these; app.main translates them into
``{"success": false, "message": ...}`` responses with the status code
carried on the class.  The message is what the caller sees, so keep
internal detail (gateway payloads, SQL errors) in the log line instead.
"""

from __future__ import annotations


class CheckoutError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(CheckoutError):
    status_code = 400


class NotFound(CheckoutError):
    status_code = 404


class UpstreamLookupError(CheckoutError):
    """The document store failed while looking something up."""


class GatewayError(CheckoutError):
    """The payment gateway call failed (transport or API error)."""
