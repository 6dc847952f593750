"""
Error kinds raised by the portal services.

Route handlers catch ``PortalError`` and render it with ``to_response``;
anything else is treated as an unexpected 500.
"""

from flask import jsonify


class PortalError(Exception):
    status_code = 500
    kind = "error"

    def __init__(self, message, details=None, **context):
        super().__init__(message)
        self.message = message
        self.details = details
        self.context = context

    def to_dict(self):
        body = {"status": "error", "kind": self.kind, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        body.update(self.context)
        return body

    def to_response(self):
        return jsonify(self.to_dict()), self.status_code


class ValidationError(PortalError):
    """Bad input: non-positive amount, missing field, immutable field."""

    status_code = 400
    kind = "validation_error"


class NotFoundError(PortalError):
    status_code = 404
    kind = "not_found"


class ConflictError(PortalError):
    """Delete blocked by a reference, duplicate create, disallowed transition."""

    status_code = 409
    kind = "conflict"


class UploadError(PortalError):
    status_code = 502
    kind = "upload_error"


class PartialFailureError(PortalError):
    """
    One write of a logically paired operation succeeded and the other failed.

    The state is left as-is; ``context`` carries the ids an operator needs
    for manual reconciliation.
    """

    status_code = 500
    kind = "partial_failure"

    def to_dict(self):
        body = super().to_dict()
        body["partial_failure"] = True
        return body


class TransientError(PortalError):
    """Network failure or timeout on an external call; safe to retry."""

    status_code = 503
    kind = "transient_error"

    def to_dict(self):
        body = super().to_dict()
        body["retryable"] = True
        return body
