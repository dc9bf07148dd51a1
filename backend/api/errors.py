"""
Error taxonomy shared by the query, translation and streaming paths.

Only `InvalidRequest` and `DependencyUnavailable` ever reach a caller.
`TranslationDegraded` is absorbed by the overlay merge, and
`ClientDisconnected` marks the normal end of a stream.
"""
from __future__ import annotations


class BhuvanError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.code

    def to_payload(self) -> dict[str, str]:
        return {"error": self.code, "detail": self.message}


class InvalidRequest(BhuvanError):
    code = "invalid_request"
    status_code = 400


class DependencyUnavailable(BhuvanError):
    code = "dependency_unavailable"
    status_code = 503


class TranslationDegraded(BhuvanError):
    """
    Translation provider unreachable, non-success, malformed, or length-mismatched.
    """

    code = "translation_degraded"
    status_code = 502


class ClientDisconnected(BhuvanError):
    code = "client_disconnected"
    status_code = 499
