"""
Error types shared by routes and services.

Every error carries the HTTP status it should surface as; the app-level
handler turns them into ``{"error": message}`` JSON bodies.
"""


class TeacherDashError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(TeacherDashError):
    """Missing or malformed request field."""
    status_code = 400


class NotFoundError(TeacherDashError):
    status_code = 404


class UpstreamError(TeacherDashError):
    """Database or storage call failed."""
    status_code = 500


class GenerationError(TeacherDashError):
    """AI call failed, returned unparseable output, or is not configured."""
    status_code = 500
