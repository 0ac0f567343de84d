"""Exception hierarchy shared by the parsers, analyzers and routes.

Every error carries the HTTP status the API answers with, so route handlers
can simply raise and let the registered error handler build the response.
"""


class AnalyticsError(Exception):
    """Base class for all application errors"""

    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {
            'status': 'error',
            'message': self.message
        }


class ParseError(AnalyticsError):
    """Raw sheet data is not a well-formed two-dimensional array"""
    status_code = 400


class UnreadableFileError(ParseError):
    """The bytes are not a spreadsheet container we can open"""
    status_code = 400


class UnsupportedFileTypeError(AnalyticsError):
    status_code = 400


class InsufficientDataError(AnalyticsError):
    """Too few numeric samples for a statistical routine"""
    status_code = 422


class ValidationError(AnalyticsError):
    status_code = 400


class AuthenticationError(AnalyticsError):
    status_code = 401


class OwnershipError(AnalyticsError):
    """Caller is neither the owner of the record nor an admin"""
    status_code = 403


class NotFoundError(AnalyticsError):
    status_code = 404
