"""
Error types raised by the MedTrack engine
The API layer maps them onto HTTP status codes
"""


class MedTrackError(Exception):
    status_code = 500


class ValidationError(MedTrackError):
    """Malformed schedule or request payload; rejected, never coerced"""
    status_code = 400


class NotFoundError(MedTrackError):
    """Update or delete referencing an unknown schedule or occurrence"""
    status_code = 404

    def __init__(self, kind, identifier):
        super().__init__(f'{kind} not found: {identifier}')
        self.kind = kind
        self.identifier = identifier


class RemoteSyncError(MedTrackError):
    """Any failure talking to the remote store. Never fatal to local work

    retryable is False when the remote store answered and refused the
    request, so sending it again cannot succeed.
    """
    status_code = 502

    def __init__(self, message, retryable=True):
        super().__init__(message)
        self.retryable = retryable
