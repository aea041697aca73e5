"""
Error taxonomy shared by the scoring pipeline, claims management and the API.

Each error carries a short ``code`` and the HTTP status the API answers with.
"""

from typing import List, Optional


class TrackerError(Exception):
    code = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    code = "invalid-argument"
    status_code = 400


class Unauthenticated(TrackerError):
    code = "unauthenticated"
    status_code = 401


class PermissionDenied(TrackerError):
    code = "permission-denied"
    status_code = 403


class NotFound(TrackerError):
    code = "not-found"
    status_code = 404


class PartialWriteError(TrackerError):
    """The primary write committed but a follow-up stage (totals, audit) failed.

    Nothing is rolled back: ``stages`` names what failed and ``causes`` holds
    the original exceptions in the same order.
    """

    code = "partial-write"
    status_code = 500

    def __init__(self, target: str, stages: List[str], causes: Optional[List[BaseException]] = None):
        self.target = target
        self.stages = list(stages)
        self.causes = list(causes or [])
        super().__init__(
            f"{target} was saved but {', '.join(self.stages)} failed; retry to refresh derived data"
        )
