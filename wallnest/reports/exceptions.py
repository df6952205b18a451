from wallnest.exceptions import ConflictException, ForbiddenException, NotFoundException, ValidationException
from wallnest.reports.constants import (
    ALREADY_REPORTED,
    INVALID_STATUS_TRANSITION,
    REPORT_ALREADY_CLOSED,
    REPORT_NOT_FOUND,
    TARGET_NOT_FOUND,
)


class ReportNotFoundException(NotFoundException):
    def __init__(self):
        super().__init__(detail=REPORT_NOT_FOUND)


class ReportTargetNotFoundException(NotFoundException):
    def __init__(self):
        super().__init__(detail=TARGET_NOT_FOUND)


class DuplicateReportException(ConflictException):
    def __init__(self):
        super().__init__(detail=ALREADY_REPORTED)


class ReportClosedException(ForbiddenException):
    def __init__(self):
        super().__init__(detail=REPORT_ALREADY_CLOSED)


class InvalidStatusTransitionException(ValidationException):
    def __init__(self, current: str, target: str):
        super().__init__(detail=INVALID_STATUS_TRANSITION.format(current=current, target=target))
