# CampusGate - academic domain errors (invalid input is rejected, never clamped)


class AcademicError(ValueError):
    code = "ACADEMIC_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ScoreOutOfRange(AcademicError):
    code = "SCORE_OUT_OF_RANGE"


class AttendanceOutOfRange(AcademicError):
    code = "ATTENDANCE_OUT_OF_RANGE"


class MaxSubmissionsExceeded(AcademicError):
    code = "MAX_SUBMISSIONS_EXCEEDED"


class LateSubmissionRejected(AcademicError):
    code = "LATE_SUBMISSION_REJECTED"
