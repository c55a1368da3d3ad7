class TaskTrackerError(Exception):
    """Base error; `status_code` is what the API layer answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(TaskTrackerError):
    status_code = 404


class InvalidTransition(TaskTrackerError):
    status_code = 400


class UnknownStatus(TaskTrackerError):
    status_code = 400


class InvalidQuery(TaskTrackerError):
    status_code = 400


class StorageFailure(TaskTrackerError):
    status_code = 500
