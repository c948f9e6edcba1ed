from __future__ import annotations


class JenkinsRequestError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JenkinsActionError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def to_jenkins_action_error(error: BaseException) -> JenkinsActionError:
    if isinstance(error, JenkinsActionError):
        return error
    if isinstance(error, JenkinsRequestError):
        return JenkinsActionError(str(error), error.status_code)
    return JenkinsActionError(format_error(error))


def format_error(error: object) -> str:
    if isinstance(error, Exception):
        message = str(error).strip()
        return message or error.__class__.__name__
    return "Unexpected error."


def format_action_error(error: object) -> str:
    if isinstance(error, JenkinsActionError):
        return str(error).strip() or "Unexpected error."
    return format_error(error)
