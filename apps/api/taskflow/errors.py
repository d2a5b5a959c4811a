from __future__ import annotations


class TaskflowError(RuntimeError):
  status_code = 500

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class NotFoundError(TaskflowError):
  status_code = 404


class ForbiddenError(TaskflowError):
  status_code = 403


class ValidationError(TaskflowError):
  status_code = 400


class ServerFault(TaskflowError):
  status_code = 500
