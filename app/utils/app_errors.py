"""Application error taxonomy.

Every failure raised by the orchestration core is an `AppError`. The subclasses
below pin the error code and HTTP status for each category so call sites only
supply the message:

- ValidationError: bad or missing input, raised before any side effect (400)
- NotFoundError: the addressed transmission/relay does not exist (404)
- ConflictError: an active transmission/relay already exists (409)
- PersistenceError: store read/write failure (500)
- RemoteExecutionError: control-channel connect/exec failure (502)
- MediaServerError: control API returned non-success or was unreachable (502)
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"
    E_BAD_TOKEN = "E_BAD_TOKEN"

    E_TRANSMISSION_NOT_FOUND = "E_TRANSMISSION_NOT_FOUND"
    E_TRANSMISSION_EXISTS = "E_TRANSMISSION_EXISTS"
    E_RELAY_NOT_FOUND = "E_RELAY_NOT_FOUND"
    E_RELAY_EXISTS = "E_RELAY_EXISTS"
    E_PLATFORM_NOT_FOUND = "E_PLATFORM_NOT_FOUND"

    E_PERSISTENCE = "E_PERSISTENCE"
    E_REMOTE_EXECUTION = "E_REMOTE_EXECUTION"
    E_MEDIA_SERVER = "E_MEDIA_SERVER"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Base error carrying an error code, message, HTTP status and error reference id."""

    default_errcode: AppErrorCode = AppErrorCode.E_INTERNAL_ERROR
    default_status_code: HttpStatusCode = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        errcode: AppErrorCode | str | None = None,
        errmesg: str = "",
        status_code: HttpStatusCode | int | None = None,
    ):
        self.errcode = str(errcode or self.default_errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code or self.default_status_code)
        self.erresid = uuid4().hex[:10]

        stack = inspect.stack()
        caller_frame = stack[1]
        # Skip the subclass __init__ frame when raised through a shortcut class
        if caller_frame.function == "__init__" and len(stack) > 2:
            caller_frame = stack[2]
        module = inspect.getmodule(caller_frame.frame)
        module_name = module.__name__ if module else caller_frame.filename
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

        super().__init__(f"{self.errcode}: {errmesg}")


class ValidationError(AppError):
    default_errcode = AppErrorCode.E_INVALID_REQUEST
    default_status_code = HttpStatusCode.BAD_REQUEST

    def __init__(self, errmesg: str, errcode: AppErrorCode | str | None = None):
        super().__init__(errcode=errcode, errmesg=errmesg)


class NotFoundError(AppError):
    default_errcode = AppErrorCode.E_TRANSMISSION_NOT_FOUND
    default_status_code = HttpStatusCode.NOT_FOUND

    def __init__(self, errmesg: str, errcode: AppErrorCode | str | None = None):
        super().__init__(errcode=errcode, errmesg=errmesg)


class ConflictError(AppError):
    default_errcode = AppErrorCode.E_TRANSMISSION_EXISTS
    default_status_code = HttpStatusCode.CONFLICT

    def __init__(self, errmesg: str, errcode: AppErrorCode | str | None = None):
        super().__init__(errcode=errcode, errmesg=errmesg)


class PersistenceError(AppError):
    default_errcode = AppErrorCode.E_PERSISTENCE
    default_status_code = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(self, errmesg: str):
        super().__init__(errmesg=errmesg)


class RemoteExecutionError(AppError):
    default_errcode = AppErrorCode.E_REMOTE_EXECUTION
    default_status_code = HttpStatusCode.BAD_GATEWAY

    def __init__(self, errmesg: str):
        super().__init__(errmesg=errmesg)


class MediaServerError(AppError):
    default_errcode = AppErrorCode.E_MEDIA_SERVER
    default_status_code = HttpStatusCode.BAD_GATEWAY

    def __init__(self, errmesg: str):
        super().__init__(errmesg=errmesg)
