import logging
from dataclasses import dataclass
from typing import Optional, Union

from core.logging_config import get_logger


@dataclass(frozen=True)
class RequestEvent:
    method: str
    path: str
    ip: str
    status: int


@dataclass(frozen=True)
class AuthFailureEvent:
    ip: str
    method: str = "-"
    path: str = "-"


@dataclass(frozen=True)
class ErrorEvent:
    ip: str
    message: str
    method: str = "-"
    path: str = "-"
    exc_info: Optional[BaseException] = None


LogEvent = Union[RequestEvent, AuthFailureEvent, ErrorEvent]


class RequestLogger:
    """
    One log call per finished request. Auth failures go to a separate
    security logger; both they and errors carry a banner so they stand out
    in the console.
    """

    def __init__(
        self,
        access_logger: Optional[logging.Logger] = None,
        security_logger: Optional[logging.Logger] = None,
    ) -> None:
        self.access_logger = access_logger or get_logger("access")
        self.security_logger = security_logger or get_logger("security")

    def log(self, event: LogEvent) -> None:
        try:
            self._emit(event)
        except Exception:  # logging never fails a response
            pass

    def _emit(self, event: LogEvent) -> None:
        if isinstance(event, AuthFailureEvent):
            self.security_logger.warning(
                "*** AUTH FAILURE *** %s %s from %s -> 401",
                event.method, event.path, event.ip,
            )
        elif isinstance(event, ErrorEvent):
            self.access_logger.error(
                "!!! ERROR !!! %s %s from %s -> 500: %s",
                event.method, event.path, event.ip, event.message,
                exc_info=event.exc_info,
            )
        else:
            level = logging.WARNING if 400 <= event.status < 500 else logging.INFO
            self.access_logger.log(
                level,
                "%s %s from %s -> %d",
                event.method, event.path, event.ip, event.status,
            )
