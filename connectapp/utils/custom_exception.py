from enum import Enum


class CustomMessageException(Exception):
    def __init__(self, message: str | list[str]) -> None:
        super().__init__(message)
        self.messages = [message] if isinstance(message, str) else message

    @property
    def message(self) -> str:
        return "\n".join(self.messages)

    def __str__(self) -> str:
        return self.message


class UploadErrorKind(Enum):
    TOO_LARGE = "too_large"
    TIMED_OUT = "timed_out"
    UPLOAD_FAILED = "upload_failed"
    REMOTE_REJECTED = "remote_rejected"
    # only ever logged, the upload continues without a working probe
    NETWORK_PROBE_FAILED = "network_probe_failed"


class UploadError(CustomMessageException):
    def __init__(self, kind: UploadErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
