from typing import Optional
from enum import Enum
from pydantic import BaseModel


class ErrorKind(str, Enum):
    CONNECTIVITY = "connectivity"
    AUTH = "auth"
    VALIDATION = "validation"
    SCHEMA_MISMATCH = "schema_mismatch"
    NOT_FOUND = "not_found"
    REMOTE = "remote"


class SuggestedAction(str, Enum):
    RETRY = "retry"
    USE_OFFLINE = "use_offline"
    LOGIN = "login"
    FIX_INPUT = "fix_input"
    CREATE_AS_NEW = "create_as_new"
    NONE = "none"


class ErrorInfo(BaseModel):
    kind: ErrorKind
    detail: str
    recoverable: bool
    suggested_action: SuggestedAction = SuggestedAction.NONE
    status_code: Optional[int] = None


#------This Class handles the base sync error----------
class MedSyncError(Exception):
    kind: ErrorKind = ErrorKind.REMOTE
    recoverable: bool = True
    suggested_action: SuggestedAction = SuggestedAction.RETRY

    def __init__(
        self,
        detail: str,
        status_code: Optional[int] = None,
        suggested_action: Optional[SuggestedAction] = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        if suggested_action is not None:
            self.suggested_action = suggested_action

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            detail=self.detail,
            recoverable=self.recoverable,
            suggested_action=self.suggested_action,
            status_code=self.status_code,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.detail!r}, status_code={self.status_code})"


class ConnectivityError(MedSyncError):
    kind = ErrorKind.CONNECTIVITY
    recoverable = True
    suggested_action = SuggestedAction.RETRY


class AuthError(MedSyncError):
    kind = ErrorKind.AUTH
    recoverable = False
    suggested_action = SuggestedAction.LOGIN


class ValidationError(MedSyncError):
    kind = ErrorKind.VALIDATION
    recoverable = False
    suggested_action = SuggestedAction.FIX_INPUT


class SchemaMismatchError(MedSyncError):
    kind = ErrorKind.SCHEMA_MISMATCH
    recoverable = True
    suggested_action = SuggestedAction.RETRY


class NotFoundError(MedSyncError):
    kind = ErrorKind.NOT_FOUND
    recoverable = False
    suggested_action = SuggestedAction.CREATE_AS_NEW


class RemoteError(MedSyncError):
    kind = ErrorKind.REMOTE
    recoverable = True
    suggested_action = SuggestedAction.RETRY


SCHEMA_MISMATCH_MARKERS = (
    "unknown column",
    "er_bad_field_error",
    "no such column",
    "doesn't have a default value",
    "has no column named",
)


#------This Function checks for schema mismatch messages---------
def is_schema_mismatch_message(message: str) -> bool:
    lowered = (message or "").lower()
    return any(marker in lowered for marker in SCHEMA_MISMATCH_MARKERS)
