from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from medsync.core.errors import ErrorInfo, MedSyncError, SuggestedAction


class Result(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    value: Any = None
    error: Optional[ErrorInfo] = None
    attempts: int = 1
    exhausted: bool = False
    synthetic: bool = False
    stale: bool = False

    @classmethod
    def success(cls, value: Any = None, **kwargs) -> "Result":
        return cls(ok=True, value=value, **kwargs)

    @classmethod
    def failure(cls, error: MedSyncError, **kwargs) -> "Result":
        return cls(ok=False, error=error.to_info(), **kwargs)

    @classmethod
    def fallback(cls, value: Any, error: Optional[MedSyncError] = None, **kwargs) -> "Result":
        info = None
        if error is not None:
            info = error.to_info()
            info.suggested_action = SuggestedAction.USE_OFFLINE
        return cls(ok=True, value=value, error=info, synthetic=True, **kwargs)

    @classmethod
    def discarded(cls) -> "Result":
        return cls(ok=False, stale=True)
