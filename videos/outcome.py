from dataclasses import dataclass
from typing import Any, Optional

OK = "ok"
WARNING = "warning"
FATAL = "fatal"


@dataclass(frozen=True)
class Outcome:
    """
    Result of one sub-operation of a job.
    A warning may still carry a (partial) value; a fatal outcome never does.
    """
    kind: str
    value: Any = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: Any) -> "Outcome":
        return cls(OK, value=value)

    @classmethod
    def warning(cls, reason: str, value: Any = None) -> "Outcome":
        return cls(WARNING, value=value, reason=reason)

    @classmethod
    def fatal(cls, reason: str) -> "Outcome":
        return cls(FATAL, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.kind == OK

    @property
    def is_fatal(self) -> bool:
        return self.kind == FATAL

