"""Error record models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

# SQLite primary result codes used by the adapter when the engine supplies none.
SQLITE_ERROR = 1
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_RANGE = 25


class ErrorKind(StrEnum):
    """Which stage of the store lifecycle failed."""

    OPEN = "open error"
    CLOSE = "close error"
    BIND = "bind error"
    PREPARE = "prepare error"
    TRANSACTION = "transaction error"
    STEP = "step error"


class ErrorRecord(BaseModel):
    """The last failure reported by a store."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    code: int
    message: str
    sql: str | None = None

    def __str__(self) -> str:
        text = f"{self.kind} ({self.code}): {self.message}"
        if self.sql:
            text += f" [{self.sql}]"
        return text
