"""Value and error models shared by all store providers."""

from persistkit.models.error import ErrorKind, ErrorRecord
from persistkit.models.value import SQLValue, Value, ValueKind, kind_of

__all__ = ["ErrorKind", "ErrorRecord", "SQLValue", "Value", "ValueKind", "kind_of"]
