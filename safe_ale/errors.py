"""Exception taxonomy for the ALE safety layer.

Two families:
  - :class:`PreconditionError` and subclasses: the caller broke the boundary
    contract (illegal action/mode/difficulty, undersized buffer, use after
    close). These are programmer errors and are never caught internally.
  - Environmental failures (:class:`RomLoadError`, :class:`NativeCallError`,
    :class:`EngineAllocationError`): the environment or the engine failed.
"""

from __future__ import annotations

from typing import Sequence


class AleError(RuntimeError):
    """Base class for every error raised by ``safe_ale``."""


class PreconditionError(AleError):
    """A call violated the boundary contract and was rejected locally."""


class _IllegalValueError(PreconditionError):
    kind = "value"
    set_name = "allowed values"

    def __init__(self, value: int, allowed: Sequence[int]) -> None:
        self.value = int(value)
        self.allowed = tuple(int(v) for v in allowed)
        super().__init__(f"illegal {self.kind}: {self.value} ({self.set_name}: {list(self.allowed)})")


class IllegalActionError(_IllegalValueError):
    kind = "action"
    set_name = "legal actions"


class IllegalModeError(_IllegalValueError):
    kind = "mode"
    set_name = "available modes"


class IllegalDifficultyError(_IllegalValueError):
    kind = "difficulty"
    set_name = "available difficulties"


class InvalidCodeError(PreconditionError, TypeError):
    """A code passed where an integer action/mode/difficulty was expected is not one."""


class BufferTooSmallError(PreconditionError):
    """Caller buffer is shorter than what the engine would write into it."""

    def __init__(self, what: str, length: int, required: int) -> None:
        self.what = what
        self.length = int(length)
        self.required = int(required)
        super().__init__(f"{what} buffer too small: got {self.length} bytes, need at least {self.required}")


class HandleClosedError(PreconditionError):
    """Operation attempted on a handle or snapshot that was already released."""


class EngineContractError(AleError):
    """The engine reported a value its own contract rules out (e.g. a negative size)."""


class EngineAllocationError(AleError):
    """The engine returned a null pointer where a live object was expected."""


class NativeCallError(AleError):
    """A foreign failure signal was raised while crossing the native boundary."""


class AleLibraryError(AleError):
    """The shared library is loadable but does not export the expected symbols."""


class LibraryNotFoundError(FileNotFoundError, AleError):
    """The ALE C shared library could not be located."""


class RomLoadError(OSError, AleError):
    """A ROM could not be handed to the engine."""


class RomMaterializationError(RomLoadError):
    """Writing ROM bytes to their transient location failed."""


class SnapshotFlavorWarning(UserWarning):
    """A snapshot was restored through the operation of the other flavor."""


__all__ = [
    "AleError",
    "PreconditionError",
    "IllegalActionError",
    "IllegalModeError",
    "IllegalDifficultyError",
    "InvalidCodeError",
    "BufferTooSmallError",
    "HandleClosedError",
    "EngineContractError",
    "EngineAllocationError",
    "NativeCallError",
    "AleLibraryError",
    "LibraryNotFoundError",
    "RomLoadError",
    "RomMaterializationError",
    "SnapshotFlavorWarning",
]
