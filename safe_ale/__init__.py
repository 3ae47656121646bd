"""Checked Python bindings for the Arcade Learning Environment C library.

This package provides:
- Ale: owning handle over one native engine with validated operations
- AleState: detached snapshots (environment / system flavor) and their encoding
- BundledRom / RomTable: ROM sources materialized to transient files on load
"""

from .config import EngineConfig, load_engine_config
from .engine import Ale
from .errors import (
    AleError,
    BufferTooSmallError,
    EngineAllocationError,
    EngineContractError,
    HandleClosedError,
    IllegalActionError,
    IllegalDifficultyError,
    IllegalModeError,
    InvalidCodeError,
    NativeCallError,
    PreconditionError,
    RomLoadError,
    RomMaterializationError,
    SnapshotFlavorWarning,
)
from .native import LoggerMode, is_library_present, set_logger_mode
from .roms import BundledRom, DirectoryRomTable, MappingRomTable
from .state import AleState, StateFlavor, decode_state, encode_len, encode_state

__all__ = [
    "Ale",
    "AleState",
    "StateFlavor",
    "encode_len",
    "encode_state",
    "decode_state",
    "EngineConfig",
    "load_engine_config",
    "LoggerMode",
    "set_logger_mode",
    "is_library_present",
    "BundledRom",
    "DirectoryRomTable",
    "MappingRomTable",
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
    "RomLoadError",
    "RomMaterializationError",
    "SnapshotFlavorWarning",
]
