from __future__ import annotations

from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    LOAD_ERROR = 3
    BUILD_ERROR = 4
    RENDER_ERROR = 5


class PkiPlotError(Exception):
    """Base error for the plotting pipeline."""


class ConfigError(PkiPlotError):
    """Raised for configuration or argument issues."""


class LoadError(PkiPlotError):
    """Raised when manifests cannot be read or decoded."""


class MissingIdentityError(PkiPlotError):
    """Raised when a resource has neither a name nor a generateName."""

    def __init__(self, kind: str, index: Optional[int] = None) -> None:
        self.kind = str(kind)
        self.index = index
        if index is None:
            msg = f"{self.kind} has neither name nor generateName"
        else:
            msg = f"{self.kind} {index} has neither name nor generateName"
        super().__init__(msg)


class RenderError(PkiPlotError):
    """Raised when a graph cannot be turned into diagram text."""


class InconsistentGraphError(RenderError):
    """Raised when an edge references a vertex that is not part of the graph."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, LoadError):
        return int(ExitCode.LOAD_ERROR)
    if isinstance(exc, MissingIdentityError):
        return int(ExitCode.BUILD_ERROR)
    if isinstance(exc, (RenderError, PkiPlotError)):
        return int(ExitCode.RENDER_ERROR)
    return 1
