"""Exception hierarchy for qcdops.

Library code never terminates the process. Every fallible operation raises
one of the exceptions below, and only the command-line entry point
(:mod:`qcdops.cli`) maps them to exit codes.

- :class:`InputError`: the run description itself is malformed
  (bad input XML, unsupported version, unparseable coefficient manifest).
- :class:`DataInconsistencyError`: the elemental operator data disagree
  with each other or with the run description.
- :class:`OperatorNotFoundError`: a requested elemental operator is not
  available.

"""

from __future__ import annotations


class MesonOpsError(Exception):
    """Base class for all qcdops errors."""


class InputError(MesonOpsError):
    """Raised when the run description cannot be interpreted."""


class UnsupportedVersionError(InputError):
    """Raised when an input section declares an unknown version.

    Parameters
    ----------
    section : str
        Name of the XML section carrying the version.
    version : int
        The version number that was found.

    """

    def __init__(self, section: str, version: int) -> None:
        self.section = section
        self.version = version
        super().__init__(f"{section}: input parameter version {version} unsupported.")


class ManifestParseError(InputError):
    """Raised when a coefficient manifest is malformed.

    Parameters
    ----------
    path : str
        Manifest file name.
    position : int
        Zero-based index of the offending token.
    reason : str
        Description of the problem.

    """

    def __init__(self, path: str, position: int, reason: str) -> None:
        self.path = path
        self.position = position
        self.reason = reason
        super().__init__(f"{path}: token {position}: {reason}")


class DataInconsistencyError(MesonOpsError):
    """Raised when operator data disagree with each other.

    Parameters
    ----------
    message : str
        Description of the inconsistency.
    op : int, optional
        Index of the offending elemental operator manifest.
    cfg : int, optional
        Configuration index.
    t0 : int, optional
        Dilution timeslice index.

    """

    def __init__(
        self,
        message: str,
        op: int | None = None,
        cfg: int | None = None,
        t0: int | None = None,
    ) -> None:
        self.op = op
        self.cfg = cfg
        self.t0 = t0
        context = [
            f"{label} = {value}"
            for label, value in (("op", op), ("cfg", cfg), ("t0", t0))
            if value is not None
        ]
        if context:
            message = f"{message}: {' '.join(context)}"
        super().__init__(message)


class DuplicateOperatorError(DataInconsistencyError):
    """Raised when two manifests describe the same elemental operator."""

    def __init__(self, index: int, key: object) -> None:
        self.index = index
        self.key = key
        super().__init__(f"Multiple copies of the same op in input ({key})", op=index)


class MissingElementError(DataInconsistencyError):
    """Raised when a required XML element is absent.

    Parameters
    ----------
    path : str
        Path of the missing element.

    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Missing XML element '{path}'")


class ShapeMismatchError(DataInconsistencyError):
    """Raised when an operand does not match the accumulator layout."""


class OperatorNotFoundError(MesonOpsError):
    """Raised when an elemental operator cannot be resolved.

    Parameters
    ----------
    key : object
        The operator key that was requested.
    detail : str
        What could not be found.

    """

    def __init__(self, key: object, detail: str = "not found in map") -> None:
        self.key = key
        super().__init__(f"Elemental operator {key} {detail}.")


__all__ = [
    "DataInconsistencyError",
    "DuplicateOperatorError",
    "InputError",
    "ManifestParseError",
    "MesonOpsError",
    "MissingElementError",
    "OperatorNotFoundError",
    "ShapeMismatchError",
    "UnsupportedVersionError",
]
