"""qcdops: construction of group-theoretical meson operators for lattice QCD.

Elemental two-quark meson operators, computed on many gauge configurations
and dilution timeslices and stored in LIME files, are combined into the
operators of definite lattice symmetry listed in coefficient manifests.
The package can be imported as ``qo`` for convenience:

.. code-block:: python

    import qcdops as qo

    # Run a complete job described by an XML file
    inp = qo.read_input("make_ops.ini.xml")
    result = qo.make_meson_ops(inp)
    result.write_xml("make_ops.out.xml")

    # Or work with operators directly
    registry = qo.ElementalOperatorRegistry(inp.input_files.elem_op_files)
    key = qo.OperatorKey(spin_l=1, displacement_l=0, spin_r=1, displacement_r=0)
    op = registry.get_source_operator(key, cfg=0, t0=0)

It also ships a small linear-solver interface (:func:`invert`) with a
native Conjugate Gradient backend and an optional QUDA backend.

"""

from qcdops._version import __version__
from qcdops.accumulate import accumulate, combine, initialize_shape
from qcdops.coefficients import GroupMesonOperatorSpec, Term, parse_coefficients, read_coeff_files
from qcdops.config import QcdOpsConfig, config
from qcdops.driver import MakeMesonOpsResult, make_meson_ops
from qcdops.errors import (
    DataInconsistencyError,
    DuplicateOperatorError,
    InputError,
    ManifestParseError,
    MesonOpsError,
    OperatorNotFoundError,
    ShapeMismatchError,
)
from qcdops.keys import ElementalOperatorFileSet, OperatorKey, TimeFiles
from qcdops.operators import Dilution, MesonOperator, MomentumProjection, TimeSlice
from qcdops.params import MakeMesonOpsInput, read_input
from qcdops.registry import ElementalOperatorRegistry
from qcdops.solvers import SystemSolverResults, cg, invert
from qcdops.validate import check_consistency

__all__ = [
    # Errors
    "DataInconsistencyError",
    "Dilution",
    "DuplicateOperatorError",
    # Keys and files
    "ElementalOperatorFileSet",
    "ElementalOperatorRegistry",
    "GroupMesonOperatorSpec",
    "InputError",
    # Driver
    "MakeMesonOpsInput",
    "MakeMesonOpsResult",
    "ManifestParseError",
    # Operators
    "MesonOperator",
    "MesonOpsError",
    "MomentumProjection",
    "OperatorKey",
    "OperatorNotFoundError",
    # Version and config
    "QcdOpsConfig",
    "ShapeMismatchError",
    # Solvers
    "SystemSolverResults",
    "Term",
    "TimeFiles",
    "TimeSlice",
    "__version__",
    # Accumulation
    "accumulate",
    "cg",
    "check_consistency",
    "combine",
    "config",
    "initialize_shape",
    "invert",
    "make_meson_ops",
    # Coefficients
    "parse_coefficients",
    "read_coeff_files",
    "read_input",
]
