"""Command-line entry point ``qcdops-make-meson-ops``.

Usage::

    qcdops-make-meson-ops -i make_ops.ini.xml -o make_ops.out.xml [--skip-checks] [-v]

Exit status:

==  ===============================================================
0   success
1   elemental operator data are inconsistent or missing
2   the input XML or a coefficient manifest cannot be interpreted
3   a file could not be read or written
==  ===============================================================

"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from qcdops.driver import make_meson_ops
from qcdops.errors import DataInconsistencyError, InputError, OperatorNotFoundError
from qcdops.params import read_input

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DATA = 1
EXIT_INPUT = 2
EXIT_IO = 3


def _parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="qcdops-make-meson-ops",
        description="Combine elemental meson operators into group-theoretical operators.",
    )
    ap.add_argument("-i", "--input", required=True, help="input XML file")
    ap.add_argument("-o", "--output", required=True, help="output XML file")
    ap.add_argument(
        "--skip-checks",
        action="store_true",
        help="do not cross-check the elemental operator files",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    """Run ``make_meson_ops`` and return the exit status."""
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        inp = read_input(args.input)
        result = make_meson_ops(inp, check=False if args.skip_checks else None)
        result.write_xml(args.output)
    except InputError as exc:
        logger.error("MAKE_MESON_OPS: %s", exc)
        return EXIT_INPUT
    except (DataInconsistencyError, OperatorNotFoundError) as exc:
        logger.error("MAKE_MESON_OPS: %s", exc)
        return EXIT_DATA
    except OSError as exc:
        logger.error("MAKE_MESON_OPS: I/O error: %s", exc)
        return EXIT_IO

    logger.info("MAKE_MESON_OPS: ran successfully")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
