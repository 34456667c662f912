"""Tests for the command-line entry point and its exit codes."""

from collections.abc import Callable
from pathlib import Path

import pytest

from conftest import KEY_A, make_operator, write_elemental
from qcdops.cli import EXIT_DATA, EXIT_INPUT, EXIT_IO, EXIT_OK, main
from qcdops.io.lime import BINARY_DATA, FILE_XML, RECORD_XML, write_lime


class TestMain:
    """Exit status of qcdops-make-meson-ops."""

    def test_success(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """A consistent run writes the output XML and exits 0."""
        out_xml = tmp_path / "out.xml"

        assert main(["-i", str(two_op_dataset()), "-o", str(out_xml)]) == EXIT_OK
        assert out_xml.read_text().startswith("<?xml")
        assert (tmp_path / "out" / "pion_t0_src.lime").exists()

    def test_data_inconsistency(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """Inconsistent elemental files exit 1."""
        write_elemental(tmp_path / "data" / "b_src.lime", KEY_A, make_operator([1.0] * 4))

        assert main(["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml")]) == EXIT_DATA

    def test_skip_checks(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """--skip-checks runs without cross-checking the files."""
        write_elemental(
            tmp_path / "data" / "b_snk.lime",
            KEY_A,
            make_operator([1.0] * 4),
            sink=True,
            cfg_info="other",
        )
        args = ["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml"), "--skip-checks"]

        assert main(args) == EXIT_OK

    def test_unknown_operator(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """Terms without elemental files exit 1."""
        (tmp_path / "ops.coeff").write_text("1\n1 rho\n3 3 0 0 (1,0)\n")

        assert main(["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml")]) == EXIT_DATA

    def test_bad_manifest(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """An unparseable coefficient manifest exits 2."""
        (tmp_path / "ops.coeff").write_text("1\n2 pion\n1 1 0 0 2.0\n")

        assert main(["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml")]) == EXIT_INPUT

    def test_bad_input_xml(self, tmp_path: Path) -> None:
        """An input document that is not XML exits 2."""
        path = tmp_path / "input.xml"
        path.write_text("not xml")

        assert main(["-i", str(path), "-o", str(tmp_path / "out.xml")]) == EXIT_INPUT

    def test_missing_input(self, tmp_path: Path) -> None:
        """A missing input file exits 3."""
        assert main(["-i", str(tmp_path / "nope.xml"), "-o", str(tmp_path / "out.xml")]) == EXIT_IO

    def test_missing_elemental_file(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """A missing elemental operator file exits 3."""
        (tmp_path / "data" / "b_snk.lime").unlink()

        assert main(["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml")]) == EXIT_IO

    def test_usage(self) -> None:
        """Missing arguments are a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2

    def test_malformed_elemental_xml(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """An elemental file whose header XML does not parse exits 1."""
        write_lime(
            tmp_path / "data" / "b_src.lime",
            [[(FILE_XML, b"<broken")], [(RECORD_XML, b"<A/>"), (BINARY_DATA, b"")]],
        )

        assert main(["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml")]) == EXIT_DATA

    def test_manifest_not_utf8(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """A coefficient manifest that is not UTF-8 exits 2."""
        (tmp_path / "ops.coeff").write_bytes(b"1\n2 pi\xff\n")

        assert main(["-i", str(two_op_dataset()), "-o", str(tmp_path / "out.xml")]) == EXIT_INPUT
