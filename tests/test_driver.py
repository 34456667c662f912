"""End-to-end tests of make_meson_ops."""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest
import torch

from conftest import KEY_A, KEY_B, make_operator, write_elemental, write_input_xml
from qcdops.config import config
from qcdops.driver import make_meson_ops
from qcdops.errors import DataInconsistencyError, OperatorNotFoundError
from qcdops.io.lime import read_qio_file
from qcdops.io.xmldoc import parse_xml, read_int, read_text
from qcdops.operators import MesonOperator
from qcdops.params import read_input


class TestTwoOperatorScenario:
    """pion = 2 * A - 1 * B with A = B = 1 + 0i."""

    def test_output_files(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """One source and one sink file hold 1 + 0i at every time point."""
        result = make_meson_ops(read_input(two_op_dataset()))

        out = tmp_path / "out"
        assert result.source_files == [f"{out}/pion_t0_src.lime"]
        assert result.sink_files == [f"{out}/pion_t0_snk.lime"]

        for filename in result.source_files + result.sink_files:
            doc = read_qio_file(filename)
            op = MesonOperator.from_binary(doc.binary, filename)
            values = op.time_slices[0].dilutions[0][0].mom_projs[0].op
            assert torch.equal(values, torch.ones(4, dtype=torch.complex128))
            assert op.time_slices[0].dilutions[0][0].mom_projs[0].mom == (0, 0, 0)

    def test_file_headers(self, two_op_dataset: Callable[..., Path]) -> None:
        """Output files echo the operator definition and carry the full header."""
        result = make_meson_ops(read_input(two_op_dataset()))

        src = read_qio_file(result.source_files[0])
        assert src.file_xml.tag == "SourceGroupMesonOperator"
        assert read_text(src.file_xml, "OpInfo/Name") == "pion"
        assert len(src.file_xml.findall("OpInfo/Terms/elem")) == 2
        assert read_text(src.file_xml, "Config_info/cfg") == "cfg_1000"
        assert src.record_xml.tag == "CreationOperator"
        assert read_text(src.record_xml, "OpInfo/id") == "pion"
        assert read_int(src.record_xml, "OpInfo/decay_dir") == 3

        snk = read_qio_file(result.sink_files[0])
        assert snk.file_xml.tag == "SinkGroupMesonOperator"
        assert snk.record_xml.tag == "AnnihilationOperator"

    def test_run_record(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """The run record echoes the input and lists the group operators."""
        result = make_meson_ops(read_input(two_op_dataset()))
        out_xml = tmp_path / "out.xml"
        result.write_xml(out_xml)

        root = parse_xml(out_xml.read_bytes())
        assert root.tag == "MakeMesonOps"
        assert root.find("Input/MakeMesonOps/Param") is not None
        assert read_text(root, "GroupMesonOperators/elem/Name") == "pion"
        assert [op.name for op in result.operators] == ["pion"]


class TestManyConfigs:
    """Two configurations with two dilution timeslices each."""

    STORED_T0 = (0, 4)

    @staticmethod
    def _value(cfg: int, t: int, sink: bool) -> float:
        return 100.0 * cfg + 10.0 * t + (5.0 if sink else 1.0)

    def _write_dataset(self, tmp_path: Path) -> Path:
        data = tmp_path / "data"
        data.mkdir()
        elem_ops = []
        for name, key in (("a", KEY_A), ("b", KEY_B)):
            cfgs = []
            for cfg in range(2):
                slices = []
                for t, t0 in enumerate(self.STORED_T0):
                    files = []
                    for sink in (False, True):
                        value = self._value(cfg, t, sink) if name == "a" else 1.0
                        side = "snk" if sink else "src"
                        files.append(
                            write_elemental(
                                data / f"{name}_c{cfg}_t{t}_{side}.lime",
                                key,
                                make_operator([value] * 2, t0=t0),
                                sink=sink,
                                cfg_info=f"cfg_{cfg}",
                            )
                        )
                    slices.append(tuple(files))
                cfgs.append(slices)
            elem_ops.append(cfgs)

        coeff = tmp_path / "ops.coeff"
        coeff.write_text("1\n2 pion\n1 1 0 0 (2,0)\n2 1 0 0 (-1,0)\n")
        out_paths = []
        for cfg in range(2):
            (tmp_path / f"o{cfg}").mkdir()
            out_paths.append((f"{tmp_path}/o{cfg}/", f"{tmp_path}/o{cfg}/"))
        return write_input_xml(tmp_path / "input.xml", [str(coeff)], elem_ops, out_paths)

    def test_file_order_and_names(self, tmp_path: Path) -> None:
        """Files are written configuration by configuration, named by the stored t0."""
        result = make_meson_ops(read_input(self._write_dataset(tmp_path)))

        expected = [f"{tmp_path}/o{cfg}/pion_t{t0}" for cfg in range(2) for t0 in self.STORED_T0]
        assert result.source_files == [f"{stem}_src.lime" for stem in expected]
        assert result.sink_files == [f"{stem}_snk.lime" for stem in expected]

    def test_values_per_slice(self, tmp_path: Path) -> None:
        """Each output combines the source or sink files of its own configuration and slice."""
        make_meson_ops(read_input(self._write_dataset(tmp_path)))

        for cfg in range(2):
            for t, t0 in enumerate(self.STORED_T0):
                for sink in (False, True):
                    side = "snk" if sink else "src"
                    filename = tmp_path / f"o{cfg}" / f"pion_t{t0}_{side}.lime"
                    op = MesonOperator.from_binary(read_qio_file(filename).binary, str(filename))
                    expected = 2.0 * self._value(cfg, t, sink) - 1.0

                    assert op.time_slices[0].t0 == t0
                    values = op.time_slices[0].dilutions[0][0].mom_projs[0].op
                    assert torch.equal(values, torch.full((2,), expected, dtype=torch.complex128))


class TestDriverChecks:
    """Run-level checks."""

    def test_output_path_count(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """The number of output paths must equal the number of configurations."""
        inp = read_input(two_op_dataset(out_paths=[("a/", "a/"), ("b/", "b/")]))

        with pytest.raises(DataInconsistencyError, match="output config paths"):
            make_meson_ops(inp)

    def test_skip_checks_warns(self, two_op_dataset: Callable[..., Path], caplog: pytest.LogCaptureFixture) -> None:
        """Skipping the consistency checks is logged as a warning."""
        with caplog.at_level(logging.WARNING, logger="qcdops.driver"):
            make_meson_ops(read_input(two_op_dataset()), check=False)

        assert "Skipping consistency checks" in caplog.text

    def test_config_flag(self, two_op_dataset: Callable[..., Path], caplog: pytest.LogCaptureFixture) -> None:
        """config.CHECK_CONSISTENCY applies when the input does not decide."""
        config.CHECK_CONSISTENCY = False
        with caplog.at_level(logging.WARNING, logger="qcdops.driver"):
            make_meson_ops(read_input(two_op_dataset()))

        assert "Skipping consistency checks" in caplog.text

    def test_inconsistent_data(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """Inconsistent elemental files stop the run before anything is written."""
        data = tmp_path / "data"
        op = make_operator([1.0] * 4)
        write_elemental(data / "a_snk.lime", KEY_A, op, sink=True, cfg_info="other")

        with pytest.raises(DataInconsistencyError, match="Sink cfgInfo"):
            make_meson_ops(read_input(two_op_dataset()))
        assert not list((tmp_path / "out").iterdir())

    def test_unknown_operator(self, two_op_dataset: Callable[..., Path], tmp_path: Path) -> None:
        """A manifest term without elemental files is reported."""
        coeff = tmp_path / "ops.coeff"
        coeff.write_text("1\n1 rho\n3 3 0 0 (1,0)\n")

        with pytest.raises(OperatorNotFoundError):
            make_meson_ops(read_input(two_op_dataset()))
