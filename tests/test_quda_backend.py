"""Tests for QUDA backend integration.

Tests are skipped if quda_torch_op is not installed; solves are skipped if it
was built without QUDA support.
"""

import logging

import pytest
import torch

try:
    import quda_torch_op

    HAS_QUDA_TORCH_OP = True
except ImportError:
    HAS_QUDA_TORCH_OP = False


pytestmark = pytest.mark.skipif(
    not HAS_QUDA_TORCH_OP,
    reason="quda_torch_op not installed",
)


def _free_field(dims: tuple[int, int, int, int]) -> tuple[torch.Tensor, torch.Tensor]:
    volume = dims[0] * dims[1] * dims[2] * dims[3]
    gauge = torch.eye(3, dtype=torch.complex128).expand(4, volume, 3, 3).contiguous()
    gen = torch.Generator().manual_seed(3)
    b = torch.randn(volume, 4, 3, dtype=torch.complex128, generator=gen)
    return gauge, b


class TestQudaBackendRegistration:
    """Tests for QUDA backend registration."""

    def test_quda_backend_available_after_import(self) -> None:
        """Verify QUDA backend is registered after importing qcdops.backends.quda."""
        from qcdops.backends import Backend, quda, registry

        assert registry.is_available(Backend.QUDA)
        assert registry.get(Backend.QUDA) is quda.quda_invert

    def test_bad_equation(self) -> None:
        """Unknown equation types are rejected before QUDA is touched."""
        from qcdops.backends.quda import quda_invert

        gauge, b = _free_field((2, 2, 2, 2))
        with pytest.raises(ValueError, match="equation"):
            quda_invert(b, gauge, (2, 2, 2, 2), kappa=0.12, equation="Mdag")


@pytest.mark.skipif(
    not HAS_QUDA_TORCH_OP or not quda_torch_op.quda_is_available(),
    reason="quda_torch_op built without QUDA",
)
class TestQudaSolve:
    """Solves through the QUDA Wilson inverter."""

    @pytest.mark.parametrize("equation", ["M", "MdagM"])
    def test_free_field_solve(self, equation: str, caplog: pytest.LogCaptureFixture) -> None:
        """A free-field solve converges and reports through invert()."""
        import qcdops.backends.quda  # noqa: F401
        from qcdops.solvers import invert

        dims = (4, 4, 4, 8)
        gauge, b = _free_field(dims)

        with caplog.at_level(logging.INFO):
            x, res = invert(
                b,
                backend="quda",
                gauge=gauge,
                dims=dims,
                kappa=0.12,
                tol=1e-10,
                equation=equation,
            )

        assert res.converged
        assert res.backend == "quda"
        assert res.n_count > 0
        assert x.shape == b.shape
        assert "QUDA_WILSON_SOLVER" in caplog.text
