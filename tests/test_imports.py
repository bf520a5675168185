import importlib
import pytest

@pytest.mark.parametrize("module", [
    "cocluster",
    "cocluster.algorithms",
    "cocluster.aggregation",
    "cocluster.updates",
    "cocluster.distributed",
    "cocluster.kernels",
    "cocluster.initialization",
    "cocluster.io",
    "cocluster.utils",
    "cocluster.visualization",
    "cocluster.cli",
])
def test_submodules_exist(module):
    mod = importlib.import_module(module)
    assert mod is not None


def test_public_api():
    import cocluster
    for name in cocluster.__all__:
        assert hasattr(cocluster, name), name
