import hypothesis
import pytest

from spvguard.ir.analysis import IRAnalysesCache
from spvguard.ir.passes import OptimizationBarrierPass

# disable hypothesis deadline globally
hypothesis.settings.register_profile("ci", deadline=None)
hypothesis.settings.load_profile("ci")


@pytest.fixture
def run_barrier():
    """
    Run the optimization barrier pass on a context, returning the pass
    object and its status.
    """

    def _run(ctx):
        obj = OptimizationBarrierPass(IRAnalysesCache(ctx), ctx)
        status = obj.run_pass()
        return obj, status

    return _run
