from typing import Iterable, Optional, Type

from spvguard.exceptions import UnknownPass
from spvguard.ir.analysis import IRAnalysesCache
from spvguard.ir.context import IRContext
from spvguard.ir.passes.base_pass import IRPass, PassStatus
from spvguard.ir.passes.optimization_barrier import OptimizationBarrierPass

PASS_REGISTRY: dict[str, Type[IRPass]] = {
    p.name: p for p in (OptimizationBarrierPass,)
}


def get_pass(name: str) -> Type[IRPass]:
    if name not in PASS_REGISTRY:
        known = ", ".join(sorted(PASS_REGISTRY))
        raise UnknownPass(f"unknown pass: {name}", hint=f"available passes: {known}")
    return PASS_REGISTRY[name]


class PassManager:
    """
    Runs passes on a module in order, keeping the analyses cache valid
    between them. Stops at the first pass which fails.
    """

    ctx: IRContext
    analyses_cache: IRAnalysesCache
    pass_objects: list[IRPass]

    def __init__(self, ctx: IRContext, analyses_cache: Optional[IRAnalysesCache] = None):
        self.ctx = ctx
        if analyses_cache is None:
            analyses_cache = IRAnalysesCache(ctx)
        self.analyses_cache = analyses_cache
        self.pass_objects = []

    def run(self, passes: Iterable[str | Type[IRPass]]) -> PassStatus:
        # resolve all names first so that a typo does not leave a
        # half-optimized module behind
        pass_classes = [get_pass(p) if isinstance(p, str) else p for p in passes]

        status = PassStatus.SUCCESS_WITHOUT_CHANGE
        for pass_cls in pass_classes:
            obj = pass_cls(self.analyses_cache, self.ctx)
            self.pass_objects.append(obj)

            pass_status = obj.run_pass()
            if pass_status.is_failure:
                return pass_status

            if pass_status.changed:
                self.analyses_cache.invalidate_all_except(obj.preserved_analyses)
                status = pass_status

        return status
