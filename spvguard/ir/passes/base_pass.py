from enum import Enum
from typing import Type

from spvguard.ir.analysis import IRAnalysesCache, IRAnalysis
from spvguard.ir.context import IRContext


class PassStatus(Enum):
    FAILURE = 0
    SUCCESS_WITH_CHANGE = 1
    SUCCESS_WITHOUT_CHANGE = 2

    @property
    def is_failure(self) -> bool:
        return self == PassStatus.FAILURE

    @property
    def changed(self) -> bool:
        return self == PassStatus.SUCCESS_WITH_CHANGE


class IRPass:
    """
    Base class for all IR passes. A pass works on a whole module.
    """

    # key used to select the pass, e.g. on the command line
    name: str
    # analyses which are still valid after the pass changed the module
    preserved_analyses: tuple[Type[IRAnalysis], ...] = ()

    ctx: IRContext
    analyses_cache: IRAnalysesCache

    def __init__(self, analyses_cache: IRAnalysesCache, ctx: IRContext):
        self.ctx = ctx
        self.analyses_cache = analyses_cache

    def run_pass(self, *args, **kwargs) -> PassStatus:
        raise NotImplementedError(f"Not implemented! {self.__class__}.run_pass()")
