from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Type, TypeVar

if TYPE_CHECKING:
    from spvguard.ir.context import IRContext


class IRAnalysis:
    """
    An analysis of a whole module. Subclasses build their tables in
    `analyze` and drop them (plus anything derived from them) in
    `invalidate`.
    """

    ctx: IRContext
    analyses_cache: IRAnalysesCache

    def __init__(self, analyses_cache: IRAnalysesCache, ctx: IRContext):
        self.analyses_cache = analyses_cache
        self.ctx = ctx

    def analyze(self):
        raise NotImplementedError(f"{self.__class__.__name__}.analyze()")

    def invalidate(self):
        pass


T = TypeVar("T", bound=IRAnalysis)


class IRAnalysesCache:
    """
    Holds at most one instance of each analysis for a module. Passes ask
    for analyses through the cache and the pass manager drops them once a
    pass changed the module.
    """

    ctx: IRContext
    analyses: dict[Type[IRAnalysis], IRAnalysis]

    def __init__(self, ctx: IRContext):
        self.ctx = ctx
        self.analyses = {}

    def request_analysis(self, analysis_cls: Type[T]) -> T:
        """
        Get the cached instance of `analysis_cls`, running it first if needed.
        """
        assert issubclass(analysis_cls, IRAnalysis), f"{analysis_cls} is not an IRAnalysis"
        cached = self.analyses.get(analysis_cls)
        if cached is not None:
            assert isinstance(cached, analysis_cls)  # help mypy
            return cached

        # cache before analyzing so that dependent analyses requested from
        # `analyze` see this one
        analysis = analysis_cls(self, self.ctx)
        self.analyses[analysis_cls] = analysis
        analysis.analyze()
        return analysis

    def invalidate_analysis(self, analysis_cls: Type[IRAnalysis]):
        assert issubclass(analysis_cls, IRAnalysis), f"{analysis_cls} is not an IRAnalysis"
        analysis = self.analyses.pop(analysis_cls, None)
        if analysis is not None:
            analysis.invalidate()

    def invalidate_all_except(self, preserved: Iterable[Type[IRAnalysis]]):
        preserved = tuple(preserved)
        for analysis_cls in list(self.analyses):
            if analysis_cls not in preserved:
                self.invalidate_analysis(analysis_cls)

    def is_cached(self, analysis_cls: Type[IRAnalysis]) -> bool:
        return analysis_cls in self.analyses
