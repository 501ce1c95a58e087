from typing import Optional

from spvguard.ir.check_module import check_module
from spvguard.ir.context import IRContext
from spvguard.ir.parser import parse_module
from spvguard.ir.passes import PassManager, PassStatus
from spvguard.settings import Settings


def optimize_module(ctx: IRContext, passes: list[str]) -> PassStatus:
    """
    Run the passes named in `passes` on `ctx`, validating the result if
    the module's settings ask for it.
    """
    status = PassManager(ctx).run(passes)
    if not status.is_failure and ctx.settings.get_validate():
        check_module(ctx)
    return status


def optimize_source(
    source: str, passes: list[str], settings: Optional[Settings] = None
) -> tuple[IRContext, PassStatus]:
    ctx = parse_module(source, settings)
    return ctx, optimize_module(ctx, passes)
