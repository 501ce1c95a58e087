from spvguard.ir.analysis import DefUseAnalysis, IRAnalysesCache
from spvguard.ir.basicblock import IRId, IRInstruction
from spvguard.ir.context import IRContext
from spvguard.ir.function import IRFunction


class ModuleError(Exception):
    message: str


class BasicBlockNotTerminated(ModuleError):
    message: str = "basic block does not terminate"

    def __init__(self, basicblock):
        self.basicblock = basicblock

    def __str__(self):
        return f"basic block is not terminated:\n{self.basicblock}"


class IdNotDefined(ModuleError):
    message: str = "id is used before definition"

    def __init__(self, id_, inst):
        self.id_ = id_
        self.inst = inst

    def __str__(self):
        return f"id {self.id_} not defined:\n  {self.inst}"


class IdRedefined(ModuleError):
    message: str = "id is defined more than once"

    def __init__(self, id_, inst):
        self.id_ = id_
        self.inst = inst

    def __str__(self):
        return f"id {self.id_} defined more than once:\n  {self.inst}"


def _check_uses(inst: IRInstruction, defined: set[IRId]) -> list[ModuleError]:
    return [IdNotDefined(id_=op, inst=inst) for op in inst.get_used_ids() if op not in defined]


def _find_semantic_errors_fn(fn: IRFunction, global_defs: set[IRId]) -> list[ModuleError]:
    errors: list[ModuleError] = []

    for bb in fn.get_basic_blocks():
        if not bb.is_terminated:
            errors.append(BasicBlockNotTerminated(basicblock=bb))

    # branch targets and phi operands may refer forward
    labels = {bb.label for bb in fn.get_basic_blocks()}
    fn_defs = {inst.result_id for inst in fn.get_instructions() if inst.result_id is not None}

    defined = global_defs | labels
    for inst in fn.get_instructions():
        if inst.opcode == "OpPhi":
            errors.extend(_check_uses(inst, defined | fn_defs))
        else:
            errors.extend(_check_uses(inst, defined))
        if inst.result_id is not None:
            defined.add(inst.result_id)

    return errors


def find_semantic_errors(ctx: IRContext) -> list[ModuleError]:
    errors: list[ModuleError] = []

    ac = IRAnalysesCache(ctx)
    def_use = ac.request_analysis(DefUseAnalysis)
    for inst in def_use.redefinitions:
        errors.append(IdRedefined(id_=inst.result_id, inst=inst))

    # debug and annotation instructions may refer to anything in the module
    labels = {bb.label for bb in ctx.get_basic_blocks()}
    for inst in ctx.preamble:
        for op in inst.get_used_ids():
            if not def_use.is_defined(op) and op not in labels:
                errors.append(IdNotDefined(id_=op, inst=inst))

    # functions may be called before they are defined
    global_defs: set[IRId] = {inst.result_id for inst in ctx.preamble if inst.result_id}
    global_defs |= set(ctx.functions.keys())

    for inst in ctx.global_instructions:
        errors.extend(_check_uses(inst, global_defs))
        if inst.result_id is not None:
            global_defs.add(inst.result_id)

    for fn in ctx.get_functions():
        errors.extend(_find_semantic_errors_fn(fn, global_defs))

    return errors


def check_module(ctx: IRContext):
    errors = find_semantic_errors(ctx)

    if errors:
        raise ExceptionGroup("module semantic errors", errors)
