import operator
from typing import Callable, Optional, Union

from spvguard.exceptions import EvaluationError
from spvguard.ir.analysis import ConstantManager, IRAnalysesCache, TypeManager
from spvguard.ir.analysis.constant_manager import (
    CompositeConstant,
    Constant,
    NullConstant,
    ScalarConstant,
)
from spvguard.ir.basicblock import IRBasicBlock, IRId, IRInstruction, IROperand
from spvguard.ir.context import IRContext
from spvguard.ir.types import IntegerType, IRType, VectorType

# integers are represented by their bit pattern, vectors by tuples of
# bit patterns
Value = Union[int, tuple[int, ...]]


def _lane_type(typ: Optional[IRType]) -> IntegerType:
    match typ:
        case IntegerType():
            return typ
        case VectorType(element=IntegerType() as element):
            return element
    raise EvaluationError(f"not an integer or integer vector type: {typ}")


def _shl(width: int, base: int, shift: int) -> int:
    if shift >= width:
        return 0
    return base << shift


def _shr_logical(width: int, base: int, shift: int) -> int:
    if shift >= width:
        return 0
    return base >> shift


def _wrap_binop(operation) -> Callable[[int, int, int], int]:
    def wrapper(width: int, a: int, b: int) -> int:
        return operation(a, b)

    return wrapper


def _bitfield_insert(width: int, base: int, insert: int, offset: int, count: int) -> int:
    # offset and count are consumed as unsigned values
    if offset + count > width:
        raise EvaluationError(f"bitfield [{offset}, {offset + count}) out of {width} bits")
    mask = ((1 << count) - 1) << offset
    return (base & ~mask) | ((insert << offset) & mask)


EVAL_DISPATCH: dict[str, Callable[..., int]] = {
    "OpShiftLeftLogical": _shl,
    "OpShiftRightLogical": _shr_logical,
    "OpIAdd": _wrap_binop(operator.add),
    "OpISub": _wrap_binop(operator.sub),
    "OpIMul": _wrap_binop(operator.mul),
    "OpBitwiseAnd": _wrap_binop(operator.and_),
    "OpBitwiseOr": _wrap_binop(operator.or_),
    "OpBitwiseXor": _wrap_binop(operator.xor),
    "OpBitFieldInsert": _bitfield_insert,
}


class BlockEvaluator:
    """
    Evaluates the straight-line integer code of a basic block, given
    values for the ids it reads which are not constants.
    """

    def __init__(self, ctx: IRContext, analyses_cache: Optional[IRAnalysesCache] = None):
        self.ctx = ctx
        if analyses_cache is None:
            analyses_cache = IRAnalysesCache(ctx)
        self.type_mgr = analyses_cache.request_analysis(TypeManager)
        self.const_mgr = analyses_cache.request_analysis(ConstantManager)

    def _constant_value(self, constant: Constant) -> Value:
        match constant:
            case ScalarConstant(value=int(value)):
                return value
            case CompositeConstant(components=components):
                ret = []
                for c in components:
                    lane = self._constant_value(self.const_mgr.find_declared_constant(c))
                    assert isinstance(lane, int)
                    ret.append(lane)
                return tuple(ret)
            case NullConstant(type=VectorType(count=count)):
                return (0,) * count
            case NullConstant():
                return 0
        raise EvaluationError(f"cannot evaluate constant {constant}")

    def _operand_value(self, op: IROperand, env: dict[IRId, Value]) -> Value:
        if isinstance(op, IRId) and op in env:
            return env[op]
        constant = self.const_mgr.find_declared_constant(op)
        if constant is None:
            raise EvaluationError(f"no value for {op}")
        return self._constant_value(constant)

    def eval_instruction(self, inst: IRInstruction, env: dict[IRId, Value]) -> Value:
        typ = self.type_mgr.get_type(inst.type_id)
        width = _lane_type(typ).width
        mask = (1 << width) - 1

        args = [self._operand_value(op, env) for op in inst.operands]

        if inst.opcode == "OpCopyObject":
            return args[0]
        if inst.opcode not in EVAL_DISPATCH:
            raise EvaluationError(f"unsupported instruction: {inst}")
        fn = EVAL_DISPATCH[inst.opcode]

        if not isinstance(typ, VectorType):
            if any(isinstance(arg, tuple) for arg in args):
                raise EvaluationError(f"vector operand of scalar instruction: {inst}")
            return fn(width, *args) & mask

        # scalar operands (e.g. bitfield offsets) apply to every lane
        lanes = []
        for i in range(typ.count):
            lane_args = [arg[i] if isinstance(arg, tuple) else arg for arg in args]
            lanes.append(fn(width, *lane_args) & mask)
        return tuple(lanes)

    def evaluate(self, bb: IRBasicBlock, inputs: dict[IRId, Value]) -> dict[IRId, Value]:
        env = dict(inputs)
        for inst in bb.instructions:
            if inst.is_bb_terminator:
                break
            # results provided by the caller, e.g. loads
            if inst.result_id is None or inst.result_id in inputs:
                continue
            env[inst.result_id] = self.eval_instruction(inst, env)
        return env


def evaluate_block(
    ctx: IRContext, bb: IRBasicBlock, inputs: dict[IRId, Value]
) -> dict[IRId, Value]:
    return BlockEvaluator(ctx).evaluate(bb, inputs)
