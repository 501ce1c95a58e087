import logging
from dataclasses import dataclass
from typing import Optional

from spvguard.ir.analysis import ConstantManager, TypeManager
from spvguard.ir.basicblock import INVALID_ID, IRBasicBlock, IRId, IRInstruction
from spvguard.ir.passes.base_pass import IRPass, PassStatus
from spvguard.ir.types import IntegerType, VectorType, is_integer_or_integer_vector

logger = logging.getLogger(__name__)

_LOG_PREFIX = "OptimizationBarrierPass: "


@dataclass(frozen=True)
class Candidate:
    inst: IRInstruction
    type_id: IRId
    result_id: IRId
    is_vector: bool


class OptimizationBarrierPass(IRPass):
    """
    Some GPU drivers miscompile a left shift by a constant amount when its
    result feeds further arithmetic: the combined expression is folded
    incorrectly. This pass hides the pattern by routing the result of every
    such shift through a bitfield insert of zero bits, which is the
    identity on its base operand:

        %r = OpShiftLeftLogical %uint %x %uint_3

    becomes

        %t = OpShiftLeftLogical %uint %x %uint_3
        %r = OpBitFieldInsert %uint %t %uint_0 %uint_0 %uint_0

    Users of %r are left untouched.

    The renamed shift still matches, so running the pass twice adds a
    second guard. On failure the pass stops immediately, guards inserted
    before the failure stay in the module.
    """

    name = "mali-optimization-barrier"
    preserved_analyses = ()

    type_mgr: TypeManager
    const_mgr: ConstantManager
    num_scalar_guards: int
    num_vector_guards: int

    def run_pass(self) -> PassStatus:
        self.type_mgr = self.analyses_cache.request_analysis(TypeManager)
        self.const_mgr = self.analyses_cache.request_analysis(ConstantManager)
        self.num_scalar_guards = 0
        self.num_vector_guards = 0

        for fn in self.ctx.get_functions():
            if fn.is_declaration:
                continue
            for bb in fn.get_basic_blocks():
                if not self._process_basic_block(bb):
                    return PassStatus.FAILURE

        if self.num_scalar_guards + self.num_vector_guards == 0:
            return PassStatus.SUCCESS_WITHOUT_CHANGE

        logger.info(
            _LOG_PREFIX + "guarded %d shifts (scalar=%d, vector=%d)",
            self.num_scalar_guards + self.num_vector_guards,
            self.num_scalar_guards,
            self.num_vector_guards,
        )
        return PassStatus.SUCCESS_WITH_CHANGE

    def _process_basic_block(self, bb: IRBasicBlock) -> bool:
        i = 0
        while i < len(bb.instructions):
            candidate = self._match_candidate(bb.instructions[i])
            if candidate is not None:
                if not self._guard(bb, candidate):
                    return False
                # step over the guard we just inserted
                i += 1
            i += 1
        return True

    def _match_candidate(self, inst: IRInstruction) -> Optional[Candidate]:
        # OpShiftLeftLogical <Base> <Shift>
        if inst.opcode != "OpShiftLeftLogical":
            return None

        shift_constant = self.const_mgr.find_declared_constant(inst.get_in_operand(1))
        if shift_constant is None or not is_integer_or_integer_vector(shift_constant.type):
            return None

        assert inst.type_id is not None and inst.result_id is not None, inst
        is_vector = isinstance(self.type_mgr.get_type(inst.type_id), VectorType)
        return Candidate(inst, inst.type_id, inst.result_id, is_vector)

    def get_or_create_zero_constant(self, type_id: IRId) -> IRId:
        """
        Get the id of a zero constant of exactly the type `type_id`, which
        must be an integer or integer vector type. Returns INVALID_ID on
        failure.
        """
        match self.type_mgr.get_type(type_id):
            case IntegerType() as int_type:
                return self.const_mgr.get_or_create_zero_constant(int_type)
            case VectorType(element=IntegerType() as element, count=count):
                return self._get_or_create_zero_vector(element, count)
        return INVALID_ID

    def _get_or_create_zero_vector(self, element: IntegerType, count: int) -> IRId:
        components = []
        for _ in range(count):
            zero_id = self.const_mgr.get_or_create_zero_constant(element)
            if not zero_id:
                return INVALID_ID
            components.append(zero_id)

        vector_type_id = self.type_mgr.get_or_create_vector_type(element, count)
        if not vector_type_id:
            return INVALID_ID

        return self.const_mgr.get_or_create_composite(vector_type_id, components)

    def _guard(self, bb: IRBasicBlock, candidate: Candidate) -> bool:
        inst = candidate.inst

        zero_id = self.get_or_create_zero_constant(candidate.type_id)
        if not zero_id:
            logger.error(
                _LOG_PREFIX + "failed to get or create a zero constant of type %s for %s",
                candidate.type_id,
                inst.pretty_print(),
            )
            return False

        temp_id = self.ctx.take_next_id()
        if not temp_id:
            logger.error(
                _LOG_PREFIX + "failed to allocate a temp result id for %s", inst.pretty_print()
            )
            return False
        inst.set_result_id(temp_id)

        # %original = OpBitFieldInsert %type %temp %zero %zero %zero
        # inserts zero bits at offset zero, i.e. returns %temp unchanged
        guard = IRInstruction(
            "OpBitFieldInsert",
            [temp_id, zero_id, zero_id, zero_id],
            type_id=candidate.type_id,
            result_id=candidate.result_id,
        )
        bb.insert_instruction_after(inst, guard)

        if candidate.is_vector:
            self.num_vector_guards += 1
        else:
            self.num_scalar_guards += 1

        logger.debug(_LOG_PREFIX + "guarded %s", inst.pretty_print())
        return True
