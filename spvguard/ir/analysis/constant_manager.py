from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from spvguard.exceptions import InvalidModule
from spvguard.ir.analysis.analysis import IRAnalysis
from spvguard.ir.analysis.type_manager import TypeManager
from spvguard.ir.basicblock import (
    INVALID_ID,
    IRId,
    IRInstruction,
    IRLiteral,
    IROperand,
)
from spvguard.ir.types import BoolType, IntegerType, IRType, VectorType


@dataclass(frozen=True)
class ScalarConstant:
    type: IRType
    # integers are kept as their bit pattern so that e.g. `-1` and
    # `0xffffffff` of the same type are the same constant
    value: Union[int, float]

    @classmethod
    def from_literal(cls, typ: IRType, value: Union[int, float]) -> ScalarConstant:
        if isinstance(typ, IntegerType):
            if not isinstance(value, int):
                raise InvalidModule(f"non-integer literal {value} for {typ}")
            value &= typ.mask
        return cls(typ, value)


@dataclass(frozen=True)
class BoolConstant:
    type: IRType
    value: bool


@dataclass(frozen=True)
class CompositeConstant:
    type: IRType
    components: tuple[IRId, ...]


@dataclass(frozen=True)
class NullConstant:
    type: IRType


Constant = Union[ScalarConstant, BoolConstant, CompositeConstant, NullConstant]


class ConstantManager(IRAnalysis):
    """
    Maps ids of declared constants (OpConstant, OpConstantTrue/False,
    OpConstantComposite, OpConstantNull) to their values and back.
    Constants are deduplicated by (type, value); new constants are
    declared at the end of the global section.

    Spec constants are not declared constants: their value may change
    after optimization.
    """

    type_mgr: TypeManager
    _id_to_constant: dict[IRId, Constant]
    _constant_to_id: dict[Constant, IRId]

    def analyze(self):
        self.type_mgr = self.analyses_cache.request_analysis(TypeManager)
        self._id_to_constant = {}
        self._constant_to_id = {}

        for inst in self.ctx.global_instructions:
            if not inst.is_constant:
                continue
            assert inst.result_id is not None
            self._register(inst.result_id, self._constant_from_instruction(inst))

    def _constant_from_instruction(self, inst: IRInstruction) -> Constant:
        typ = self.type_mgr.get_type(inst.type_id)
        if typ is None:
            raise InvalidModule(f"constant of unknown type {inst.type_id}: {inst}")

        match inst.opcode:
            case "OpConstant":
                op = inst.get_in_operand(0)
                if not isinstance(op, IRLiteral):
                    raise InvalidModule(f"expected a literal value: {inst}")
                return ScalarConstant.from_literal(typ, op.value)
            case "OpConstantTrue" | "OpConstantFalse":
                if not isinstance(typ, BoolType):
                    raise InvalidModule(f"boolean constant of type {typ}: {inst}")
                return BoolConstant(typ, inst.opcode == "OpConstantTrue")
            case "OpConstantComposite":
                components = []
                for op in inst.operands:
                    if not isinstance(op, IRId) or op not in self._id_to_constant:
                        raise InvalidModule(f"composite component {op} is not a constant: {inst}")
                    components.append(op)
                return CompositeConstant(typ, tuple(components))
            case "OpConstantNull":
                return NullConstant(typ)

        raise InvalidModule(f"not a constant: {inst}")  # pragma: nocover

    def _register(self, const_id: IRId, constant: Constant) -> None:
        self._id_to_constant[const_id] = constant
        self._constant_to_id.setdefault(constant, const_id)

    def find_declared_constant(self, op: IROperand) -> Optional[Constant]:
        """
        Get the constant `op` refers to, or None if `op` is not the id of
        a declared constant.
        """
        if not isinstance(op, IRId):
            return None
        return self._id_to_constant.get(op)

    def get_id(self, constant: Constant) -> Optional[IRId]:
        return self._constant_to_id.get(constant)

    def get_or_create_constant(self, constant: Constant) -> IRId:
        """
        Get the id of `constant`, declaring it (and its type) if necessary.
        Returns INVALID_ID if either cannot be declared.
        """
        if (existing := self._constant_to_id.get(constant)) is not None:
            return existing

        type_id = self.type_mgr.get_or_create_type_id(constant.type)
        if not type_id:
            return INVALID_ID

        operands: list[IROperand]
        match constant:
            case ScalarConstant(value=value):
                opcode = "OpConstant"
                operands = [IRLiteral(value)]
            case BoolConstant(value=value):
                opcode = "OpConstantTrue" if value else "OpConstantFalse"
                operands = []
            case CompositeConstant(components=components):
                opcode = "OpConstantComposite"
                operands = list(components)
            case NullConstant():
                opcode = "OpConstantNull"
                operands = []

        new_id = self.ctx.take_next_id()
        if not new_id:
            return INVALID_ID

        inst = IRInstruction(opcode, operands, type_id=type_id, result_id=new_id)
        self.ctx.add_global_instruction(inst)
        self._register(new_id, constant)
        return new_id

    def get_or_create_zero_constant(self, int_type: IntegerType) -> IRId:
        """
        Get the id of the zero constant of exactly `int_type`.
        """
        assert isinstance(int_type, IntegerType), int_type
        return self.get_or_create_constant(ScalarConstant(int_type, 0))

    def get_or_create_composite(self, vector_type_id: IRId, components: Sequence[IRId]) -> IRId:
        """
        Get the id of the composite constant of type `vector_type_id` with
        exactly the given component ids. Returns INVALID_ID if the type is
        not a vector type of matching size or if a component is not a
        declared constant.
        """
        typ = self.type_mgr.get_type(vector_type_id)
        if not isinstance(typ, VectorType) or typ.count != len(components):
            return INVALID_ID
        if any(c not in self._id_to_constant for c in components):
            return INVALID_ID
        return self.get_or_create_constant(CompositeConstant(typ, tuple(components)))
