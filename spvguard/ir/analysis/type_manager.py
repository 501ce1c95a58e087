from typing import Optional

from spvguard.exceptions import InvalidModule
from spvguard.ir.analysis.analysis import IRAnalysis
from spvguard.ir.basicblock import INVALID_ID, IRId, IRInstruction, IRLiteral, IROperand
from spvguard.ir.types import (
    BoolType,
    FloatType,
    IntegerType,
    IRType,
    OpaqueType,
    VectorType,
    VoidType,
)


def _literal(inst: IRInstruction, index: int) -> int:
    op = inst.get_in_operand(index)
    if not isinstance(op, IRLiteral) or not isinstance(op.value, int):
        raise InvalidModule(f"expected an integer literal at operand {index}: {inst}")
    return op.value


class TypeManager(IRAnalysis):
    """
    Maps type ids to types and back. Equal types resolve to the same id
    (the first declaration wins), and missing types are declared on
    request at the end of the global section.
    """

    _id_to_type: dict[IRId, IRType]
    _type_to_id: dict[IRType, IRId]

    def analyze(self):
        self._id_to_type = {}
        self._type_to_id = {}

        for inst in self.ctx.global_instructions:
            if not inst.is_type:
                continue
            assert inst.result_id is not None
            self._register(inst.result_id, self._type_from_instruction(inst))

    def _type_from_instruction(self, inst: IRInstruction) -> IRType:
        match inst.opcode:
            case "OpTypeInt":
                return IntegerType(_literal(inst, 0), bool(_literal(inst, 1)))
            case "OpTypeFloat":
                return FloatType(_literal(inst, 0))
            case "OpTypeBool":
                return BoolType()
            case "OpTypeVoid":
                return VoidType()
            case "OpTypeVector":
                element_id = inst.get_in_operand(0)
                element = self.get_type(element_id)
                if not isinstance(element, (IntegerType, FloatType, BoolType)):
                    raise InvalidModule(f"vector of non-scalar type {element_id}: {inst}")
                return VectorType(element, _literal(inst, 1))
            case _:
                return OpaqueType(inst.opcode, tuple(inst.operands))

    def _register(self, type_id: IRId, typ: IRType) -> None:
        self._id_to_type[type_id] = typ
        self._type_to_id.setdefault(typ, type_id)

    def get_type(self, type_id: Optional[IROperand]) -> Optional[IRType]:
        if not isinstance(type_id, IRId):
            return None
        return self._id_to_type.get(type_id)

    def get_id(self, typ: IRType) -> Optional[IRId]:
        return self._type_to_id.get(typ)

    def get_or_create_type_id(self, typ: IRType) -> IRId:
        """
        Get the id of `typ`, declaring the type if it does not exist yet.
        Returns INVALID_ID if the type cannot be declared.
        """
        if (existing := self._type_to_id.get(typ)) is not None:
            return existing

        operands: list[IROperand]
        match typ:
            case IntegerType(width=width, signed=signed):
                opcode = "OpTypeInt"
                operands = [IRLiteral(width), IRLiteral(int(signed))]
            case FloatType(width=width):
                opcode = "OpTypeFloat"
                operands = [IRLiteral(width)]
            case BoolType():
                opcode = "OpTypeBool"
                operands = []
            case VoidType():
                opcode = "OpTypeVoid"
                operands = []
            case VectorType(element=element, count=count):
                element_id = self.get_or_create_type_id(element)
                if not element_id:
                    return INVALID_ID
                opcode = "OpTypeVector"
                operands = [element_id, IRLiteral(count)]
            case OpaqueType():
                # we do not know how to declare these
                return INVALID_ID

        new_id = self.ctx.take_next_id()
        if not new_id:
            return INVALID_ID

        self.ctx.add_global_instruction(IRInstruction(opcode, operands, result_id=new_id))
        self._register(new_id, typ)
        return new_id

    def get_or_create_vector_type(self, element: IRType, count: int) -> IRId:
        if not isinstance(element, (IntegerType, FloatType, BoolType)) or count < 2:
            return INVALID_ID
        return self.get_or_create_type_id(VectorType(element, count))

    def invalidate(self):
        from spvguard.ir.analysis.constant_manager import ConstantManager

        self.analyses_cache.invalidate_analysis(ConstantManager)

        del self._id_to_type
        del self._type_to_id
