from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any, Iterator, Optional, Union

if TYPE_CHECKING:
    from spvguard.ir.function import IRFunction

# instructions which can terminate a basic block
BB_TERMINATORS = frozenset(
    [
        "OpReturn",
        "OpReturnValue",
        "OpBranch",
        "OpBranchConditional",
        "OpSwitch",
        "OpKill",
        "OpTerminateInvocation",
        "OpUnreachable",
    ]
)

# instructions which produce a result id but carry no result type
NO_RESULT_TYPE_OPCODES = frozenset(
    ["OpLabel", "OpExtInstImport", "OpString", "OpDecorationGroup"]
)

CONSTANT_OPCODES = frozenset(
    ["OpConstant", "OpConstantTrue", "OpConstantFalse", "OpConstantComposite", "OpConstantNull"]
)

# instructions which live in the module header, before any type declaration
PREAMBLE_OPCODES = frozenset(
    [
        "OpCapability",
        "OpExtension",
        "OpExtInstImport",
        "OpMemoryModel",
        "OpEntryPoint",
        "OpExecutionMode",
        "OpExecutionModeId",
        "OpSource",
        "OpSourceContinued",
        "OpSourceExtension",
        "OpString",
        "OpName",
        "OpMemberName",
        "OpModuleProcessed",
        "OpDecorate",
        "OpMemberDecorate",
        "OpDecorationGroup",
        "OpGroupDecorate",
        "OpGroupMemberDecorate",
    ]
)


def is_type_opcode(opcode: str) -> bool:
    return opcode.startswith("OpType")


def has_result_type(opcode: str) -> bool:
    """
    Check if an instruction which has a result id also has a result type.
    """
    return not is_type_opcode(opcode) and opcode not in NO_RESULT_TYPE_OPCODES


class IROperand:
    """
    IROperand represents an IR operand. An operand is anything that can be
    operated by instructions. It can be an id, a literal, an enumerant or
    a string.
    """

    value: Any
    _hash: Optional[int] = None

    def __init__(self, value: Any) -> None:
        self.value = value
        self._hash = None

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash((type(self), self.value))
        return self._hash

    def __eq__(self, other) -> bool:
        if not isinstance(other, type(self)):
            return False
        return self.value == other.value

    def __repr__(self) -> str:
        return str(self.value)


class IRId(IROperand):
    """
    IRId represents a result id. Ids are unsigned 32-bit words, unique in
    a module; 0 is reserved and means "no id". The optional name is the
    friendly name the id had in the assembly text, it does not take part
    in equality.
    """

    value: int
    name: Optional[str]

    def __init__(self, value: int, name: Optional[str] = None) -> None:
        assert isinstance(value, int) and value >= 0, value
        super().__init__(value)
        self.name = name

    @property
    def is_valid(self) -> bool:
        return self.value != 0

    def __bool__(self) -> bool:
        return self.is_valid

    def __repr__(self) -> str:
        if self.name is not None:
            return f"%{self.name}"
        return f"%{self.value}"


INVALID_ID = IRId(0)


class IRLiteral(IROperand):
    """
    IRLiteral represents an immediate number in IR. Float literals keep
    their spelling from the assembly text (e.g. `1e-10` or `0x1p+128`) so
    that they print back unchanged; like IRId names, the spelling does not
    take part in equality.
    """

    value: Union[int, float]
    text: Optional[str]

    def __init__(self, value: Union[int, float], text: Optional[str] = None) -> None:
        assert isinstance(value, (int, float)) and not isinstance(value, bool), value
        super().__init__(value)
        self.text = text

    def __repr__(self) -> str:
        if self.text is not None:
            return self.text
        return str(self.value)


class IREnumerant(IROperand):
    """
    IREnumerant represents a named immediate, e.g. `Logical` or `None`.
    """

    value: str

    _IS_ENUMERANT = re.compile("[A-Za-z_][0-9A-Za-z_|]*")

    def __init__(self, value: str) -> None:
        assert isinstance(value, str), value
        assert self.__class__._IS_ENUMERANT.fullmatch(value), value
        super().__init__(value)


class IRString(IROperand):
    """
    IRString represents a literal string, e.g. the name in `OpName`.
    """

    value: str

    def __init__(self, value: str) -> None:
        assert isinstance(value, str), value
        super().__init__(value)

    def __repr__(self) -> str:
        return json.dumps(self.value)  # escape it


class IRInstruction:
    """
    IRInstruction represents an instruction in IR. Each instruction has an
    opcode, an optional result type, an optional result id and a list of
    in-operands. For example, the following IR instruction:
        %r = OpShiftLeftLogical %uint %x %uint_3
    has opcode "OpShiftLeftLogical", type id %uint, result id %r and
    in-operands [%x, %uint_3].
    """

    opcode: str
    operands: list[IROperand]
    type_id: Optional[IRId]
    result_id: Optional[IRId]
    parent: IRBasicBlock

    def __init__(
        self,
        opcode: str,
        operands: list[IROperand] | Iterator[IROperand],
        type_id: Optional[IRId] = None,
        result_id: Optional[IRId] = None,
    ):
        assert isinstance(opcode, str), "opcode must be an str"
        assert isinstance(operands, list | Iterator), "operands must be a list"
        self.opcode = opcode
        self.operands = list(operands)  # in case we get an iterator
        self.type_id = type_id
        self.result_id = result_id

    @property
    def is_bb_terminator(self) -> bool:
        return self.opcode in BB_TERMINATORS

    @property
    def is_type(self) -> bool:
        return is_type_opcode(self.opcode)

    @property
    def is_constant(self) -> bool:
        return self.opcode in CONSTANT_OPCODES

    def get_in_operand(self, index: int) -> IROperand:
        return self.operands[index]

    def set_result_id(self, result_id: IRId) -> None:
        assert self.result_id is not None, f"instruction has no result: {self}"
        assert result_id.is_valid, "cannot set an invalid result id"
        self.result_id = result_id

    def get_input_ids(self) -> Iterator[IRId]:
        """
        Get all id in-operands for instruction.
        """
        return (op for op in self.operands if isinstance(op, IRId))

    def get_used_ids(self) -> Iterator[IRId]:
        """
        Get every id the instruction refers to, including its result type.
        """
        if self.type_id is not None:
            yield self.type_id
        yield from self.get_input_ids()

    def pretty_print(self) -> str:
        s = ""
        if self.result_id is not None:
            s += f"{self.result_id} = "
        s += self.opcode
        if self.type_id is not None:
            s += f" {self.type_id}"
        for op in self.operands:
            s += f" {op}"
        return s

    def __repr__(self) -> str:
        return self.pretty_print()


class IRBasicBlock:
    """
    IRBasicBlock represents a basic block in IR. Each basic block has a label
    id and a list of instructions, while belonging to a function.

    The following IR code:
        %entry = OpLabel
        %2 = OpIAdd %uint %x %uint_1
        %3 = OpIMul %uint %2 %uint_2
    is represented as an IRBasicBlock with label %entry holding two
    IRInstructions.

    The instruction list is the block's arena: instruction objects keep
    their identity while instructions are inserted around them, so a scan
    may hold on to an instruction and an explicit index into the list.

    The last instruction of a basic block is always a terminator instruction,
    which is used to branch to other basic blocks or leave the function.
    """

    label: IRId
    parent: IRFunction
    instructions: list[IRInstruction]

    def __init__(self, label: IRId, parent: IRFunction) -> None:
        assert isinstance(label, IRId), "label must be an IRId"
        self.label = label
        self.parent = parent
        self.instructions = []

    def insert_instruction(self, instruction: IRInstruction, index: int) -> None:
        assert isinstance(instruction, IRInstruction), "instruction must be an IRInstruction"
        instruction.parent = self
        self.instructions.insert(index, instruction)

    def insert_instruction_after(self, position: IRInstruction, instruction: IRInstruction) -> int:
        """
        Insert `instruction` directly after `position`, returning the index
        of the new instruction. No other instruction changes its relative
        order.
        """
        assert position.parent is self, "position must be in this basic block"
        assert not position.is_bb_terminator, "cannot insert after a terminator"
        index = self.instructions.index(position) + 1
        self.insert_instruction(instruction, index)
        return index

    @property
    def is_terminated(self) -> bool:
        """
        Check if the basic block is terminal, i.e. the last instruction is a terminator.
        """
        if len(self.instructions) == 0:
            return False
        return self.instructions[-1].is_bb_terminator

    def __repr__(self) -> str:
        s = f"{self.label} = OpLabel\n"
        for inst in self.instructions:
            s += f"{inst!r}\n"
        return s
