from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from spvguard.ir.basicblock import IRBasicBlock, IRId, IRInstruction

if TYPE_CHECKING:
    from spvguard.ir.context import IRContext


class IRFunction:
    """
    Function that contains basic blocks.

    `definition` is the `OpFunction` instruction, `params` are the
    `OpFunctionParameter` instructions which follow it. A function without
    basic blocks is a declaration (e.g. an imported function).
    """

    ctx: IRContext
    definition: IRInstruction
    params: list[IRInstruction]
    _basic_block_dict: dict[IRId, IRBasicBlock]

    def __init__(self, definition: IRInstruction, ctx: IRContext = None):
        assert definition.opcode == "OpFunction", definition
        assert definition.result_id is not None
        self.ctx = ctx  # type: ignore
        self.definition = definition
        self.params = []
        self._basic_block_dict = {}

    @property
    def result_id(self) -> IRId:
        assert self.definition.result_id is not None  # help mypy
        return self.definition.result_id

    @property
    def is_declaration(self) -> bool:
        return len(self._basic_block_dict) == 0

    def add_param(self, param: IRInstruction) -> None:
        assert param.opcode == "OpFunctionParameter", param
        self.params.append(param)

    def append_basic_block(self, bb: IRBasicBlock):
        """
        Append basic block to function.
        """
        assert isinstance(bb, IRBasicBlock), bb
        assert bb.label not in self._basic_block_dict, bb.label
        bb.parent = self
        self._basic_block_dict[bb.label] = bb

    def has_basic_block(self, label: IRId) -> bool:
        return label in self._basic_block_dict

    def get_basic_blocks(self) -> Iterator[IRBasicBlock]:
        """
        Get an iterator over this function's basic blocks
        """
        return iter(self._basic_block_dict.values())

    def get_instructions(self) -> Iterator[IRInstruction]:
        """
        Get every instruction of the function in order, including the
        function header and its parameters.
        """
        yield self.definition
        yield from self.params
        for bb in self.get_basic_blocks():
            yield from bb.instructions

    def __repr__(self) -> str:
        ret = f"{self.definition!r}\n"
        for param in self.params:
            ret += f"{param!r}\n"
        for bb in self.get_basic_blocks():
            ret += repr(bb)
        ret += "OpFunctionEnd"
        return ret
