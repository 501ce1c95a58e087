import logging
from typing import Iterator, Optional

from spvguard.ir.basicblock import INVALID_ID, IRBasicBlock, IRId, IRInstruction
from spvguard.ir.function import IRFunction
from spvguard.settings import Settings

logger = logging.getLogger(__name__)


class IRContext:
    """
    A module: the header (capabilities, memory model, entry points, debug
    and annotation instructions), the global section (types, constants,
    global variables) and the functions, plus the id bound shared by all
    of them.
    """

    preamble: list[IRInstruction]
    global_instructions: list[IRInstruction]
    functions: dict[IRId, IRFunction]
    id_bound: int
    settings: Settings

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.preamble = []
        self.global_instructions = []
        self.functions = {}
        self.settings = settings if settings is not None else Settings()

        # ids are allocated monotonically starting from 1
        self.id_bound = 1

    @property
    def max_id_bound(self) -> int:
        return self.settings.get_max_id_bound()

    def take_next_id(self) -> IRId:
        """
        Allocate a fresh id. Returns INVALID_ID when the id bound is
        exhausted.
        """
        next_id = self.id_bound
        if next_id >= self.max_id_bound:
            logger.error("ID overflow. Try running compact-ids.")
            return INVALID_ID
        self.id_bound += 1
        return IRId(next_id)

    def reserve_id(self, id_: IRId) -> None:
        """
        Make sure that `id_` is below the id bound, e.g. after a parser
        assigned it.
        """
        self.id_bound = max(self.id_bound, id_.value + 1)

    def add_preamble_instruction(self, inst: IRInstruction) -> None:
        self.preamble.append(inst)

    def add_global_instruction(self, inst: IRInstruction) -> None:
        self.global_instructions.append(inst)

    def add_function(self, fn: IRFunction) -> None:
        assert fn.result_id not in self.functions, f"duplicate function {fn.result_id}"
        fn.ctx = self
        self.functions[fn.result_id] = fn

    def get_functions(self) -> Iterator[IRFunction]:
        return iter(self.functions.values())

    def get_basic_blocks(self) -> Iterator[IRBasicBlock]:
        for fn in self.functions.values():
            for bb in fn.get_basic_blocks():
                yield bb

    def get_instructions(self) -> Iterator[IRInstruction]:
        """
        Get every instruction of the module in order.
        """
        yield from self.preamble
        yield from self.global_instructions
        for fn in self.functions.values():
            yield from fn.get_instructions()

    def __repr__(self) -> str:
        s = []
        for inst in self.preamble:
            s.append(repr(inst))
        for inst in self.global_instructions:
            s.append(repr(inst))
        for fn in self.functions.values():
            s.append(repr(fn))

        return "\n".join(s) + "\n"
