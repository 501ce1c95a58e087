from typing import Optional

from spvguard.ir.analysis.analysis import IRAnalysis
from spvguard.ir.basicblock import IRId, IRInstruction, IROperand
from spvguard.utils import OrderedSet


class DefUseAnalysis(IRAnalysis):
    """
    Maps every id of the module to the instruction defining it and to the
    instructions using it (as an operand or as their result type).
    """

    _defs: dict[IRId, IRInstruction]
    _uses: dict[IRId, OrderedSet[IRInstruction]]
    redefinitions: list[IRInstruction]

    def analyze(self):
        self._defs = {}
        self._uses = {}
        self.redefinitions = []

        for inst in self.ctx.get_instructions():
            for op in inst.get_used_ids():
                self._uses.setdefault(op, OrderedSet()).add(inst)

            if inst.result_id is None:
                continue
            if inst.result_id in self._defs:
                self.redefinitions.append(inst)
                continue
            self._defs[inst.result_id] = inst

    def get_definition(self, op: IROperand) -> Optional[IRInstruction]:
        if not isinstance(op, IRId):
            return None
        return self._defs.get(op)

    def get_uses(self, op: IRId) -> OrderedSet[IRInstruction]:
        return self._uses.get(op, OrderedSet())

    def is_defined(self, op: IRId) -> bool:
        return op in self._defs

    def invalidate(self):
        del self._defs
        del self._uses
        del self.redefinitions
