import json
import math
from typing import Optional

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput

from spvguard.exceptions import InvalidModule, ParserException
from spvguard.ir.basicblock import (
    PREAMBLE_OPCODES,
    IRBasicBlock,
    IREnumerant,
    IRId,
    IRInstruction,
    IRLiteral,
    IROperand,
    IRString,
    has_result_type,
)
from spvguard.ir.context import IRContext
from spvguard.ir.function import IRFunction
from spvguard.settings import MAX_ID_WORD, Settings

SPV_GRAMMAR = r"""
    %import common.ESCAPED_STRING
    %import common.WS_INLINE

    COMMENT: ";" /[^\n]*/

    start: _NL* (statement _NL+)*

    statement: assignment | instruction
    assignment: ID "=" instruction
    instruction: OPCODE operand*

    operand: ID | HEX_FLOAT | HEX | FLOAT | INT | WORD | ESCAPED_STRING

    ID: "%" /[A-Za-z0-9_]+/
    OPCODE.2: /Op[A-Za-z0-9_]+/
    WORD: /[A-Za-z_][A-Za-z0-9_|]*/
    HEX_FLOAT.3: /-?0x[0-9a-fA-F]+(\.[0-9a-fA-F]*)?[pP][-+]?[0-9]+/
    HEX.2: /-?0x[0-9a-fA-F]+/
    FLOAT.1: /-?[0-9]+(\.[0-9]*([eE][-+]?[0-9]+)?|[eE][-+]?[0-9]+)/
    INT: /-?[0-9]+/
    _NL: /(\r?\n)+/

    %ignore WS_INLINE
    %ignore COMMENT
    """

SPV_PARSER = Lark(SPV_GRAMMAR, parser="lalr")


class _IdRef:
    """An id as it is spelled in the source, before numbering."""

    def __init__(self, name: str) -> None:
        self.name = name


class _RawInstruction:
    def __init__(
        self, opcode: str, operands: list, result: Optional[_IdRef] = None, line: int = None
    ) -> None:
        self.opcode = opcode
        self.operands = operands
        self.result = result
        self.line = line


def _hex_float(text: str) -> float:
    # spirv-dis spells infinities and NaNs of wide types with an exponent
    # past the double range, e.g. 0x1p+1024
    try:
        return float.fromhex(text)
    except OverflowError:
        return -math.inf if text.startswith("-") else math.inf


class SpvTransformer(Transformer):
    def start(self, children) -> list[_RawInstruction]:
        return children

    def statement(self, children) -> _RawInstruction:
        return children[0]

    def assignment(self, children) -> _RawInstruction:
        result, inst = children
        inst.result = _IdRef(str(result)[1:])
        return inst

    def instruction(self, children) -> _RawInstruction:
        opcode, *operands = children
        assert isinstance(opcode, Token)
        return _RawInstruction(str(opcode), operands, line=opcode.line)

    def operand(self, children):
        tok = children[0]
        match tok.type:
            case "ID":
                return _IdRef(str(tok)[1:])
            case "HEX":
                return IRLiteral(int(str(tok), 16))
            case "HEX_FLOAT":
                return IRLiteral(_hex_float(str(tok)), str(tok))
            case "FLOAT":
                return IRLiteral(float(str(tok)), str(tok))
            case "INT":
                return IRLiteral(int(str(tok)))
            case "WORD":
                return IREnumerant(str(tok))
            case "ESCAPED_STRING":
                return IRString(json.loads(str(tok)))
        raise ParserException(f"unexpected token {tok}", tok.line, tok.column)  # pragma: nocover


def _iter_id_refs(raw_insts: list[_RawInstruction]):
    for raw in raw_insts:
        if raw.result is not None:
            yield raw.result, raw.line
        for op in raw.operands:
            if isinstance(op, _IdRef):
                yield op, raw.line


def _number_ids(raw_insts: list[_RawInstruction]) -> dict[str, IRId]:
    """
    Assign a numeric id to every name. Numeric names keep their number,
    the other names take the lowest free numbers in order of appearance.
    """
    ids: dict[str, IRId] = {}
    taken: set[int] = set()

    for ref, line in _iter_id_refs(raw_insts):
        if not ref.name.isdigit():
            continue
        value = int(ref.name)
        if not 0 < value <= MAX_ID_WORD:
            raise ParserException(f"id out of range: %{ref.name}", line)
        ids[ref.name] = IRId(value)
        taken.add(value)

    next_value = 1
    for ref, _ in _iter_id_refs(raw_insts):
        if ref.name in ids:
            continue
        while next_value in taken:
            next_value += 1
        ids[ref.name] = IRId(next_value, ref.name)
        taken.add(next_value)

    return ids


def _make_instruction(raw: _RawInstruction, ids: dict[str, IRId]) -> IRInstruction:
    operands: list[IROperand] = [
        ids[op.name] if isinstance(op, _IdRef) else op for op in raw.operands
    ]

    result_id = None
    type_id = None
    if raw.result is not None:
        result_id = ids[raw.result.name]
        if has_result_type(raw.opcode):
            if len(operands) == 0 or not isinstance(operands[0], IRId):
                raise ParserException(f"{raw.opcode} requires a result type id", raw.line)
            type_id = operands.pop(0)

    return IRInstruction(raw.opcode, operands, type_id=type_id, result_id=result_id)


def _build_context(raw_insts: list[_RawInstruction], settings: Optional[Settings]) -> IRContext:
    ctx = IRContext(settings)
    ids = _number_ids(raw_insts)
    for id_ in ids.values():
        ctx.reserve_id(id_)

    fn: Optional[IRFunction] = None
    bb: Optional[IRBasicBlock] = None

    for raw in raw_insts:
        inst = _make_instruction(raw, ids)

        if inst.opcode == "OpFunction":
            if fn is not None:
                raise ParserException("OpFunction inside of a function", raw.line)
            if inst.result_id is None:
                raise ParserException("OpFunction requires a result id", raw.line)
            if inst.result_id in ctx.functions:
                raise InvalidModule(f"function {inst.result_id} defined twice", raw.line)
            fn = IRFunction(inst)
            ctx.add_function(fn)
            bb = None
            continue

        if inst.opcode == "OpFunctionEnd":
            if fn is None:
                raise ParserException("OpFunctionEnd outside of a function", raw.line)
            fn = None
            bb = None
            continue

        if fn is None:
            if inst.opcode in PREAMBLE_OPCODES:
                ctx.add_preamble_instruction(inst)
            else:
                ctx.add_global_instruction(inst)
            continue

        if inst.opcode == "OpFunctionParameter":
            if bb is not None:
                raise ParserException("OpFunctionParameter after the first block", raw.line)
            fn.add_param(inst)
            continue

        if inst.opcode == "OpLabel":
            if inst.result_id is None:
                raise ParserException("OpLabel requires a result id", raw.line)
            if fn.has_basic_block(inst.result_id):
                raise InvalidModule(f"block {inst.result_id} defined twice", raw.line)
            bb = IRBasicBlock(inst.result_id, fn)
            fn.append_basic_block(bb)
            continue

        if bb is None:
            raise ParserException(f"{inst.opcode} outside of a basic block", raw.line)
        # bypass the terminator check, unterminated blocks are for
        # check_module to report
        inst.parent = bb
        bb.instructions.append(inst)

    if fn is not None:
        raise ParserException(f"missing OpFunctionEnd for function {fn.result_id}")

    return ctx


def parse_module(source: str, settings: Optional[Settings] = None) -> IRContext:
    try:
        tree = SPV_PARSER.parse(source + "\n")
    except UnexpectedInput as e:
        msg = str(e).strip().splitlines()[0]
        raise ParserException(msg, e.line, e.column) from e

    raw_insts = SpvTransformer().transform(tree)
    return _build_context(raw_insts, settings)
