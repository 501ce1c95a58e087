import pytest

from spvguard.ir.analysis import DefUseAnalysis, IRAnalysesCache
from spvguard.ir.check_module import (
    BasicBlockNotTerminated,
    IdNotDefined,
    IdRedefined,
    check_module,
    find_semantic_errors,
)
from spvguard.ir.parser import parse_module
from tests.ir_utils import find_id

VALID = """
OpCapability Shader
OpMemoryModel Logical GLSL450
OpEntryPoint GLCompute %main "main"
OpName %main "main"
%uint = OpTypeInt 32 0
%bool = OpTypeBool
%fnty = OpTypeFunction %uint %uint
%uint_1 = OpConstant %uint 1
%main = OpFunction %uint None %fnty
%x = OpFunctionParameter %uint
%entry = OpLabel
%c = OpULessThan %bool %x %uint_1
OpBranchConditional %c %exit %then
%then = OpLabel
%y = OpFunctionCall %uint %helper %x
OpBranch %exit
%exit = OpLabel
%r = OpPhi %uint %x %entry %y %then
OpReturnValue %r
OpFunctionEnd
%helper = OpFunction %uint None %fnty
%p = OpFunctionParameter %uint
%h = OpLabel
OpReturnValue %p
OpFunctionEnd
"""


def test_valid_module():
    ctx = parse_module(VALID)
    assert find_semantic_errors(ctx) == []
    check_module(ctx)


def test_unterminated_block():
    source = """
    %uint = OpTypeInt 32 0
    %fnty = OpTypeFunction %uint
    %f = OpFunction %uint None %fnty
    %entry = OpLabel
    %r = OpUndef %uint
    OpFunctionEnd
    """
    errors = find_semantic_errors(parse_module(source))
    assert len(errors) == 1
    assert isinstance(errors[0], BasicBlockNotTerminated)


def test_use_before_definition():
    source = """
    %uint = OpTypeInt 32 0
    %fnty = OpTypeFunction %uint
    %f = OpFunction %uint None %fnty
    %entry = OpLabel
    %a = OpIAdd %uint %b %b
    %b = OpUndef %uint
    OpReturnValue %a
    OpFunctionEnd
    """
    ctx = parse_module(source)
    errors = find_semantic_errors(ctx)
    assert len(errors) == 2
    assert all(isinstance(e, IdNotDefined) for e in errors)
    assert all(e.id_ == find_id(ctx, "b") for e in errors)


def test_global_use_before_definition():
    source = """
    %uint_1 = OpConstant %uint 1
    %uint = OpTypeInt 32 0
    """
    ctx = parse_module(source)
    errors = find_semantic_errors(ctx)
    assert len(errors) == 1
    assert isinstance(errors[0], IdNotDefined)
    assert errors[0].id_ == find_id(ctx, "uint")


def test_undefined_in_preamble():
    errors = find_semantic_errors(parse_module('OpName %nowhere "x"'))
    assert len(errors) == 1
    assert isinstance(errors[0], IdNotDefined)


def test_redefinition():
    source = """
    %uint = OpTypeInt 32 0
    %fnty = OpTypeFunction %uint
    %f = OpFunction %uint None %fnty
    %entry = OpLabel
    %a = OpUndef %uint
    %a = OpUndef %uint
    OpReturnValue %a
    OpFunctionEnd
    """
    ctx = parse_module(source)
    errors = find_semantic_errors(ctx)
    assert len(errors) == 1
    assert isinstance(errors[0], IdRedefined)
    assert "defined more than once" in str(errors[0])


def test_check_module_raises_group():
    source = """
    %uint = OpTypeInt 32 0
    %fnty = OpTypeFunction %uint
    %f = OpFunction %uint None %fnty
    %entry = OpLabel
    %a = OpIAdd %uint %b %b
    OpFunctionEnd
    """
    with pytest.raises(ExceptionGroup) as excinfo:
        check_module(parse_module(source))

    errors = excinfo.value.exceptions
    assert len(errors) == 3
    assert sum(isinstance(e, IdNotDefined) for e in errors) == 2
    assert sum(isinstance(e, BasicBlockNotTerminated) for e in errors) == 1


def test_def_use():
    ctx = parse_module(VALID)
    def_use = IRAnalysesCache(ctx).request_analysis(DefUseAnalysis)

    x = find_id(ctx, "x")
    assert def_use.get_definition(x).opcode == "OpFunctionParameter"
    assert [inst.opcode for inst in def_use.get_uses(x)] == [
        "OpULessThan",
        "OpFunctionCall",
        "OpPhi",
    ]

    # result types are uses too
    uint_users = {inst.opcode for inst in def_use.get_uses(find_id(ctx, "uint"))}
    assert {"OpConstant", "OpFunction", "OpFunctionParameter", "OpPhi"} <= uint_users

    main = find_id(ctx, "main")
    assert [inst.opcode for inst in def_use.get_uses(main)] == ["OpEntryPoint", "OpName"]

    assert def_use.get_uses(find_id(ctx, "r"))
    assert not def_use.get_uses(find_id(ctx, "h"))
    assert def_use.is_defined(find_id(ctx, "r"))
    assert def_use.redefinitions == []
