"""
Data model of the object graph.

Keys, declared shapes, parameter and result descriptors and the per-scope
dependency graph. Nothing here depends on scopes or containers.
"""

from .graph import GraphHolder, find_cycle, is_acyclic
from .info import Input, Output, ProvideInfo
from .keys import Key
from .params import ParamGroupedSlice, ParamList, ParamObject, ParamSingle, build_param_list
from .results import (
    ResultGrouped,
    ResultList,
    ResultObject,
    ResultOptions,
    ResultSingle,
    build_result_list,
)
from .shape import HAS_DEFAULT, MISSING, FunctionShape, Slot

__all__ = [
    "HAS_DEFAULT",
    "MISSING",
    "FunctionShape",
    "GraphHolder",
    "Input",
    "Key",
    "Output",
    "ParamGroupedSlice",
    "ParamList",
    "ParamObject",
    "ParamSingle",
    "ProvideInfo",
    "ResultGrouped",
    "ResultList",
    "ResultObject",
    "ResultOptions",
    "ResultSingle",
    "Slot",
    "build_param_list",
    "build_result_list",
    "find_cycle",
    "is_acyclic",
]
