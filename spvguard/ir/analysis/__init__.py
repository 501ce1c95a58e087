from .analysis import IRAnalysesCache, IRAnalysis
from .constant_manager import ConstantManager
from .def_use import DefUseAnalysis
from .type_manager import TypeManager
