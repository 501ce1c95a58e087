from .base_pass import IRPass, PassStatus
from .optimization_barrier import OptimizationBarrierPass
from .pass_manager import PASS_REGISTRY, PassManager, get_pass
