from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version

from spvguard.ir import optimize_module, optimize_source, parse_module

__version__: str
try:
    __version__ = _version(__name__)
except PackageNotFoundError:
    from spvguard.version import version

    __version__ = version
