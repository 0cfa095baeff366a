"""defermistake - report functions evaluated too early in Go defer statements."""
from .config import __version__
from .analyzer.analysis import DeferMistakeAnalyzer, analyze
from .analyzer.detector import Diagnostic
from .analyzer.registry import FlaggedFunctionRegistry, FunctionIdentity, DEFAULT_REGISTRY

__all__ = [
    '__version__',
    'DeferMistakeAnalyzer',
    'analyze',
    'Diagnostic',
    'FlaggedFunctionRegistry',
    'FunctionIdentity',
    'DEFAULT_REGISTRY',
]
