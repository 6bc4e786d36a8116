"""Function discovery and binding generation."""

from seamrpc.compiler.analyzer import DiscoveryResult, FunctionDiscoverer, ScanError, ScanOptions, discover_functions
from seamrpc.compiler.build import BuildReport, build_bindings, build_from_config
from seamrpc.compiler.generator import BindingGenerator, GeneratedBindings, GeneratorOptions

__all__ = [
    "BindingGenerator",
    "BuildReport",
    "DiscoveryResult",
    "FunctionDiscoverer",
    "GeneratedBindings",
    "GeneratorOptions",
    "ScanError",
    "ScanOptions",
    "build_bindings",
    "build_from_config",
    "discover_functions",
]
