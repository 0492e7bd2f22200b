"""ffigen: foreign-language bindings for every crate in a compiled library."""

__version__ = "0.1.0"

from .errors import FfigenError
from .library_mode import BindingGenerator, Source, calc_cdylib_name, generate_bindings

__all__ = [
    "BindingGenerator",
    "FfigenError",
    "Source",
    "__version__",
    "calc_cdylib_name",
    "generate_bindings",
]
