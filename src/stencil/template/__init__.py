"""Stencil Template package — parsed templates and their resolution runtime.

Re-exports the public symbols so that ``from stencil.template import Template``
works without reaching into submodules.

"""

from stencil.template.core import Template
from stencil.template.helpers import UNDEFINED, resolve_path, to_output
from stencil.template.loop_context import LoopContext
from stencil.template.scope import Scope

__all__ = [
    "UNDEFINED",
    "LoopContext",
    "Scope",
    "Template",
    "resolve_path",
    "to_output",
]
