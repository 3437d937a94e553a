"""
A small interpreter for the JavaScript subset used by widget scripts.

Scripts see the bound data as ``$`` plus an allow-listed set of globals;
nothing from the Python side is reachable.
"""

from designer.script.errors import ScriptError, ScriptRuntimeError, ScriptSyntaxError, ScriptTimeout
from designer.script.sandbox import ScriptSandbox, declared_names

__all__ = [
    "ScriptError",
    "ScriptRuntimeError",
    "ScriptSyntaxError",
    "ScriptTimeout",
    "ScriptSandbox",
    "declared_names",
]
