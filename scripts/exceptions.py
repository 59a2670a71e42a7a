"""
Script Exceptions

Exceptions raised while compiling or decompiling tapscripts.
"""


class ScriptError(Exception):
    """Base exception for script handling errors."""
    pass


class ScriptDecodeError(ScriptError):
    """Raised when script bytes cannot be decompiled."""
    pass
