class ScriptError(Exception):
    """Base class for script failures; the message is shown to the user."""


class ScriptSyntaxError(ScriptError):
    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        if line:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class ScriptRuntimeError(ScriptError):
    pass


class ScriptTimeout(ScriptError):
    def __init__(self, message: str = "Script took too long to execute"):
        super().__init__(message)
