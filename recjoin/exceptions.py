"""Custom exceptions for the recjoin merge pipeline"""

class RecJoinError(Exception):
    """Base exception for all recjoin errors"""
    def __init__(self, message: str, module: str = None):
        self.message = message
        self.module = module or "unknown"
        super().__init__(f"[{self.module}] {self.message}")


class RepairError(RecJoinError):
    """Repairing a truncated segment failed"""
    def __init__(self, message: str, module: str = None):
        super().__init__(f"Repair failed: {message}", module)


class DirectoryCreateError(RecJoinError):
    """The output directory of a merge job could not be created"""


class OutputPermissionError(RecJoinError):
    """Output files cannot be created; aborts the whole run"""


class DependencyError(RecJoinError):
    """Missing required external tools"""


class ConfigurationError(RecJoinError):
    """Error in configuration/setup"""
