"""
Custom exceptions for the BAMI tracker service.
"""

class BaseBamiServiceError(Exception):
    """Base class for exceptions in this module."""
    pass

class CaseNotFoundError(BaseBamiServiceError):
    """Raised when an operation references an unknown case id."""
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case '{case_id}' not found.")

class EmptyUploadError(BaseBamiServiceError, ValueError):
    """Raised when document intake receives no files."""
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"No files were provided for case '{case_id}'.")

class UploadLimitExceededError(BaseBamiServiceError):
    """Raised when an upload batch breaks the configured file count or size limits."""
    pass

class AICollaboratorError(BaseBamiServiceError):
    """Raised when the AI collaborator cannot produce a result."""
    pass

class ConfigurationError(AICollaboratorError):
    """Raised when a configuration issue is detected."""
    pass

class SinkClosedError(BaseBamiServiceError):
    """Raised when a frame is written to a sink that has already been closed."""
    pass
