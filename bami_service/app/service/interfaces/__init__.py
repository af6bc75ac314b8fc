from .case_repository import CaseRepository
from .ai_collaborator import AbstractAICollaborator

__all__ = ["CaseRepository", "AbstractAICollaborator"]
