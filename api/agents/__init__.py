"""Knowledge responders for legal queries and documents."""

from api.agents.base import DocumentAnalysis, DocumentResponder, QueryAnswer, QueryResponder
from api.agents.case_law import CaseLawResponder
from api.agents.document_processing import DocumentProcessingResponder
from api.agents.reasoning import ReasoningResponder
from api.agents.research import ResearchResponder

__all__ = [
    "CaseLawResponder",
    "DocumentAnalysis",
    "DocumentProcessingResponder",
    "DocumentResponder",
    "QueryAnswer",
    "QueryResponder",
    "ReasoningResponder",
    "ResearchResponder",
]
