"""Document-processing responder: templated analysis per document type."""

from __future__ import annotations

import structlog

from api.agents.base import CachedResponder, DocumentAnalysis, DocumentResponder
from api.agents.templates import select_document_template
from libs.models.firestore import DocumentRecord

logger = structlog.get_logger(__name__)


class DocumentProcessingResponder(CachedResponder, DocumentResponder):
    """Produces an analysis and five recommendations for a document."""

    cache_namespace = "documents"

    async def analyze(self, document: DocumentRecord) -> DocumentAnalysis:
        async def compute() -> DocumentAnalysis:
            template = select_document_template(document.document_type)
            logger.info(
                "Analyzing document from template",
                document_id=document.document_id,
                document_type=document.document_type,
            )
            return DocumentAnalysis(
                analysis=template.analysis.format(title=document.title),
                recommendations=list(template.recommendations),
            )

        return await self.cached(f"document_{document.document_id}", DocumentAnalysis, compute)
