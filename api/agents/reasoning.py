"""Reasoning responder: templated answers for classified legal questions."""

from __future__ import annotations

import structlog

from api.agents.base import CachedResponder, QueryAnswer, QueryResponder
from api.agents.templates import select_query_template
from libs.models.firestore import QueryRecord

logger = structlog.get_logger(__name__)


class ReasoningResponder(CachedResponder, QueryResponder):
    """Answers a query from the template bundle for its query type."""

    cache_namespace = "reasoning"

    async def respond(self, query: QueryRecord) -> QueryAnswer:
        async def compute() -> QueryAnswer:
            template = select_query_template(query.query_type, query.query_text.lower())
            logger.info(
                "Answering query from template",
                query_id=query.query_id,
                query_type=query.query_type,
                reference_count=len(template.references),
            )
            return QueryAnswer(
                answer=template.answer,
                references=list(template.references),
                case_laws=list(template.case_laws),
            )

        return await self.cached(f"query_{query.query_id}", QueryAnswer, compute)
