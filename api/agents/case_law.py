"""Case-law responder: related decisions for queries and documents.

Lookups never fail the caller. Any error is logged and an empty list is
returned, since case-law enrichment is optional for a result.
"""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, Field

from api.agents.base import CachedResponder
from api.agents.research import ResearchResponder
from api.classifier import extract_keywords
from libs.caching.store import CacheStore
from libs.models.firestore import CaseLawEntry, DocumentRecord, DocumentType, QueryRecord, QueryType

logger = structlog.get_logger(__name__)


class CaseLawResult(BaseModel):
    cases: list[CaseLawEntry] = Field(default_factory=list)


# category -> keyword -> decisions
CASE_LAW_DATABASE: dict[str, dict[str, tuple[CaseLawEntry, ...]]] = {
    "criminal": {
        "murder": (
            CaseLawEntry(
                citation="Francis Karioko Muruatetu & another v Republic [2017] eKLR",
                title="Francis Karioko Muruatetu & another v Republic",
                summary="Mandatory death sentence declared unconstitutional",
                court="Supreme Court of Kenya",
                date="2017-12-14",
                url="http://kenyalaw.org/caselaw/cases/view/145409/",
            ),
            CaseLawEntry(
                citation="Joseph Mwangi Gitau v Republic [2020] eKLR",
                title="Joseph Mwangi Gitau v Republic",
                summary="Elements required to prove murder clarified",
                court="Court of Appeal",
                date="2020-03-20",
                url="http://kenyalaw.org/caselaw/cases/view/189765/",
            ),
        ),
        "robbery": (
            CaseLawEntry(
                citation="Joseph Lendrix Waswa v Republic [2014] eKLR",
                title="Joseph Lendrix Waswa v Republic",
                summary="Elements of robbery with violence under Section 296(2)",
                court="Court of Appeal",
                date="2014-10-31",
                url="http://kenyalaw.org/caselaw/cases/view/102347/",
            ),
        ),
    },
    "constitutional": {
        "bail": (
            CaseLawEntry(
                citation="Republic v Joktan Mayende & 4 others [2018] eKLR",
                title="Republic v Joktan Mayende & 4 others",
                summary="Bail is a constitutional right, not a privilege",
                court="High Court",
                date="2018-03-23",
                url="http://kenyalaw.org/caselaw/cases/view/148746/",
            ),
            CaseLawEntry(
                citation="Aboud Rogo Mohammed & another v Republic [2011] eKLR",
                title="Aboud Rogo Mohammed & another v Republic",
                summary="Burden of proving compelling reasons to deny bail rests with prosecution",
                court="High Court",
                date="2011-05-17",
                url="http://kenyalaw.org/caselaw/cases/view/77060/",
            ),
        ),
    },
    "civil": {},
}

CATEGORIES_BY_TYPE = {
    QueryType.LEGAL_DEFINITION.value: ("criminal", "constitutional"),
    QueryType.PROCEDURAL_GUIDANCE.value: ("criminal", "constitutional"),
    "criminal": ("criminal", "constitutional"),
    "constitutional": ("constitutional", "criminal"),
    "rights": ("constitutional", "criminal"),
    "civil": ("civil", "constitutional"),
}
ALL_CATEGORIES = ("criminal", "constitutional", "civil")

# Bail documents argue constitutional rights first.
DOCUMENT_CATEGORIES = {
    DocumentType.BAIL_APPLICATION.value: ("constitutional", "criminal"),
}


def categories_for(kind: str | None) -> tuple[str, ...]:
    return CATEGORIES_BY_TYPE.get(kind or "", ALL_CATEGORIES)


def dedupe_by_citation(cases) -> list[CaseLawEntry]:
    """Drop repeated citations, keeping the first occurrence and the order."""
    seen = set()
    unique = []
    for case in cases:
        if case.citation in seen:
            continue
        seen.add(case.citation)
        unique.append(case)
    return unique


def citation_cache_key(citation: str) -> str:
    return "citation_" + re.sub(r"[\[\]/\s]", "_", citation)


class CaseLawResponder(CachedResponder):
    """Finds decisions relevant to a query, a document or a citation."""

    cache_namespace = "case_law"

    def __init__(self, cache: CacheStore, research: ResearchResponder):
        super().__init__(cache)
        self.research = research

    async def find_for_query(self, query: QueryRecord) -> list[CaseLawEntry]:
        try:
            keywords = query.keywords or extract_keywords(query.query_text)

            async def compute() -> CaseLawResult:
                return CaseLawResult(cases=await self.search(keywords, categories_for(query.query_type)))

            result = await self.cached(f"query_{query.query_id}", CaseLawResult, compute)
            return result.cases
        except Exception as e:
            logger.error("Case law lookup failed for query", query_id=query.query_id, error=str(e), exc_info=True)
            return []

    async def find_for_document(self, document: DocumentRecord) -> list[CaseLawEntry]:
        try:
            keywords = extract_keywords(f"{document.title} {document.description or ''}")
            categories = DOCUMENT_CATEGORIES.get(document.document_type, ALL_CATEGORIES)

            async def compute() -> CaseLawResult:
                return CaseLawResult(cases=await self.search(keywords, categories))

            result = await self.cached(f"document_{document.document_id}", CaseLawResult, compute)
            return result.cases
        except Exception as e:
            logger.error(
                "Case law lookup failed for document", document_id=document.document_id, error=str(e), exc_info=True
            )
            return []

    async def find_by_citation(self, citation: str) -> CaseLawEntry | None:
        try:
            async def compute() -> CaseLawResult:
                needle = citation.lower()
                matches = [
                    case
                    for category in CASE_LAW_DATABASE.values()
                    for cases in category.values()
                    for case in cases
                    if needle in case.citation.lower()
                ]
                if not matches:
                    research = await self.research.research_case_law(citation)
                    matches = research.cases
                return CaseLawResult(cases=dedupe_by_citation(matches)[:1])

            result = await self.cached(citation_cache_key(citation), CaseLawResult, compute)
            return result.cases[0] if result.cases else None
        except Exception as e:
            logger.error("Case law lookup failed for citation", citation=citation, error=str(e), exc_info=True)
            return None

    async def search(self, keywords: list[str], categories: tuple[str, ...]) -> list[CaseLawEntry]:
        """Match keywords against the database, falling back to research."""
        found = []
        for category in categories:
            by_keyword = CASE_LAW_DATABASE.get(category, {})
            for keyword in keywords:
                found.extend(by_keyword.get(keyword, ()))

        if not found and keywords:
            research = await self.research.research_case_law(" ".join(keywords[:3]))
            if research.found:
                found.extend(research.cases)

        return dedupe_by_citation(found)
