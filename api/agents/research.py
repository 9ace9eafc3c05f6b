"""Research responder: statutes, regulations and case reports from Kenyan sources.

Results are simulated from a fixed library of sources and cached by topic,
statute section or case reference. Errors propagate to the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from api.agents.base import CachedResponder
from api.classifier import normalize
from libs.models.firestore import CaseLawEntry

logger = structlog.get_logger(__name__)

SOURCES = {
    "kenya_law": ("Kenya Law", "http://kenyalaw.org"),
    "national_council": ("National Council on the Administration of Justice", "http://www.ncaj.go.ke"),
    "judiciary": ("Judiciary of Kenya", "https://www.judiciary.go.ke"),
    "parliament": ("Parliament of Kenya", "http://www.parliament.go.ke"),
}


class ResearchSource(BaseModel):
    name: str
    url: str
    results_count: int = 0


class ResearchItem(BaseModel):
    """A statute, regulation or article found while researching a topic."""

    type: Literal["statute", "regulation", "article"]
    title: str
    url: str
    description: str
    chapter: str | None = None
    year: int | None = None
    author: str | None = None
    relevance: float = Field(0.0, ge=0.0, le=1.0)


class TopicResearch(BaseModel):
    topic: str
    keywords: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    sources: list[ResearchSource] = Field(default_factory=list)
    statutes: list[ResearchItem] = Field(default_factory=list)
    regulations: list[ResearchItem] = Field(default_factory=list)
    articles: list[ResearchItem] = Field(default_factory=list)


class StatuteResearch(BaseModel):
    statute_name: str
    section: str | None = None
    found: bool = False
    full_name: str | None = None
    url: str | None = None
    content: str = ""
    related_sections: list[str] = Field(default_factory=list)


class CaseLawResearch(BaseModel):
    reference: str
    found: bool = False
    cases: list[CaseLawEntry] = Field(default_factory=list)


PENAL_CODE_ITEM = ResearchItem(
    type="statute",
    title="Penal Code",
    chapter="Cap. 63",
    url="http://kenyalaw.org/kl/fileadmin/pdfdownloads/Acts/PenalCodeCap63.pdf",
    description="The primary criminal law statute in Kenya, defining criminal offenses and their punishments.",
    relevance=0.95,
)
CPC_ITEM = ResearchItem(
    type="statute",
    title="Criminal Procedure Code",
    chapter="Cap. 75",
    url="http://kenyalaw.org/kl/fileadmin/pdfdownloads/Acts/CriminalProcedureCodeCap75.pdf",
    description="Establishes the procedures for criminal cases in Kenya.",
    relevance=0.9,
)
PLEA_BARGAINING_ITEM = ResearchItem(
    type="regulation",
    title="Criminal Procedure (Plea Bargaining) Rules",
    year=2018,
    url="http://kenyalaw.org/kl/fileadmin/pdfdownloads/LegalNotices/2018/LN100_2018.pdf",
    description="The framework for plea bargaining in criminal cases.",
    relevance=0.7,
)
EVIDENCE_ACT_ITEM = ResearchItem(
    type="statute",
    title="Evidence Act",
    chapter="Cap. 80",
    url="http://kenyalaw.org/kl/fileadmin/pdfdownloads/Acts/EvidenceActCap80.pdf",
    description="Governs the admissibility of evidence in Kenyan courts.",
    relevance=0.95,
)
BAIL_GUIDELINES_ITEM = ResearchItem(
    type="regulation",
    title="Bail and Bond Policy Guidelines",
    year=2015,
    url="http://kenyalaw.org/kl/fileadmin/pdfdownloads/Bail_and_Bond_Policy_Guidelines.pdf",
    description="A framework for bail and bond decisions in Kenya.",
    relevance=0.95,
)
CONSTITUTION_ITEM = ResearchItem(
    type="statute",
    title="Constitution of Kenya",
    year=2010,
    url="http://kenyalaw.org/kl/fileadmin/pdfdownloads/Constitution_of_Kenya_2010.pdf",
    description="The supreme law of Kenya, containing fundamental rights and freedoms.",
    relevance=0.7,
)
JUSTICE_SYSTEM_ARTICLE = ResearchItem(
    type="article",
    title="Understanding the Criminal Justice System in Kenya",
    author="Judiciary of Kenya",
    url="https://www.judiciary.go.ke/resources/articles/understanding-criminal-justice-system",
    description="An overview of the criminal justice system in Kenya, including courts, procedures and rights of accused persons.",
    relevance=0.8,
)
BAIL_IMPLEMENTATION_ARTICLE = ResearchItem(
    type="article",
    title="Bail and Bond Guidelines Implementation",
    author="National Council on the Administration of Justice",
    url="https://www.judiciary.go.ke/resources/reports/bail-bond-guidelines-implementation",
    description="Report on the implementation of the Bail and Bond Policy Guidelines across Kenyan courts.",
    relevance=0.9,
)

MURUATETU_NOTE = (
    "Note: Following the Supreme Court decision in Francis Karioko Muruatetu & another v Republic [2017] eKLR, "
    "the mandatory death sentence was declared unconstitutional, giving judges discretion in sentencing."
)

# statute name fragment -> (full name, url, {section: (content, related sections)})
STATUTES = {
    "penal code": (
        "Penal Code, Chapter 63",
        PENAL_CODE_ITEM.url,
        {
            "203": (
                "Section 203. Murder.\nAny person who of malice aforethought causes death of another person by an "
                "unlawful act or omission is guilty of murder.",
                ["204", "205", "206", "207"],
            ),
            "204": (
                "Section 204. Punishment for murder.\nAny person who is convicted of murder shall be sentenced to "
                f"death.\n\n{MURUATETU_NOTE}",
                ["203", "205"],
            ),
            "296": (
                "Section 296. Robbery.\n(1) Any person who commits the felony of robbery is liable to imprisonment "
                "for fourteen years.\n(2) If the offender is armed with any dangerous or offensive weapon or "
                "instrument, or is in company with one or more other persons, or if, at or immediately before or "
                "immediately after the time of the robbery, he wounds, beats, strikes or uses any other personal "
                f"violence to any person, he shall be sentenced to death.\n\n{MURUATETU_NOTE}",
                ["295", "297", "298", "299"],
            ),
        },
    ),
    "criminal procedure code": ("Criminal Procedure Code, Chapter 75", CPC_ITEM.url, {}),
    "evidence act": ("Evidence Act, Chapter 80", EVIDENCE_ACT_ITEM.url, {}),
    "constitution": (
        "Constitution of Kenya, 2010",
        CONSTITUTION_ITEM.url,
        {
            "49": (
                "Article 49. Rights of arrested persons.\n(1) An arrested person has the right to be informed "
                "promptly of the reason for the arrest, to remain silent, to communicate with an advocate, to be "
                "brought before a court within twenty-four hours, and to be released on bond or bail, on reasonable "
                "conditions, pending a charge or trial, unless there are compelling reasons not to be released.",
                ["50", "51"],
            ),
        },
    ),
}

CASE_REPORTS = (
    (
        ("robbery", "violence", "296"),
        CaseLawEntry(
            citation="Joseph Mwangi v Republic, Criminal Appeal No. 32 of 2014",
            title="Joseph Mwangi v Republic",
            summary="Elements required to prove robbery with violence under Section 296(2) of the Penal Code.",
            court="Court of Appeal",
        ),
    ),
    (
        ("theft", "steal", "stealing"),
        CaseLawEntry(
            citation="John Kimani v Republic, Criminal Appeal No. 116 of 2010",
            title="John Kimani v Republic",
            summary="All elements of theft, including intention to permanently deprive, must be proved.",
            court="High Court",
        ),
    ),
    (
        ("assault", "harm", "injury"),
        CaseLawEntry(
            citation="Peter Ochieng v Republic, Criminal Appeal No. 78 of 2015",
            title="Peter Ochieng v Republic",
            summary="Actual bodily harm requires injury that is more than merely transient or trifling.",
            court="High Court",
        ),
    ),
    (
        ("sentence", "sentencing", "death", "mandatory"),
        CaseLawEntry(
            citation="Francis Karioko Muruatetu & another v Republic [2017] eKLR",
            title="Francis Karioko Muruatetu & another v Republic",
            summary="Mandatory death sentence declared unconstitutional",
            court="Supreme Court of Kenya",
            date="2017-12-14",
            url="http://kenyalaw.org/caselaw/cases/view/145409/",
        ),
    ),
    (
        ("conviction", "convictions", "previous"),
        CaseLawEntry(
            citation="Samuel Mwangi Ndung'u v Republic [2020] eKLR",
            title="Samuel Mwangi Ndung'u v Republic",
            summary="Previous convictions alone are not sufficient compelling reasons to deny bail",
            court="Court of Appeal",
        ),
    ),
)


def topic_cache_key(topic: str, keywords: list[str]) -> str:
    normalized_topic = "_".join(topic.lower().split())
    normalized_keywords = "_".join(sorted(k.lower() for k in keywords))
    return f"{normalized_topic}_{normalized_keywords or 'no_keywords'}"


class ResearchResponder(CachedResponder):
    """Looks up statutes, regulations, articles and case reports."""

    cache_namespace = "research"

    async def research_topic(self, topic: str, keywords: list[str] | None = None) -> TopicResearch:
        """Research a legal topic across Kenya Law and the Judiciary.

        Args:
            topic: Free-text topic, e.g. "criminal bail".
            keywords: Additional keywords to refine the search.

        Returns:
            TopicResearch grouping statutes, regulations and articles.
        """
        keywords = list(keywords or [])

        async def compute() -> TopicResearch:
            topic_lower = topic.lower()
            kenya_law = self._kenya_law_results(topic_lower)
            judiciary = self._judiciary_results(topic_lower)

            logger.info("Researched topic", topic=topic, keywords=keywords, result_count=len(kenya_law) + len(judiciary))
            return TopicResearch(
                topic=topic,
                keywords=keywords,
                sources=[
                    ResearchSource(name=SOURCES["kenya_law"][0], url=SOURCES["kenya_law"][1], results_count=len(kenya_law)),
                    ResearchSource(name=SOURCES["judiciary"][0], url=SOURCES["judiciary"][1], results_count=len(judiciary)),
                ],
                statutes=[item for item in kenya_law if item.type == "statute"],
                regulations=[item for item in kenya_law if item.type == "regulation"],
                articles=judiciary,
            )

        return await self.cached(topic_cache_key(topic, keywords), TopicResearch, compute)

    async def research_statute(self, statute_name: str, section: str | None = None) -> StatuteResearch:
        """Fetch a statute, or one section of it."""

        async def compute() -> StatuteResearch:
            name = statute_name.lower()
            for fragment, (full_name, url, sections) in STATUTES.items():
                if fragment not in name:
                    continue
                if section is None:
                    return StatuteResearch(
                        statute_name=statute_name,
                        found=True,
                        full_name=full_name,
                        url=url,
                        content=f"{full_name}. Full text available at {url}",
                        related_sections=sorted(sections),
                    )
                if section in sections:
                    content, related = sections[section]
                    return StatuteResearch(
                        statute_name=statute_name,
                        section=section,
                        found=True,
                        full_name=full_name,
                        url=url,
                        content=content,
                        related_sections=related,
                    )
                return StatuteResearch(statute_name=statute_name, section=section, full_name=full_name, url=url)

            logger.info("Statute not in research library", statute=statute_name, section=section)
            return StatuteResearch(statute_name=statute_name, section=section)

        key = f"statute_{statute_name}_{section or 'full'}"
        return await self.cached(key, StatuteResearch, compute)

    async def research_case_law(self, reference: str) -> CaseLawResearch:
        """Search case reports by citation fragment or keywords."""

        async def compute() -> CaseLawResearch:
            terms = set(normalize(reference).split())
            reference_lower = reference.lower()
            cases = [
                case
                for keywords, case in CASE_REPORTS
                if terms.intersection(keywords) or reference_lower in case.citation.lower()
            ]
            logger.info("Researched case law", reference=reference, found=len(cases))
            return CaseLawResearch(reference=reference, found=bool(cases), cases=cases)

        key = "caselaw_" + "_".join(reference.lower().split())
        return await self.cached(key, CaseLawResearch, compute)

    @staticmethod
    def _kenya_law_results(topic: str) -> list[ResearchItem]:
        results = []
        if "penal" in topic or "criminal" in topic:
            results.extend([PENAL_CODE_ITEM, CPC_ITEM, PLEA_BARGAINING_ITEM])
        if "evidence" in topic:
            results.append(EVIDENCE_ACT_ITEM)
        if "bail" in topic or "bond" in topic:
            results.append(BAIL_GUIDELINES_ITEM)
        if not results:
            results.append(CONSTITUTION_ITEM)
        return results

    @staticmethod
    def _judiciary_results(topic: str) -> list[ResearchItem]:
        results = [JUSTICE_SYSTEM_ARTICLE]
        if "bail" in topic or "bond" in topic:
            results.append(BAIL_IMPLEMENTATION_ARTICLE)
        return results
