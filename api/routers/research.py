"""Legal research lookups: statutes, topics and reported decisions.

Results come from the research library through the same cached responders
the background processing uses, so repeated lookups are served from cache.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from api.auth import User, get_current_user
from api.dependencies import Services, get_services
from api.errors import ResponderFailure
from api.models import CaseLawResponse, StatuteResponse, TopicResearchResponse

logger = structlog.get_logger(__name__)
router = APIRouter()


def _lookup_failed(request: Request, e: ResponderFailure) -> HTTPException:
    logger.error(
        "Research lookup failed",
        request_id=getattr(request.state, "request_id", "unknown"),
        path=request.url.path,
        error=str(e),
    )
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Research lookup failed")


@router.get("/research/statute", response_model=StatuteResponse, tags=["Research"])
async def get_statute(
    request: Request,
    name: str = Query(..., min_length=1, max_length=200, description="Statute name, e.g. Penal Code"),
    section: str | None = Query(None, max_length=20, description="Section number, e.g. 296"),
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> StatuteResponse:
    """Look up a statute, or one section of it.

    An unknown statute or section is answered with ``found: false``.

    Example:
        ```bash
        curl "http://localhost:8000/api/research/statute?name=Penal%20Code&section=296" \\
          -H "Authorization: Bearer $TOKEN"
        ```
    """
    try:
        research = await services.research.research_statute(name.strip(), section.strip() if section else None)
    except ResponderFailure as e:
        raise _lookup_failed(request, e)
    return StatuteResponse.from_research(research)


@router.get("/research/topic", response_model=TopicResearchResponse, tags=["Research"])
async def get_topic(
    request: Request,
    topic: str = Query(..., min_length=1, max_length=200),
    keywords: list[str] | None = Query(None),
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> TopicResearchResponse:
    """Group statutes, regulations and articles related to a topic."""
    try:
        research = await services.research.research_topic(topic.strip(), keywords)
    except ResponderFailure as e:
        raise _lookup_failed(request, e)
    return TopicResearchResponse.from_research(research)


@router.get("/case-law", response_model=CaseLawResponse, tags=["Research"])
async def get_case_law(
    citation: str = Query(..., min_length=2, max_length=300, description="Full citation or a fragment of it"),
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> CaseLawResponse:
    """Find a reported decision by citation.

    Raises:
        HTTPException: 404 if no decision matches
    """
    case = await services.case_law.find_by_citation(citation.strip())
    if case is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No case law found for: {citation}")
    return CaseLawResponse(case=case)
