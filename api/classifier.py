"""Keyword classification for queries, documents and WhatsApp messages.

Every keyword table used by the service lives here. Each classifier walks an
ordered rule list and returns the first match, falling back to a default
tag, so classification is total and deterministic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from libs.models.firestore import DocumentType, QueryType


class ConversationIntent(str, Enum):
    DOCUMENT_REFERENCE = "document_reference"
    GREETING = "greeting"
    HELP = "help"
    ARREST_QUERY = "arrest_query"
    BAIL_QUERY = "bail_query"
    COURT_QUERY = "court_query"
    LAWYER_QUERY = "lawyer_query"
    RIGHTS_QUERY = "rights_query"
    GENERAL_QUERY = "general_query"


@dataclass(frozen=True)
class Rule:
    """One row of a classification table."""

    pattern: re.Pattern
    tag: Enum
    intent: str

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass
class Classification:
    """Result of classifying a piece of text."""

    category: Enum
    intent: str
    keywords: list[str] = field(default_factory=list)


def _rule(pattern: str, tag: Enum, intent: str) -> Rule:
    return Rule(re.compile(pattern), tag, intent)


COMMON_WORDS = frozenset(
    """
    the and or a an in on at to for with by about as of from is are was were be been being
    have has had do does did will would should could can may might must shall
    """.split()
)

LEGAL_KEYWORDS = (
    "murder", "robbery", "theft", "assault", "bail", "bond", "arrest", "court", "trial",
    "appeal", "sentence", "evidence", "witness", "prosecution", "defense", "rights",
    "constitution", "penal", "criminal",
)

QUERY_RULES = (
    _rule(r"\b(what is|what are|define|definition|meaning of|means)\b", QueryType.LEGAL_DEFINITION, "definition"),
    _rule(r"\b(case law|precedent|precedents|ruling|judgment|judgement|eklr|decided)\b", QueryType.CASE_LAW, "case_law"),
    _rule(r"\b(bail|bond)\b", QueryType.PROCEDURAL_GUIDANCE, "bail"),
    _rule(r"\b(how to|how do|how can|procedure|process|steps|apply|arrest|arrested)\b", QueryType.PROCEDURAL_GUIDANCE, "procedure"),
    _rule(r"\b(murder|robbery|homicide|manslaughter)\b", QueryType.CASE_LAW, "offence"),
)

DOCUMENT_RULES = (
    _rule(r"\bcharge ?sheet\b", DocumentType.CHARGE_SHEET, "charge_sheet"),
    _rule(r"\b(bail|bond)\b.*\bapplication\b|\bapplication\b.*\b(bail|bond)\b", DocumentType.BAIL_APPLICATION, "bail_application"),
    _rule(r"\b(appeal|memorandum of appeal|petition of appeal)\b", DocumentType.APPEAL, "appeal"),
    _rule(r"\b(affidavit|sworn statement|deponent)\b", DocumentType.AFFIDAVIT, "affidavit"),
    _rule(r"\b(court order|order of the court|ruling|decree|injunction|summons)\b", DocumentType.COURT_ORDER, "court_order"),
    _rule(r"\b(notice|demand letter)\b", DocumentType.LEGAL_NOTICE, "legal_notice"),
)

# Matched against the raw lowercased message; Swahili keywords included.
INTENT_RULES = (
    _rule(r"^\s*(document|file):", ConversationIntent.DOCUMENT_REFERENCE, "document"),
    _rule(r"^(hi|hello|hey|hujambo|habari|sasa)", ConversationIntent.GREETING, "greeting"),
    _rule(r"help|assist|support|msaada", ConversationIntent.HELP, "help"),
    _rule(r"arrest|arrested|kushikwa|police", ConversationIntent.ARREST_QUERY, "arrest"),
    _rule(r"bail|bond|dhamana", ConversationIntent.BAIL_QUERY, "bail"),
    _rule(r"court|hearing|kesi|mahakama", ConversationIntent.COURT_QUERY, "court"),
    _rule(r"lawyer|advocate|wakili", ConversationIntent.LAWYER_QUERY, "lawyer"),
    _rule(r"rights|haki", ConversationIntent.RIGHTS_QUERY, "rights"),
)


def normalize(text: str) -> str:
    """Lowercase and replace punctuation with spaces."""
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", " ", text.lower())).strip()


def extract_keywords(text: str) -> list[str]:
    """Pull search keywords out of free text.

    Legal dictionary terms present in the text come first, in dictionary
    order. Other tokens follow in text order when they are longer than two
    characters and not common words. No keyword appears twice.
    """
    tokens = normalize(text).split()
    token_set = set(tokens)

    keywords = [term for term in LEGAL_KEYWORDS if term in token_set]
    seen = set(keywords)
    for token in tokens:
        if token in seen or token in COMMON_WORDS or len(token) <= 2:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


def _first_match(rules, text: str, default: Enum, default_intent: str) -> tuple[Enum, str]:
    for rule in rules:
        if rule.matches(text):
            return rule.tag, rule.intent
    return default, default_intent


def classify_query(text: str) -> Classification:
    """Assign a query type, intent tag and keywords to a question.

    Example:
        >>> classify_query("What is the definition of robbery?").category
        <QueryType.LEGAL_DEFINITION: 'legal_definition'>
    """
    category, intent = _first_match(QUERY_RULES, normalize(text), QueryType.GENERAL, "general")
    return Classification(category=category, intent=intent, keywords=extract_keywords(text))


def classify_document(title: str, description: str | None = None) -> Classification:
    """Assign a document type from the title and description."""
    combined = f"{title} {description or ''}"
    category, intent = _first_match(DOCUMENT_RULES, normalize(combined), DocumentType.OTHER, "other")
    return Classification(category=category, intent=intent, keywords=extract_keywords(combined))


def classify_intent(message: str) -> ConversationIntent:
    """Determine what a WhatsApp user wants from their message."""
    intent, _ = _first_match(INTENT_RULES, message.lower(), ConversationIntent.GENERAL_QUERY, "general")
    return intent
