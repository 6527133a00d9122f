"""
Yojana RAG — Scheme Processing
Derived training metadata per scheme: searchable text, keywords,
complexity and priority. None of this feeds into embeddings or ranking.
"""

from dataclasses import dataclass, field

from yojana.models.scheme import SchemeRecord


STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
}

COMMON_KEYWORDS = [
    "government", "scheme", "benefit", "support", "assistance",
    "welfare", "subsidy", "grant", "loan", "scholarship",
]

HIGH_PRIORITY_KEYWORDS = ["pm kisan", "mgnrega", "pmay", "ayushman", "jan dhan"]
MEDIUM_PRIORITY_KEYWORDS = ["scholarship", "education", "health", "employment"]

MAX_SCORE = 5


@dataclass
class ProcessedScheme:
    record: SchemeRecord
    searchable_text: str
    keywords: list[str] = field(default_factory=list)
    complexity: int = 1
    priority: int = 1


def searchable_text(scheme: SchemeRecord) -> str:
    parts = [
        scheme.name,
        scheme.category,
        scheme.objective,
        " ".join(scheme.eligibility),
        scheme.benefits,
        " ".join(scheme.tags),
    ]
    return " ".join(p for p in parts if p).lower()


def extract_keywords(scheme: SchemeRecord, text: str) -> list[str]:
    """Category, long name words, objective words and common scheme terms."""
    keywords = {scheme.category.lower(): None}

    for word in scheme.name.lower().split():
        if len(word) > 3:
            keywords.setdefault(word)

    for word in scheme.objective.lower().split():
        if len(word) > 4 and word not in STOP_WORDS:
            keywords.setdefault(word)

    for keyword in COMMON_KEYWORDS:
        if keyword in text:
            keywords.setdefault(keyword)

    return list(keywords)


def calculate_complexity(scheme: SchemeRecord) -> int:
    complexity = 1
    if len(scheme.eligibility) > 3:
        complexity += 1
    if len(scheme.documents_required) > 5:
        complexity += 1
    if len(scheme.application_procedure) > 4:
        complexity += 1
    return min(complexity, MAX_SCORE)


def calculate_priority(scheme: SchemeRecord, text: str) -> int:
    priority = 1
    name = scheme.name.lower()
    if any(k in name or k in text for k in HIGH_PRIORITY_KEYWORDS):
        priority += 2
    if any(k in text for k in MEDIUM_PRIORITY_KEYWORDS):
        priority += 1
    return min(priority, MAX_SCORE)


def process_scheme(scheme: SchemeRecord) -> ProcessedScheme:
    text = searchable_text(scheme)
    return ProcessedScheme(
        record=scheme,
        searchable_text=text,
        keywords=extract_keywords(scheme, text),
        complexity=calculate_complexity(scheme),
        priority=calculate_priority(scheme, text),
    )
