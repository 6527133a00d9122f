"""
Yojana RAG — Scheme Normalizer
Raw source dicts -> SchemeRecord, and cross-source deduplication.
"""

from typing import Iterable, Optional

from pydantic import ValidationError

from yojana.models.scheme import SchemeRecord
from yojana.services.scraper.base_scraper import generate_slug
from yojana.utils.logger import logger


LANGUAGE_SUFFIXES = {"Hindi": "hi", "Tamil": "ta"}

# camelCase source key -> SchemeRecord attribute
LOCALIZABLE_FIELDS = {
    "name": "name",
    "category": "category",
    "objective": "objective",
    "eligibility": "eligibility",
    "documentsRequired": "documents_required",
    "applicationProcedure": "application_procedure",
    "benefits": "benefits",
    "deadline": "deadline",
    "contactInfo": "contact_info",
}


def generate_scheme_id(name: str, category: str) -> str:
    """Stable id for records that arrive without one."""
    return f"scheme-{generate_slug(name)}-{generate_slug(category or 'general')}"


def _localized_fields(raw: dict) -> dict[str, dict]:
    localized: dict[str, dict] = {}
    existing = raw.get("localized")
    if isinstance(existing, dict):
        for language, fields in existing.items():
            if isinstance(fields, dict):
                localized[language] = dict(fields)

    for source_key, field in LOCALIZABLE_FIELDS.items():
        for suffix, language in LANGUAGE_SUFFIXES.items():
            value = raw.get(f"{source_key}{suffix}")
            if value:
                localized.setdefault(language, {})[field] = value
    return localized


def normalize_scheme(raw: dict, default_source: str = "Unknown") -> Optional[SchemeRecord]:
    """
    Fill every optional field with its default.
    Returns None for nameless or unparseable records.
    """
    name = str(raw.get("name") or "").strip()
    if not name:
        return None

    category = str(raw.get("category") or "").strip() or "General"
    scheme_id = str(raw.get("id") or "").strip() or generate_scheme_id(name, category)

    payload = {
        key: value for key, value in raw.items()
        if not any(key.endswith(suffix) for suffix in LANGUAGE_SUFFIXES)
    }
    payload.update({
        "id": scheme_id,
        "name": name,
        "category": category,
        "source": raw.get("source") or default_source,
        "localized": _localized_fields(raw),
    })

    try:
        return SchemeRecord.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"⚠️ Skipping malformed scheme '{name}': {e.error_count()} error(s)")
        return None


def dedupe_schemes(records: Iterable[SchemeRecord]) -> list[SchemeRecord]:
    """Keep the first record seen per lower(name)-lower(category) and per id."""
    seen = set()
    seen_ids = set()
    unique = []
    for record in records:
        if not record.name:
            continue
        key = record.dedupe_key
        if key in seen:
            continue
        if record.id in seen_ids:
            logger.warning(f"⚠️ Dropping '{record.name}' ({record.category}): id {record.id} already taken")
            continue
        seen.add(key)
        seen_ids.add(record.id)
        unique.append(record)
    return unique
