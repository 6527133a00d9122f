"""
Yojana RAG — Pydantic Models for Schemes
"""

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


LIST_SEPARATOR = re.compile(r"\s*[|;]\s*")


def split_list_cell(value: Any) -> list[str]:
    """Coerce a list-valued field. Strings are split on '|' or ';'."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in LIST_SEPARATOR.split(value) if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return [str(value).strip()]


class SchemeRecord(BaseModel):
    """One government welfare scheme, the unit the index is built from."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    category: str = "General"
    objective: str = ""
    benefits: str = ""
    eligibility: list[str] = Field(default_factory=list)
    documents_required: list[str] = Field(default_factory=list, alias="documentsRequired")
    application_procedure: list[str] = Field(default_factory=list, alias="applicationProcedure")
    contact_info: str = Field("", alias="contactInfo")
    website: str = ""
    tags: list[str] = Field(default_factory=list)
    last_updated: Optional[str] = Field(None, alias="lastUpdated")
    deadline: str = "Ongoing"
    source: str = "Unknown"
    localized: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-language variants, e.g. {'hi': {'name': ..., 'eligibility': [...]}}",
    )

    @field_validator("name", "id", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> str:
        return str(value).strip() if value is not None else ""

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        return text or "General"

    @field_validator("objective", "benefits", "contact_info", "website", "source", "deadline", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value if v)
        return str(value).strip()

    @field_validator("eligibility", "documents_required", "application_procedure", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[str]:
        return split_list_cell(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        # Tags behave as a set; first occurrence keeps its position.
        seen = set()
        tags = []
        for tag in split_list_cell(value):
            key = tag.lower()
            if key not in seen:
                seen.add(key)
                tags.append(tag)
        return tags

    @field_validator("last_updated", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value).strip()

    @property
    def dedupe_key(self) -> str:
        """Cross-source identity: lower-cased name + category."""
        return f"{self.name.lower()}-{self.category.lower()}"

    def localized_value(self, language: str, field: str, default: Any = None) -> Any:
        """Field value in the given language, falling back to the English one."""
        value = self.localized.get(language, {}).get(field)
        if value:
            return value
        return default if default is not None else getattr(self, field, "")

    def document_text(self) -> str:
        """Labelled text representation that gets embedded into the index."""
        parts = [
            ("Scheme Name", self.name),
            ("Category", self.category),
            ("Objective", self.objective),
            ("Eligibility", ", ".join(self.eligibility)),
            ("Documents Required", ", ".join(self.documents_required)),
            ("Application Procedure", ", ".join(self.application_procedure)),
            ("Benefits", self.benefits),
            ("Contact Info", self.contact_info),
            ("Website", self.website),
            ("Tags", ", ".join(self.tags)),
        ]
        return "\n".join(f"{label}: {value}" for label, value in parts if value)

    def index_metadata(self) -> dict:
        """Denormalized copy kept next to the vector for result display."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "tags": list(self.tags),
            "language": "en",
        }

    def to_json(self) -> dict:
        """Serialize with the camelCase keys used by the dataset files."""
        return self.model_dump(by_alias=True)


class SearchHit(BaseModel):
    """Result from vector similarity search. Scores only rank within one backend."""
    id: str
    name: str = ""
    category: str = ""
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)
