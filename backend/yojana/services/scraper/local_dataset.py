"""
Yojana RAG — Local Dataset Loader
Pre-scraped schemes from a JSON array or a CSV file with a header row.

Supported CSV headers (case-insensitive):
  id,name,category,objective,eligibility,documentsRequired,
  applicationProcedure,benefits,contactInfo,website,tags,lastUpdated
eligibility / documentsRequired / applicationProcedure / tags are
pipe- or semicolon-separated lists.
"""

import csv
import io
import json
from pathlib import Path
from typing import Union

from yojana.models.scheme import split_list_cell
from yojana.services.scraper.scheme_normalizer import generate_scheme_id
from yojana.utils.logger import logger


TEXT_COLUMNS = {
    "category": "category",
    "objective": "objective",
    "benefits": "benefits",
    "contactinfo": "contactInfo",
    "website": "website",
    "lastupdated": "lastUpdated",
}
LIST_COLUMNS = {
    "eligibility": "eligibility",
    "documentsrequired": "documentsRequired",
    "applicationprocedure": "applicationProcedure",
    "tags": "tags",
}


def parse_csv_schemes(text: str) -> list[dict]:
    """Parse CSV text into raw scheme dicts. Rows without a name are skipped."""
    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    if not rows:
        return []

    header = [column.strip().lower() for column in rows[0]]

    def cell(row: list[str], column: str) -> str:
        if column not in header:
            return ""
        index = header.index(column)
        return row[index].strip() if index < len(row) else ""

    schemes = []
    for row in rows[1:]:
        name = cell(row, "name")
        if not name:
            continue
        category = cell(row, "category") or "General"

        scheme = {
            "id": cell(row, "id") or generate_scheme_id(name, category),
            "name": name,
            "source": "Local CSV",
        }
        for column, key in TEXT_COLUMNS.items():
            scheme[key] = cell(row, column)
        for column, key in LIST_COLUMNS.items():
            scheme[key] = split_list_cell(cell(row, column))
        scheme["category"] = category
        # Empty lastUpdated is stamped later by the acquisition service
        scheme["lastUpdated"] = scheme["lastUpdated"] or None
        schemes.append(scheme)

    return schemes


def parse_json_schemes(text: str) -> list[dict]:
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("schemes", [])
    if not isinstance(data, list):
        raise ValueError("Local JSON dataset must be an array of schemes")
    return [item for item in data if isinstance(item, dict)]


def load_local_dataset(path: Union[str, Path]) -> list[dict]:
    """
    Read the local dataset. A missing file yields an empty list;
    a malformed file raises.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"⚠️ Local dataset not found at {path}")
        return []

    text = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() == ".csv":
        logger.info(f"📄 Detected CSV dataset at {path}, parsing...")
        schemes = parse_csv_schemes(text)
    else:
        schemes = parse_json_schemes(text)

    logger.info(f"📁 Using local dataset from {path} with {len(schemes)} records")
    return schemes
