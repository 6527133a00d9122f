"""
Yojana RAG — Scraper Package
Exports the scheme sources and the normalization helpers.
"""

from yojana.services.scraper.base_scraper import BaseScraper, generate_slug
from yojana.services.scraper.local_dataset import load_local_dataset, parse_csv_schemes
from yojana.services.scraper.portal_scraper import (
    MySchemeScraper,
    NSPScraper,
    PMKisanScraper,
    default_scrapers,
)
from yojana.services.scraper.scheme_normalizer import (
    dedupe_schemes,
    generate_scheme_id,
    normalize_scheme,
)
