import json

import httpx
import pytest

from yojana.services.data_acquisition import DataAcquisitionService
from yojana.services.scraper.local_dataset import load_local_dataset, parse_csv_schemes
from yojana.services.scraper.portal_scraper import MySchemeScraper, NSPScraper, PMKisanScraper
from yojana.services.scraper.scheme_normalizer import dedupe_schemes, generate_scheme_id, normalize_scheme


LISTING_HTML = """
<html><body>
  <div class="scheme-card">
    <h3 class="scheme-title">Stand-Up India</h3>
    <span class="scheme-category">Business</span>
    <p class="scheme-description">Bank loans for SC/ST and women entrepreneurs</p>
    <ul class="eligibility"><li>Age above 18</li><li>Greenfield enterprise</li></ul>
    <div class="benefits">Loans between 10 lakh and 1 crore</div>
  </div>
  <div class="scheme-item"><h4>Mudra Yojana</h4></div>
  <div class="scheme-card"><p>No title here</p></div>
</body></html>
"""


# ══════════════════════════════════════════
# Normalization & dedupe
# ══════════════════════════════════════════

def test_normalize_fills_defaults_and_localized_fields():
    record = normalize_scheme(
        {
            "name": "  PM Kisan Samman Nidhi ",
            "nameHindi": "पीएम किसान सम्मान निधि",
            "eligibilityTamil": ["சிறிய மற்றும் விளிம்பு விவசாயிகள்"],
            "documentsRequired": "Land records | Aadhaar card",
        },
        default_source="PM Kisan",
    )

    assert record.name == "PM Kisan Samman Nidhi"
    assert record.category == "General"
    assert record.deadline == "Ongoing"
    assert record.source == "PM Kisan"
    assert record.documents_required == ["Land records", "Aadhaar card"]
    assert record.id == generate_scheme_id("PM Kisan Samman Nidhi", "General")
    assert record.localized["hi"]["name"] == "पीएम किसान सम्मान निधि"
    assert record.localized_value("ta", "eligibility") == ["சிறிய மற்றும் விளிம்பு விவசாயிகள்"]
    assert record.localized_value("hi", "benefits") == ""


def test_normalize_drops_nameless_records():
    assert normalize_scheme({"id": "x", "name": "   "}) is None
    assert normalize_scheme({"category": "Health"}) is None


def test_generated_id_is_stable():
    assert generate_scheme_id("Merit Scholarship", "Education") == generate_scheme_id("Merit Scholarship", "Education")
    assert generate_scheme_id("Merit Scholarship", "Education") == "scheme-merit-scholarship-education"


def test_dedupe_keeps_first_per_name_and_category():
    records = [
        normalize_scheme({"id": "a", "name": "PM Kisan", "category": "Agriculture", "source": "MyScheme"}),
        normalize_scheme({"id": "b", "name": "pm kisan", "category": "AGRICULTURE", "source": "PM Kisan"}),
        normalize_scheme({"id": "c", "name": "PM Kisan", "category": "Finance"}),
    ]

    unique = dedupe_schemes(records)

    assert [r.id for r in unique] == ["a", "c"]
    assert len({r.dedupe_key for r in unique}) == len(unique)


# ══════════════════════════════════════════
# Local datasets
# ══════════════════════════════════════════

def test_parse_csv_handles_quotes_lists_and_nameless_rows():
    text = (
        'ID,Name,Category,Objective,Eligibility,DocumentsRequired,Tags\n'
        'pmk,PM Kisan,Agriculture,"Income support, paid in ""three"" instalments",Farmer | Landholder,Aadhaar; Land records,farmer|income\n'
        ',,Health,orphan row,,,\n'
        ',Ayushman Bharat,,"Health cover\nfor families",BPL family,,\n'
    )

    schemes = parse_csv_schemes(text)

    assert len(schemes) == 2
    pmk, ayushman = schemes
    assert pmk["id"] == "pmk"
    assert pmk["objective"] == 'Income support, paid in "three" instalments'
    assert pmk["eligibility"] == ["Farmer", "Landholder"]
    assert pmk["documentsRequired"] == ["Aadhaar", "Land records"]
    assert pmk["tags"] == ["farmer", "income"]
    assert pmk["source"] == "Local CSV"
    assert ayushman["category"] == "General"
    assert ayushman["objective"] == "Health cover\nfor families"
    assert ayushman["id"] == "scheme-ayushman-bharat-general"
    assert ayushman["lastUpdated"] is None


def test_load_local_dataset_reads_json_and_tolerates_missing_file(tmp_path):
    path = tmp_path / "schemes.json"
    path.write_text(json.dumps([{"id": "x", "name": "Scheme X"}]), encoding="utf-8")

    assert load_local_dataset(path) == [{"id": "x", "name": "Scheme X"}]
    assert load_local_dataset(tmp_path / "missing.json") == []


def test_local_dataset_path_tolerates_quotes_and_backslashes(settings):
    patched = settings.model_copy(update={"local_data_path": '"data\\local\\schemes.csv"'})
    assert patched.local_dataset_path.as_posix() == "data/local/schemes.csv"


# ══════════════════════════════════════════
# Sources
# ══════════════════════════════════════════

@pytest.mark.asyncio
async def test_myscheme_falls_back_to_listing_page_when_api_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/schemes":
            return httpx.Response(502)
        return httpx.Response(200, text=LISTING_HTML)

    scraper = MySchemeScraper(transport=httpx.MockTransport(handler))

    schemes = await scraper.fetch()

    assert [s["name"] for s in schemes] == ["Stand-Up India", "Mudra Yojana"]
    assert schemes[0]["category"] == "Business"
    assert schemes[0]["eligibility"] == ["Age above 18", "Greenfield enterprise"]
    assert schemes[0]["id"] == "myscheme-stand-up-india"
    assert schemes[1]["category"] == "General"


@pytest.mark.asyncio
async def test_myscheme_maps_api_payload():
    payload = {"schemes": [{"schemeName": "PM SVANidhi", "categories": ["Urban"], "description": "Street vendor loans"}]}
    scraper = MySchemeScraper(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)))

    schemes = await scraper.fetch()

    assert len(schemes) == 1
    assert schemes[0]["name"] == "PM SVANidhi"
    assert schemes[0]["category"] == "Urban"
    assert schemes[0]["objective"] == "Street vendor loans"
    assert schemes[0]["source"] == "MyScheme.gov.in (API)"


@pytest.mark.asyncio
async def test_curated_sources_survive_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network unreachable", request=request)

    transport = httpx.MockTransport(handler)
    nsp = await NSPScraper(transport=transport).fetch()
    pmkisan = await PMKisanScraper(transport=transport).fetch()

    assert [s["id"] for s in nsp] == ["nsp-merit-scholarship"]
    assert [s["id"] for s in pmkisan] == ["pm-kisan-samman-nidhi"]
    assert pmkisan[0]["nameTamil"]


# ══════════════════════════════════════════
# DataAcquisitionService
# ══════════════════════════════════════════

@pytest.mark.asyncio
async def test_failing_source_is_skipped(settings, stub_scraper, sample_schemes):
    pm_kisan, merit, housing = sample_schemes
    service = DataAcquisitionService(settings, [
        stub_scraper("A", [pm_kisan]),
        stub_scraper("B", error=RuntimeError("portal timed out")),
        stub_scraper("C", [merit, housing]),
    ])

    schemes = await service.fetch_all()

    assert [s.id for s in schemes] == ["pm-kisan-samman-nidhi", "nsp-merit-scholarship", "pmay-gramin"]
    assert schemes[0].source == "A"


@pytest.mark.asyncio
async def test_duplicates_across_sources_are_merged(settings, stub_scraper, sample_schemes):
    pm_kisan = sample_schemes[0]
    duplicate = dict(pm_kisan, id="myscheme-pm-kisan", name="pm kisan samman nidhi")
    service = DataAcquisitionService(settings, [stub_scraper("A", [pm_kisan]), stub_scraper("B", [duplicate])])

    schemes = await service.fetch_all()

    assert [s.id for s in schemes] == ["pm-kisan-samman-nidhi"]


@pytest.mark.asyncio
async def test_records_sharing_an_id_keep_the_first(settings, stub_scraper):
    service = DataAcquisitionService(settings, [
        stub_scraper("A", [{"id": "dup", "name": "Scholarship", "category": "Education"}]),
        stub_scraper("B", [{"id": "dup", "name": "Scholarship", "category": "Minority"}]),
    ])

    schemes = await service.fetch_all()

    assert [(s.id, s.category) for s in schemes] == [("dup", "Education")]


@pytest.mark.asyncio
async def test_missing_timestamps_are_reused_from_stored_dataset(settings, stub_scraper):
    service = DataAcquisitionService(settings, [stub_scraper("A", [{"id": "x", "name": "Scheme X"}])])

    first = await service.fetch_all()
    assert first[0].last_updated
    service.save_dataset(first)

    second = await service.fetch_all()
    assert second[0].last_updated == first[0].last_updated


@pytest.mark.asyncio
async def test_local_dataset_bypasses_network(settings, stub_scraper, tmp_path):
    path = tmp_path / "schemes.csv"
    path.write_text("id,name,category\nlocal-1,Local Scheme,Health\n", encoding="utf-8")
    local_settings = settings.model_copy(update={"use_local_data": True, "local_data_path": str(path)})
    remote = stub_scraper("Remote", [{"id": "r", "name": "Remote Scheme"}])

    schemes = await DataAcquisitionService(local_settings, [remote]).fetch_all()

    assert [s.id for s in schemes] == ["local-1"]
    assert remote.calls == 0


@pytest.mark.asyncio
async def test_fetch_all_does_not_write_dataset(settings, stub_scraper, sample_schemes):
    service = DataAcquisitionService(settings, [stub_scraper("A", sample_schemes)])

    await service.fetch_all()

    assert not service.dataset_file.exists()
    assert service.load_dataset() == []


def test_dataset_and_metadata_roundtrip(settings, scheme_factory):
    service = DataAcquisitionService(settings, [])
    schemes = [
        scheme_factory("a", "Scheme A", "Health", source="NSP", localized={"hi": {"name": "योजना ए"}}),
        scheme_factory("b", "Scheme B", "Agriculture", source="PM Kisan"),
    ]

    service.save_dataset(schemes)
    metadata = service.save_scraping_metadata(schemes)

    loaded = service.load_dataset()
    assert [s.id for s in loaded] == ["a", "b"]
    assert loaded[0].localized["hi"]["name"] == "योजना ए"
    assert metadata["totalSchemes"] == 2
    assert metadata["sources"] == ["NSP", "PM Kisan"]
    assert service.get_scraping_stats()["categories"] == ["Agriculture", "Health"]
