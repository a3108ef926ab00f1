from aggregator.adapters.base import clean_text, make_posting_id
from aggregator.adapters.linkedin import LinkedInAdapter
from aggregator.core.models import UNKNOWN, Category, ClassifiedPosting, Posting, ScrapeRequest

from conftest import make_posting


def test_posting_id_prefers_natural_key():
    assert make_posting_id("ind", "9b6b90751b656a90", "https://x") == "ind-9b6b90751b656a90"


def test_posting_id_from_url_is_stable():
    first = make_posting_id("jj", None, "https://www.jobijoba.com/fr/annonce/1")
    second = make_posting_id("jj", "", "https://www.jobijoba.com/fr/annonce/1")

    assert first == second
    assert first.startswith("jj-") and len(first) == len("jj-") + 12


def test_posting_id_random_without_key_or_url():
    assert make_posting_id("x", None) != make_posting_id("x", None)


def test_clean_text():
    assert clean_text("  Senior\n  Dev \t") == "Senior Dev"
    assert clean_text(None) == ""


def test_normalize_drops_unusable_rows_and_fills_placeholders():
    adapter = LinkedInAdapter()
    rows = [
        {"key": "1", "title": "Dev", "url": "/jobs/view/1"},
        {"key": "2", "title": "", "url": "https://x"},
        {"key": "3", "title": "Ops", "url": "#"},
        {"key": "4", "title": "QA"},
    ]

    [posting] = adapter.normalize(rows)

    assert posting.id == "lin-1"
    assert posting.url == "https://www.linkedin.com/jobs/view/1"
    assert posting.company == UNKNOWN
    assert posting.location == UNKNOWN
    assert posting.source == "LinkedIn"


def test_posting_wire_format_is_camel_case():
    posting = make_posting("x-1", salary_range="40k", is_easy_apply=True)

    data = posting.to_dict()

    assert data["salaryRange"] == "40k"
    assert data["isEasyApply"] is True
    assert Posting.from_dict(data) == posting


def test_classified_posting_round_trip():
    classified = ClassifiedPosting.from_posting(
        make_posting("x-1"), score=82, category="Match", key_highlights=["a", "b"]
    )

    data = classified.to_dict()

    assert data["category"] == "Match"
    assert data["keyHighlights"] == ["a", "b"]
    assert ClassifiedPosting.from_dict(data) == classified
    assert classified.with_category(Category.APPLIED).category == Category.APPLIED


def test_scrape_request_accepts_camel_case():
    request = ScrapeRequest.model_validate(
        {"source": "indeed", "maxPages": 3, "publishedDate": "7d", "minSalary": "35000"}
    )

    assert request.max_pages == 3
    assert request.published_date == "7d"
    assert request.min_salary_value() == 35000
    assert request.model_dump(by_alias=True)["maxPages"] == 3


def test_scrape_request_query_fallbacks():
    assert ScrapeRequest(keywords="  python ").build_query() == "python"
    assert ScrapeRequest(sector="IT", job_function="Dev").build_query() == "IT Dev"
    assert ScrapeRequest().build_query() == "Emploi"


def test_scrape_request_radius():
    assert ScrapeRequest(radius="any").radius_km() is None
    assert ScrapeRequest(radius="20km").radius_km() == 20
    assert ScrapeRequest(radius=50).radius_km() == 50
