import httpx
import pytest

from aggregator.adapters.france_travail import OFFERS_PER_PAGE, TOKEN_URL, FranceTravailAdapter
from aggregator.adapters.google_jobs import GoogleJobsAdapter
from aggregator.core.errors import SourceUnavailable
from aggregator.core.models import ScrapeRequest


def serp_hit(job_id, title="Dev"):
    return {
        "job_id": job_id,
        "title": title,
        "company_name": "Acme",
        "location": "Paris",
        "description": "Build things",
        "related_links": [{"link": f"https://acme.example/jobs/{job_id}"}],
        "detected_extensions": {"salary": "45k", "schedule_type": "CDI"},
    }


async def test_google_jobs_requires_api_key():
    adapter = GoogleJobsAdapter(api_key="")

    with pytest.raises(SourceUnavailable, match="SERPAPI_KEY"):
        await adapter.fetch(ScrapeRequest(source="googlejobs"))


async def test_google_jobs_follows_next_page_token():
    seen = []

    def handler(request):
        token = request.url.params.get("next_page_token")
        seen.append(token)
        if token is None:
            return httpx.Response(
                200,
                json={
                    "jobs_results": [serp_hit("g1"), serp_hit("g2")],
                    "serpapi_pagination": {"next_page_token": "tok2"},
                },
            )
        return httpx.Response(200, json={"jobs_results": [serp_hit("g3")]})

    adapter = GoogleJobsAdapter(api_key="k", transport=httpx.MockTransport(handler))
    postings = await adapter.fetch(ScrapeRequest(source="googlejobs", max_pages=5))

    assert seen == [None, "tok2"]
    assert [p.id for p in postings] == ["goo-g1", "goo-g2", "goo-g3"]
    assert postings[0].salary_range == "45k"
    assert postings[0].contract_type == "CDI"
    assert postings[0].url == "https://acme.example/jobs/g1"


def offer(offer_id):
    return {
        "id": offer_id,
        "intitule": "Developpeur Python",
        "entreprise": {"nom": "Acme"},
        "lieuTravail": {"libelle": "75 - Paris"},
        "typeContratLibelle": "CDI",
        "salaire": {"libelle": "Annuel de 40000 Euros"},
        "origineOffre": {"urlOrigine": f"https://candidat.francetravail.fr/offres/{offer_id}"},
    }


async def test_france_travail_requires_credentials():
    adapter = FranceTravailAdapter(client_id="", client_secret="")

    with pytest.raises(SourceUnavailable):
        await adapter.fetch(ScrapeRequest(source="francetravail"))


async def test_france_travail_authenticates_and_pages():
    ranges = []

    def handler(request):
        if str(request.url).startswith(TOKEN_URL):
            return httpx.Response(200, json={"access_token": "abc"})
        assert request.headers["Authorization"] == "Bearer abc"
        ranges.append(request.url.params["range"])
        if request.url.params["range"] == "0-49":
            assert request.url.params["salaireMin"] == "35000"
            assert request.url.params["typeContrat"] == "CDI"
            return httpx.Response(
                200, json={"resultats": [offer(f"A{i}") for i in range(OFFERS_PER_PAGE)]}
            )
        return httpx.Response(200, json={"resultats": [offer("B1")]})

    adapter = FranceTravailAdapter("id", "secret", transport=httpx.MockTransport(handler))
    postings = await adapter.fetch(
        ScrapeRequest(
            source="francetravail", max_pages=5, min_salary=35000, contract_type="CDI"
        )
    )

    # second page is short, so there is no third request
    assert ranges == ["0-49", "50-99"]
    assert len(postings) == OFFERS_PER_PAGE + 1
    assert postings[0].id == "ft-A0"
    assert postings[0].salary_range == "Annuel de 40000 Euros"


async def test_france_travail_no_content_stops():
    def handler(request):
        if str(request.url).startswith(TOKEN_URL):
            return httpx.Response(200, json={"access_token": "abc"})
        return httpx.Response(204)

    adapter = FranceTravailAdapter("id", "secret", transport=httpx.MockTransport(handler))

    assert await adapter.fetch(ScrapeRequest(source="francetravail")) == []


async def test_france_travail_missing_token():
    adapter = FranceTravailAdapter(
        "id", "secret", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))
    )

    with pytest.raises(SourceUnavailable, match="access token"):
        await adapter.fetch(ScrapeRequest(source="francetravail"))
