"""
France Travail (ex Pole Emploi) public offers API.

Authenticates with OAuth2 client credentials, then pages through
``/offres/search`` using the ``range`` parameter.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from aggregator.adapters.base import HttpSourceAdapter
from aggregator.config.settings import settings
from aggregator.core.errors import SourceUnavailable
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

TOKEN_URL = "https://entreprise.pole-emploi.fr/connexion/oauth2/access_token"
SEARCH_URL = "https://api.pole-emploi.io/partenaire/offresdemploi/v2/offres/search"
SCOPE = "api_offresdemploiv2 o2dsoffre"
OFFERS_PER_PAGE = 50

# contractType filter -> typeContrat codes
CONTRACT_CODES = {
    "CDI": "CDI",
    "CDD": "CDD",
    "Freelance": "LIB",
    "Interim": "MIS",
}


def to_row(offer: Dict[str, Any]) -> Dict[str, Any]:
    company = offer.get("entreprise") or {}
    place = offer.get("lieuTravail") or {}
    origin = offer.get("origineOffre") or {}
    salary = offer.get("salaire") or {}
    return {
        "key": offer.get("id"),
        "title": offer.get("intitule"),
        "company": company.get("nom") or "Confidential",
        "location": place.get("libelle"),
        "url": origin.get("urlOrigine")
        or f"https://candidat.francetravail.fr/offres/recherche/detail/{offer.get('id')}",
        "description": offer.get("description") or "",
        "salary_range": salary.get("libelle"),
        "contract_type": offer.get("typeContratLibelle"),
        "logo_url": company.get("logo"),
        "posted_at": offer.get("dateCreation"),
        "is_easy_apply": True,
    }


class FranceTravailAdapter(HttpSourceAdapter):
    name = "francetravail"
    display_name = "France Travail"
    prefix = "ft"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        transport=None,
    ):
        super().__init__(transport)
        self.client_id = client_id if client_id is not None else settings.FT_CLIENT_ID
        self.client_secret = (
            client_secret if client_secret is not None else settings.FT_CLIENT_SECRET
        )

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            TOKEN_URL,
            params={"realm": "/partenaire"},
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": SCOPE,
            },
        )
        response.raise_for_status()
        token = response.json().get("access_token")
        if not token:
            raise SourceUnavailable(self.display_name, "no access token in OAuth response")
        return token

    def _search_params(self, request: ScrapeRequest, page_num: int) -> Dict[str, Any]:
        start = page_num * OFFERS_PER_PAGE
        params: Dict[str, Any] = {
            "motsCles": request.build_query(settings.DEFAULT_QUERY),
            "range": f"{start}-{start + OFFERS_PER_PAGE - 1}",
        }
        min_salary = request.min_salary_value()
        if min_salary:
            params["salaireMin"] = min_salary
        contract = CONTRACT_CODES.get(request.contract_type)
        if contract:
            params["typeContrat"] = contract
        return params

    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        if not self.client_id or not self.client_secret:
            raise SourceUnavailable(
                self.display_name, "FT_CLIENT_ID / FT_CLIENT_SECRET are not configured"
            )

        postings: List[Posting] = []
        async with self.client() as client:
            token = await self._access_token(client)
            headers = {"Authorization": f"Bearer {token}"}

            for page_num in range(request.max_pages):
                logger.info(f"[France Travail] Fetching page {page_num + 1}")
                response = await client.get(
                    SEARCH_URL,
                    params=self._search_params(request, page_num),
                    headers=headers,
                )
                # 204 means no (more) offers for the range
                if response.status_code == 204:
                    break
                response.raise_for_status()

                offers = response.json().get("resultats") or []
                page_postings = self.normalize(to_row(offer) for offer in offers)
                if not page_postings:
                    break
                postings.extend(page_postings)

                if len(offers) < OFFERS_PER_PAGE:
                    break

        return postings
