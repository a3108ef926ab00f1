import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

from aggregator.classification.pipeline import ClassificationPipeline, ProgressCallback
from aggregator.core.cancellation import CancellationToken
from aggregator.core.errors import NoResults, ScrapeCancelled
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.store.repository import JobRepository

logger = logging.getLogger(__name__)


class Scraper(Protocol):
    """
    Anything that can run and stop a scrape: the local Orchestrator or the
    HTTP BackendClient.
    """

    async def run(
        self, request: ScrapeRequest, token: Optional[CancellationToken] = None
    ) -> List[Posting]: ...

    async def stop(self) -> bool: ...


class ScrapeStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_RESULTS = "no_results"


@dataclass
class ScrapeOutcome:
    status: ScrapeStatus
    scraped: int = 0
    classified: int = 0
    failures: int = 0
    added_ids: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.status == ScrapeStatus.NO_RESULTS:
            return "No postings found."
        if self.status == ScrapeStatus.CANCELLED:
            return (
                f"Stopped by user ({self.classified}/{self.scraped} classified, "
                f"{len(self.added_ids)} added)."
            )
        return (
            f"{self.scraped} postings scraped, {len(self.added_ids)} new "
            f"({self.failures} classification failures)."
        )


class ScrapeService:
    """
    Scrape, classify and merge, sharing one cancellation token across the
    three stages.
    """

    def __init__(
        self,
        scraper: Scraper,
        repository: JobRepository,
        pipeline: Optional[ClassificationPipeline] = None,
    ):
        self.scraper = scraper
        self.repository = repository
        self.pipeline = pipeline or ClassificationPipeline()
        self.token: Optional[CancellationToken] = None

    async def scrape_and_classify(
        self,
        request: ScrapeRequest,
        criteria: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScrapeOutcome:
        token = CancellationToken()
        self.token = token

        try:
            postings = await self.scraper.run(request, token=token)
        except ScrapeCancelled:
            return ScrapeOutcome(status=ScrapeStatus.CANCELLED)

        return await self.classify_and_merge(postings, criteria, token, on_progress)

    async def classify_and_merge(
        self,
        postings: List[Posting],
        criteria: str,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScrapeOutcome:
        """
        Classify ``postings`` and merge whatever was classified, even when
        the run is cancelled halfway.
        """
        try:
            result = await self.pipeline.classify(postings, criteria, token, on_progress)
        except NoResults:
            logger.info("Scrape returned no postings; store left untouched.")
            return ScrapeOutcome(status=ScrapeStatus.NO_RESULTS)

        known = self.repository.store.ids()
        added = [p.id for p in result.items if p.id not in known]
        if result.items:
            self.repository.merge(result.items)

        return ScrapeOutcome(
            status=ScrapeStatus.CANCELLED if result.cancelled else ScrapeStatus.COMPLETED,
            scraped=len(postings),
            classified=result.processed,
            failures=result.failures,
            added_ids=list(dict.fromkeys(added)),
        )

    async def stop(self) -> None:
        """
        Fire the shared token, then ask the scraper to tear down.
        """
        if self.token is not None:
            self.token.cancel("stopped by user")
        await self.scraper.stop()
