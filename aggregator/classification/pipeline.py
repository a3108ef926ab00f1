import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from aggregator.classification.policy import category_for_score
from aggregator.classification.scoring import ScoreResponse, ScoringClient
from aggregator.config.settings import settings
from aggregator.core.cancellation import CancellationToken
from aggregator.core.errors import NoResults, ScrapeCancelled
from aggregator.core.models import Category, ClassifiedPosting, Posting

logger = logging.getLogger(__name__)

FAILED_REASONING = "Classification failed"

ProgressCallback = Callable[[int, int], None]


class Scorer(Protocol):
    async def score(self, posting: Posting, criteria: str) -> ScoreResponse: ...


@dataclass
class ClassificationResult:
    items: List[ClassifiedPosting] = field(default_factory=list)
    total: int = 0
    failures: int = 0
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return len(self.items)


def failed_classification(posting: Posting) -> ClassifiedPosting:
    return ClassifiedPosting.from_posting(
        posting,
        score=0,
        category=Category.REVIEW,
        reasoning=FAILED_REASONING,
        key_highlights=(),
    )


def apply_verdict(posting: Posting, verdict: ScoreResponse) -> ClassifiedPosting:
    """
    Merge a scoring verdict into the posting. The category is derived from
    the score, whatever label the model returned.
    """
    return ClassifiedPosting.from_posting(
        posting,
        contract_type=posting.contract_type or verdict.contract_type,
        salary_range=posting.salary_range or verdict.salary_range,
        score=verdict.score,
        category=category_for_score(verdict.score),
        reasoning=verdict.reasoning,
        key_highlights=tuple(verdict.key_highlights),
    )


class ClassificationPipeline:
    """
    Scores postings one at a time, so the scoring service never sees more
    than one outstanding call from a run.
    """

    def __init__(self, scorer: Optional[Scorer] = None, timeout: Optional[float] = None):
        self.scorer = scorer or ScoringClient()
        self.timeout = timeout or settings.SCORING_TIMEOUT

    async def classify(
        self,
        postings: Sequence[Posting],
        criteria: str,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ClassificationResult:
        """
        Returns every posting processed before a cancellation, failed items
        included (downgraded to Review / 0).

        Raises NoResults for an empty batch.
        """
        total = len(postings)
        if total == 0:
            raise NoResults("No postings found")

        token = token or CancellationToken()
        result = ClassificationResult(total=total)
        logger.info(f"Classifying {total} postings...")

        for index, posting in enumerate(postings, start=1):
            if token.cancelled:
                result.cancelled = True
                break
            if on_progress:
                on_progress(index, total)

            try:
                verdict = await token.run(
                    asyncio.wait_for(
                        self.scorer.score(posting, criteria), timeout=self.timeout
                    )
                )
            except ScrapeCancelled:
                result.cancelled = True
                break
            except Exception as e:
                logger.warning(f"Classification failed for {posting.id}: {e}")
                result.failures += 1
                result.items.append(failed_classification(posting))
                continue

            result.items.append(apply_verdict(posting, verdict))
            logger.debug(f"{posting.id} scored {verdict.score}")

        if result.cancelled:
            logger.info(f"Classification cancelled after {result.processed}/{total} postings.")
        else:
            logger.info(
                f"Classification done: {result.processed} postings, {result.failures} failures."
            )
        return result
