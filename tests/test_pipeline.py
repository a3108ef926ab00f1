import pytest

from aggregator.classification.pipeline import FAILED_REASONING, ClassificationPipeline
from aggregator.classification.policy import category_for_score, clamp_score
from aggregator.core.cancellation import CancellationToken
from aggregator.core.errors import NoResults
from aggregator.core.models import Category

from conftest import FakeScorer, make_posting


@pytest.mark.parametrize(
    "score, expected",
    [
        (100, Category.MATCH),
        (81, Category.MATCH),
        (80, Category.REVIEW),
        (60, Category.REVIEW),
        (59, Category.REJECTED),
        (0, Category.REJECTED),
    ],
)
def test_category_for_score_boundaries(score, expected):
    assert category_for_score(score) == expected


def test_clamp_score():
    assert clamp_score(140) == 100
    assert clamp_score(-3) == 0
    assert clamp_score("72.6") == 73


async def test_score_overrides_model_category():
    scorer = FakeScorer({"x-1": 95}, category="Review")
    pipeline = ClassificationPipeline(scorer=scorer)

    result = await pipeline.classify([make_posting("x-1")], "python, Paris")

    [item] = result.items
    assert item.category == Category.MATCH
    assert item.score == 95
    assert item.reasoning == "scored x-1"
    assert item.key_highlights == ("python",)


async def test_cancellation_after_second_item():
    postings = [make_posting(f"p-{i}") for i in range(1, 6)]
    token = CancellationToken()
    scorer = FakeScorer({p.id: 70 for p in postings})

    def progress(current, total):
        # Fires before each item is scored; cancel once item 2 is done.
        if current == 3:
            token.cancel("user")

    pipeline = ClassificationPipeline(scorer=scorer)
    result = await pipeline.classify(postings, "", token=token, on_progress=progress)

    assert [p.id for p in result.items] == ["p-1", "p-2"]
    assert scorer.calls == ["p-1", "p-2"]
    assert result.cancelled


async def test_cancelled_token_sends_nothing():
    token = CancellationToken()
    token.cancel()
    scorer = FakeScorer({"p-1": 90})

    result = await ClassificationPipeline(scorer=scorer).classify(
        [make_posting("p-1")], "", token=token
    )

    assert result.items == []
    assert scorer.calls == []
    assert result.cancelled


async def test_every_posting_accounted_for_when_scoring_fails():
    postings = [make_posting(f"p-{i}") for i in range(3)]
    scorer = FakeScorer({})

    result = await ClassificationPipeline(scorer=scorer).classify(postings, "")

    assert result.processed == result.total == 3
    assert result.failures == 3
    for item in result.items:
        assert item.category == Category.REVIEW
        assert item.score == 0
        assert item.reasoning == FAILED_REASONING


async def test_one_failure_does_not_abort_batch():
    postings = [make_posting("ok-1"), make_posting("bad"), make_posting("ok-2")]
    scorer = FakeScorer({"ok-1": 85, "ok-2": 40})

    result = await ClassificationPipeline(scorer=scorer).classify(postings, "")

    assert [p.category for p in result.items] == [
        Category.MATCH,
        Category.REVIEW,
        Category.REJECTED,
    ]
    assert result.failures == 1


async def test_slow_scoring_call_times_out():
    scorer = FakeScorer({"p-1": 90}, delay=1)

    result = await ClassificationPipeline(scorer=scorer, timeout=0.05).classify(
        [make_posting("p-1")], ""
    )

    assert result.items[0].reasoning == FAILED_REASONING


async def test_progress_reported_per_item():
    calls = []
    postings = [make_posting(f"p-{i}") for i in range(3)]

    await ClassificationPipeline(scorer=FakeScorer({p.id: 50 for p in postings})).classify(
        postings, "", on_progress=lambda current, total: calls.append((current, total))
    )

    assert calls == [(1, 3), (2, 3), (3, 3)]


async def test_verdict_fills_missing_metadata_only():
    posting = make_posting("p-1", contract_type="CDI")

    class Scorer(FakeScorer):
        async def score(self, posting, criteria):
            verdict = await super().score(posting, criteria)
            return verdict.model_copy(update={"contract_type": "CDD", "salary_range": "45k"})

    result = await ClassificationPipeline(scorer=Scorer({"p-1": 65})).classify([posting], "")

    assert result.items[0].contract_type == "CDI"
    assert result.items[0].salary_range == "45k"


async def test_empty_batch_raises_no_results():
    with pytest.raises(NoResults):
        await ClassificationPipeline(scorer=FakeScorer({})).classify([], "")
