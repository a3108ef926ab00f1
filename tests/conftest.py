import asyncio
from typing import Dict, List, Optional

import pytest

from aggregator.adapters.base import SourceAdapter
from aggregator.browser.user_agent import UserAgentProvider
from aggregator.classification.scoring import ScoreResponse
from aggregator.core.models import Category, ClassifiedPosting, Posting


def make_posting(id="x-1", title="Dev", url="http://a", **kwargs) -> Posting:
    kwargs.setdefault("company", "Acme")
    kwargs.setdefault("location", "Paris")
    kwargs.setdefault("source", "Test")
    return Posting(id=id, title=title, url=url, **kwargs)


def make_classified(id="j-1", category=Category.NEW, score=0, **kwargs) -> ClassifiedPosting:
    return ClassifiedPosting.from_posting(
        make_posting(id=id, **kwargs), category=category, score=score
    )


class FakeAdapter(SourceAdapter):
    """
    Returns canned postings, or raises ``error``, after an optional delay.
    """

    def __init__(
        self,
        name: str,
        postings: Optional[List[Posting]] = None,
        error: Optional[BaseException] = None,
        delay: float = 0,
        requires_session: bool = False,
    ):
        self.name = name
        self.display_name = name.upper()
        self.prefix = name
        self.postings = postings or []
        self.error = error
        self.delay = delay
        self.requires_session = requires_session
        self.requests = []
        self.sessions = []

    async def fetch(self, request, session=None):
        self.requests.append(request)
        self.sessions.append(session)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.postings)


class FakePage:
    def __init__(self, title="Page", text="", batches=None):
        self._title = title
        self._text = text
        self.batches = list(batches or [])
        self.visited = []
        self.closed = False

    async def goto(self, url, **kwargs):
        self.visited.append(url)

    async def title(self):
        return self._title

    async def evaluate(self, script):
        if "innerText" in script and "document.body" in script:
            return self._text
        if "scrollBy" in script:
            return None
        return self.batches.pop(0) if self.batches else []

    async def query_selector(self, selector):
        return FakeLink() if self.batches else None

    async def close(self):
        self.closed = True


class FakeLink:
    async def click(self):
        return None


class FakeSession:
    instances: List["FakeSession"] = []

    def __init__(self, page: Optional[FakePage] = None):
        self.page = page or FakePage()
        self.started = False
        self.closed = False
        self.killed = False
        self._killed = asyncio.Event()
        FakeSession.instances.append(self)

    async def start(self):
        self.started = True

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True

    async def kill(self):
        self.killed = True
        self.closed = True
        self._killed.set()

    async def wait_killed(self):
        await self._killed.wait()


class FakeScorer:
    """
    Scores by posting id; ids missing from ``scores`` raise.
    """

    def __init__(self, scores: Dict[str, int], category: str = "Review", delay: float = 0):
        self.scores = scores
        self.category = category
        self.delay = delay
        self.calls: List[str] = []

    async def score(self, posting, criteria):
        self.calls.append(posting.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if posting.id not in self.scores:
            raise RuntimeError("scoring backend down")
        return ScoreResponse(
            score=self.scores[posting.id],
            category=self.category,
            reasoning=f"scored {posting.id}",
            key_highlights=["python"],
        )


@pytest.fixture(autouse=True)
def fixed_user_agent(monkeypatch):
    monkeypatch.setattr(UserAgentProvider, "get_random", classmethod(lambda cls: "test-agent"))


@pytest.fixture(autouse=True)
def reset_sessions():
    FakeSession.instances.clear()
    yield
    FakeSession.instances.clear()
