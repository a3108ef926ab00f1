from typing import Dict, List, Type

from aggregator.adapters.base import SourceAdapter
from aggregator.adapters.france_travail import FranceTravailAdapter
from aggregator.adapters.google_jobs import GoogleJobsAdapter
from aggregator.adapters.hellowork import HelloworkAdapter
from aggregator.adapters.indeed.adapter import IndeedAdapter
from aggregator.adapters.jobijoba import JobijobaAdapter
from aggregator.adapters.linkedin import LinkedInAdapter

FULL = "full"

# API adapters first: they settle fastest in a fan-out.
ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    "francetravail": FranceTravailAdapter,
    "googlejobs": GoogleJobsAdapter,
    "linkedin": LinkedInAdapter,
    "hellowork": HelloworkAdapter,
    "jobijoba": JobijobaAdapter,
    "indeed": IndeedAdapter,
}


def default_adapters() -> List[SourceAdapter]:
    return [adapter_cls() for adapter_cls in ADAPTERS.values()]


def available_sources() -> List[str]:
    return [*ADAPTERS.keys(), FULL]
