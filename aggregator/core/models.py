from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN = "unknown"

MAX_HIGHLIGHTS = 5

# Python attribute name -> camelCase wire name
_WIRE_NAMES = {
    "logo_url": "logoUrl",
    "contract_type": "contractType",
    "salary_range": "salaryRange",
    "is_easy_apply": "isEasyApply",
    "posted_at": "postedAt",
    "key_highlights": "keyHighlights",
}
_ATTR_NAMES = {wire: attr for attr, wire in _WIRE_NAMES.items()}


class Category(str, Enum):
    """
    Kanban columns a classified posting can live in.
    """

    NEW = "New"
    MATCH = "Match"
    REVIEW = "Review"
    APPLIED = "Applied"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class Posting:
    """
    Canonical Posting model representing one normalized job listing.
    """

    id: str
    title: str
    company: str
    location: str
    url: str
    source: str
    description: str = ""
    logo_url: Optional[str] = None
    contract_type: Optional[str] = None
    salary_range: Optional[str] = None
    is_easy_apply: bool = False
    posted_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {_WIRE_NAMES.get(k, k): v for k, v in data.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            attr = _ATTR_NAMES.get(key, key)
            if attr in known:
                kwargs[attr] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ClassifiedPosting(Posting):
    """
    A Posting enriched with the scoring service's verdict.
    """

    score: int = 0
    category: Category = Category.NEW
    reasoning: str = ""
    key_highlights: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.category, Category):
            object.__setattr__(self, "category", Category(self.category))
        if not isinstance(self.key_highlights, tuple):
            object.__setattr__(
                self, "key_highlights", tuple(self.key_highlights or ())
            )

    @classmethod
    def from_posting(cls, posting: Posting, **verdict) -> "ClassifiedPosting":
        base = {f.name: getattr(posting, f.name) for f in fields(Posting)}
        base.update(verdict)
        return cls(**base)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["category"] = self.category.value
        data["keyHighlights"] = list(self.key_highlights)
        return data

    def with_category(self, category: Category) -> "ClassifiedPosting":
        return replace(self, category=category)


PublishedDate = str  # any | 24h | 3d | 7d | 14d | 30d


class ScrapeRequest(BaseModel):
    """
    Query parameters for one scrape. Serialized in camelCase on the wire.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source: str = "full"
    keywords: str = ""
    location: str = ""
    max_pages: int = Field(default=5, ge=1, le=50)
    radius: Union[int, str] = "any"
    contract_type: str = "any"
    remote: str = "any"
    min_salary: Optional[Union[int, str]] = None
    max_salary: Optional[Union[int, str]] = None
    sector: str = ""
    job_function: str = ""
    published_date: PublishedDate = "any"
    salary_type: str = "any"

    def build_query(self, default: str = "Emploi") -> str:
        """
        Keywords win; otherwise sector + job function; otherwise the default.
        """
        if self.keywords and self.keywords.strip():
            return self.keywords.strip()
        fallback = f"{self.sector or ''} {self.job_function or ''}".strip()
        return fallback or default

    def location_or(self, default: str) -> str:
        return self.location.strip() if self.location and self.location.strip() else default

    def min_salary_value(self) -> Optional[int]:
        return _to_int(self.min_salary)

    def max_salary_value(self) -> Optional[int]:
        return _to_int(self.max_salary)

    def radius_km(self) -> Optional[int]:
        return _to_int(self.radius)


def _to_int(value) -> Optional[int]:
    if value is None or value == "" or value == "any":
        return None
    try:
        return int(str(value).replace("km", "").strip())
    except ValueError:
        return None
