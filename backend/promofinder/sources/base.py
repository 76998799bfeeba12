"""Base source adapter interface.

All offer sources (product-data APIs and scraper feeds) inherit from
BaseSource and implement fetch_candidates(). The public query() method
wraps it and always returns a SourceResult: adapters report failures as
typed values instead of raising into the aggregator.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
import structlog

from promofinder.core.exceptions import SourceError


class SourceReliability(str, Enum):
    """Trust tier of a source, used as the confidence base score."""

    STRUCTURED_API = "structured_api"
    SCRAPED_HTML = "scraped_html"


class SourceFailureKind(str, Enum):
    """Typed reasons a single source query can fail."""

    TIMEOUT = "timeout"
    BLOCKED_BY_TARGET = "blocked_by_target"
    NO_RESULTS_FOUND = "no_results_found"
    MALFORMED_RESPONSE = "malformed_response"
    UPSTREAM_ERROR = "upstream_error"
    # Assigned by the aggregator, never by an adapter
    BUDGET_EXHAUSTED = "budget_exhausted"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class SourceQuery:
    """Query descriptor handed to every source for one aggregate call."""

    query: str
    brand: Optional[str] = None
    category: Optional[str] = None
    max_price: Optional[Decimal] = None
    page: int = 1
    limit: int = 20

    def cache_params(self) -> Dict[str, Any]:
        """Parameters that identify this query for result caching."""
        return {
            "query": self.query.strip().lower(),
            "brand": (self.brand or "").lower(),
            "category": self.category or "",
            "max_price": str(self.max_price) if self.max_price is not None else "",
            "page": self.page,
            "limit": self.limit,
        }


@dataclass
class RawCandidate:
    """Unvalidated product-discount record returned by one source."""

    name: str
    source: str
    product_url: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    original_price: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    currency: Optional[str] = "USD"
    image_url: Optional[str] = None
    external_id: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    reported_discount: Optional[Decimal] = None  # Diagnostics only, never trusted
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        """Validate identity fields after initialization."""
        if not self.name or not self.name.strip():
            raise ValueError("name is required")
        if not self.source:
            raise ValueError("source is required")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict (Decimals become strings)."""
        data = asdict(self)
        for key in ("original_price", "sale_price", "reported_discount"):
            if data[key] is not None:
                data[key] = str(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawCandidate":
        """Rebuild a candidate from to_dict() output."""
        values = dict(data)
        for key in ("original_price", "sale_price", "reported_discount"):
            values[key] = to_decimal(values.get(key))
        return cls(**values)


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a number or numeric string to Decimal, None when not parseable."""
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


@dataclass
class SourceResult:
    """Tagged result of one source query: candidates or a typed failure."""

    source: str
    candidates: List[RawCandidate] = field(default_factory=list)
    failure: Optional[SourceFailureKind] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @classmethod
    def ok(cls, source: str, candidates: List[RawCandidate]) -> "SourceResult":
        return cls(source=source, candidates=list(candidates))

    @classmethod
    def failed(
        cls, source: str, kind: SourceFailureKind, message: str = ""
    ) -> "SourceResult":
        return cls(source=source, failure=kind, message=message)


BLOCKING_STATUS_CODES = {401, 403, 429}


class BaseSource(ABC):
    """Abstract base class for all offer sources (API and scraper).

    Subclasses implement fetch_candidates(). They may raise SourceError,
    httpx errors or parsing errors; query() maps them to SourceResult.
    """

    name: str = ""  # Must be overridden in subclass (e.g., "rapidapi")
    display_name: str = ""
    source_type: str = ""  # 'api' or 'scraper'
    reliability: SourceReliability = SourceReliability.SCRAPED_HTML

    def __init__(self):
        """Initialize the source with a bound logger."""
        self.logger = structlog.get_logger(source=self.name)

    @abstractmethod
    async def fetch_candidates(self, query: SourceQuery) -> List[RawCandidate]:
        """Fetch raw candidates for a query.

        Args:
            query: Query descriptor

        Returns:
            List of RawCandidate (empty list when nothing matched)

        Raises:
            SourceError: For typed failures the adapter detects itself
        """

    async def query(self, query: SourceQuery) -> SourceResult:
        """Run one query and return a typed result. Never raises for source failures."""
        try:
            candidates = await self.fetch_candidates(query)
        except SourceError as e:
            self.logger.warning("source_query_failed", kind=e.kind, error=e.message)
            return SourceResult.failed(self.name, SourceFailureKind(e.kind), e.message)
        except httpx.TimeoutException as e:
            self.logger.warning("source_query_timeout", error=str(e))
            return SourceResult.failed(self.name, SourceFailureKind.TIMEOUT, str(e))
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            kind = (
                SourceFailureKind.BLOCKED_BY_TARGET
                if status in BLOCKING_STATUS_CODES
                else SourceFailureKind.UPSTREAM_ERROR
            )
            self.logger.warning("source_http_error", status_code=status, kind=kind.value)
            return SourceResult.failed(self.name, kind, f"HTTP {status}")
        except httpx.TransportError as e:
            self.logger.warning("source_transport_error", error=str(e))
            return SourceResult.failed(self.name, SourceFailureKind.UPSTREAM_ERROR, str(e))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.warning("source_malformed_response", error=str(e))
            return SourceResult.failed(
                self.name, SourceFailureKind.MALFORMED_RESPONSE, str(e)
            )

        self.logger.info("source_query_complete", count=len(candidates))
        return SourceResult.ok(self.name, candidates)

    async def health_check(self) -> bool:
        """Check if this source can answer a trivial query."""
        result = await self.query(SourceQuery(query="sale", limit=1))
        return result.succeeded or result.failure == SourceFailureKind.NO_RESULTS_FOUND


class BaseAPISource(BaseSource):
    """Base class for structured product-data API sources.

    Provides the HTTP client factory; a client is created per query to
    avoid lifecycle issues across event loops.
    """

    source_type = "api"
    reliability = SourceReliability.STRUCTURED_API

    def __init__(self, api_key: str = "", timeout: float = 10.0):
        """Initialize API source.

        Args:
            api_key: Provider credential
            timeout: HTTP timeout in seconds
        """
        super().__init__()
        self.api_key = api_key
        self._timeout = timeout

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, **kwargs)

    def _require_key(self) -> None:
        if not self.api_key:
            raise SourceError(
                self.name,
                SourceFailureKind.BLOCKED_BY_TARGET.value,
                "API key not configured",
            )


class BaseScraperSource(BaseSource):
    """Base class for sources backed by headless-browser scrapers.

    Browser automation lives outside this service; scraper sources only
    consume the records the scrapers produce.
    """

    source_type = "scraper"
    reliability = SourceReliability.SCRAPED_HTML
