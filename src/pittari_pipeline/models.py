"""Data Models Module

Defines Pydantic models for the wine catalog at each stage of the
pipeline: raw marketplace items, classifier verdicts, normalized catalog
rows, index-ready embedding vectors, and the request/response shapes of
the recommendation path.
"""

from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class WineType(str, Enum):
    RED = "Red"
    WHITE = "White"
    ROSE = "Rose"
    SPARKLING = "Sparkling"
    DESSERT = "Dessert"


# Defaults applied when the classifier accepts a wine but omits a field
DEFAULT_WINE_TYPE = WineType.RED
DEFAULT_REGION = "unknown"
DEFAULT_FLAVOR_PROFILE = "full-bodied"
DEFAULT_COUNTRY = "France"


class CatalogItem(BaseModel):
    """Raw marketplace listing as returned by the catalog source.

    Never mutated by the pipeline; normalization produces a new
    WineRecord instead.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    price: int  # minor currency units (yen)
    caption: str = ""
    image_urls: List[str] = []
    item_url: str = ""

    @classmethod
    def from_rakuten(cls, item: Dict[str, Any]) -> "CatalogItem":
        """Build from a Rakuten Ichiba ``Item`` object."""
        images = [
            entry.get("imageUrl")
            for entry in (item.get("mediumImageUrls") or [])
            if isinstance(entry, dict) and entry.get("imageUrl")
        ]
        return cls(
            name=item.get("itemName") or "",
            price=int(item.get("itemPrice") or 0),
            caption=item.get("itemCaption") or "",
            image_urls=images,
            item_url=item.get("itemUrl") or "",
        )


class ClassificationResult(BaseModel):
    """Verdict of the wine classifier.

    ``alcohol_type`` is always populated: either what the model called the
    product, or a diagnostic code (``unknown``, ``api_error``,
    ``empty_response``, ``parse_error``, ``exception``) when the call failed.
    Attribute fields are only set for accepted wines.
    """
    is_wine: bool
    alcohol_type: str
    type: Optional[WineType] = None
    region: Optional[str] = None
    flavor_profile: Optional[str] = None
    country: Optional[str] = None

    @model_validator(mode="after")
    def _attributes_only_for_wine(self) -> "ClassificationResult":
        if not self.is_wine:
            populated = [
                name
                for name in ("type", "region", "flavor_profile", "country")
                if getattr(self, name) is not None
            ]
            if populated:
                raise ValueError(
                    f"attributes {populated} must be empty when is_wine is false"
                )
        return self

    @classmethod
    def rejected(cls, alcohol_type: str) -> "ClassificationResult":
        return cls(is_wine=False, alcohol_type=alcohol_type)


class WineRecord(BaseModel):
    """Normalized catalog row, as stored in the catalog store."""
    id: Optional[int] = None
    name: str
    type: WineType
    region: str = DEFAULT_REGION
    flavor_profile: str = DEFAULT_FLAVOR_PROFILE
    country: str = DEFAULT_COUNTRY
    description: str = ""
    image_url: str = ""
    affiliate_url: str = ""
    price_range: str = ""


class EmbeddingVector(BaseModel):
    """Index-ready vector for one catalog row.

    Metadata is a small projection of the row kept for debugging and
    filtering at the index layer; it plays no part in ranking.
    """
    id: str
    values: List[float]
    metadata: Dict[str, Any] = {}

    @classmethod
    def from_record(cls, record: WineRecord, values: List[float]) -> "EmbeddingVector":
        return cls(
            id=str(record.id),
            values=values,
            metadata={
                "name": record.name,
                "type": record.type.value,
                "price_range": record.price_range,
                "country": record.country,
            },
        )


class IndexMatch(BaseModel):
    """One nearest-neighbour hit returned by the vector index."""
    id: str
    score: float = 0.0
    metadata: Dict[str, Any] = {}


class IngestionCursor(BaseModel):
    """Next unprocessed slice of the catalog: rows [offset, offset + page_size)."""
    model_config = ConfigDict(validate_assignment=True)

    offset: int = 0
    page_size: int = 20

    @field_validator("offset")
    @classmethod
    def _clamp_offset(cls, value: int) -> int:
        return max(0, value)

    @field_validator("page_size")
    @classmethod
    def _positive_page_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"page_size must be positive, got {value}")
        return value


class IngestionResult(BaseModel):
    processed: int
    total: int
    next_cursor: Optional[IngestionCursor] = None

    @property
    def complete(self) -> bool:
        return self.next_cursor is None


class CurationStats(BaseModel):
    """Counters for one curation run (filter -> classify -> store)."""
    fetched: int = 0
    filtered_out: int = 0
    rejected: int = 0
    accepted: int = 0
    rejection_reasons: Dict[str, int] = Field(default_factory=dict)

    def record_rejection(self, reason: str) -> None:
        self.rejected += 1
        self.rejection_reasons[reason] = self.rejection_reasons.get(reason, 0) + 1


class RecommendationRequest(BaseModel):
    """Questionnaire answers plus free text; every facet is optional."""
    type_preference: Optional[WineType] = None
    occasion: Optional[str] = None
    flavor_trend: Optional[str] = None
    user_prompt: Optional[str] = None
    body: Optional[str] = None
    region: Optional[str] = None
    price: Optional[str] = None  # low / medium / high


class RecommendationResponse(BaseModel):
    wines: List[WineRecord]
    commentary: str
