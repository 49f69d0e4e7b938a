"""Serving-side entry point: questionnaire answers -> wines + commentary."""

from typing import Callable, List, Optional
import logging
import time

from openai import OpenAI

from .commentary import generate_commentary
from .intent import parse_search_intent
from .models import RecommendationRequest, RecommendationResponse, WineType
from .search import DEFAULT_LIMIT, RowLookup, search_wines
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)

# Catalog descriptions are Japanese, so the query is phrased in Japanese too
TYPE_LABELS = {
    WineType.RED: "赤",
    WineType.WHITE: "白",
    WineType.ROSE: "ロゼ",
    WineType.SPARKLING: "スパークリング",
    WineType.DESSERT: "デザート",
}

PRICE_PHRASES = {
    "low": "リーズナブルな価格",
    "medium": "手頃な価格",
    "high": "プレミアムな",
}

NO_MATCH_COMMENTARY = "条件にぴったりのワインが見つかりませんでした。条件を変えてもう一度お試しください。"


def build_search_query(request: RecommendationRequest) -> str:
    """Join the answered facets into one natural-language search query."""
    parts: List[str] = []

    if request.type_preference:
        parts.append(f"{TYPE_LABELS[request.type_preference]}ワイン")
    if request.flavor_trend:
        parts.append(f"{request.flavor_trend}な味わい")
    if request.body:
        parts.append(f"{request.body}のボディ")
    if request.region:
        parts.append(f"{request.region}産")
    if request.occasion:
        parts.append(f"{request.occasion}向き")
    if request.price:
        parts.append(PRICE_PHRASES.get(request.price, ""))
    if request.user_prompt:
        parts.append(request.user_prompt.strip())

    return "、".join(part for part in parts if part)


def apply_search_intent(
    request: RecommendationRequest,
    client: Optional[OpenAI] = None,
) -> RecommendationRequest:
    """Fill an unanswered type/flavor facet from the free-text prompt."""
    if not request.user_prompt or (request.type_preference and request.flavor_trend):
        return request

    intent = parse_search_intent(request.user_prompt, client=client)
    updates = {}
    if not request.type_preference and "type" in intent:
        updates["type_preference"] = WineType(intent["type"])
    if not request.flavor_trend and "flavor" in intent:
        updates["flavor_trend"] = intent["flavor"]

    if updates:
        logger.debug("Search intent filled facets: %s", updates)
    return request.model_copy(update=updates)


def recommend(
    request: RecommendationRequest,
    store: RowLookup,
    index: VectorIndex,
    limit: int = DEFAULT_LIMIT,
    embedder: Optional[Callable[[List[str]], List[List[float]]]] = None,
    client: Optional[OpenAI] = None,
    use_intent: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> RecommendationResponse:
    """
    Search the catalog for the request and attach sommelier commentary.

    Raises:
        ValueError: If the request has no answered facet at all.
    """
    if use_intent:
        request = apply_search_intent(request, client=client)

    query = build_search_query(request)
    logger.info("Recommendation query: %s", query)

    wines = search_wines(query, store, index, limit=limit, embedder=embedder)
    if not wines:
        return RecommendationResponse(wines=[], commentary=NO_MATCH_COMMENTARY)

    commentary = generate_commentary(request, wines, client=client, sleep=sleep)
    return RecommendationResponse(wines=wines, commentary=commentary)
