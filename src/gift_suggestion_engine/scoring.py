"""Relevance scoring of catalog items against recipient signals using the category keyword taxonomy."""

from __future__ import annotations

from dataclasses import dataclass

from gift_suggestion_engine.models import CatalogItem, CategoryKeywords, RecipientSignals, ScoreResult
from gift_suggestion_engine.profile import budget_band
from gift_suggestion_engine.taxonomy import TaxonomySnapshot, normalize_text, tokenize


# Free-text filler commonly typed into the "gifts to avoid" answer.
_AVOID_FILLER = {
    "nada",
    "nao",
    "sem",
    "para",
    "com",
    "uma",
    "uns",
    "umas",
    "que",
    "dos",
    "das",
    "nem",
    "tipo",
    "coisa",
    "coisas",
    "evitar",
    "presente",
    "presentes",
}

_GENDER_ALIASES = {
    "masculino": "masculino",
    "homem": "masculino",
    "male": "masculino",
    "m": "masculino",
    "feminino": "feminino",
    "mulher": "feminino",
    "female": "feminino",
    "f": "feminino",
}


@dataclass(frozen=True)
class ScoringWeights:
    keyword: float = 1.0
    category_name_bonus: float = 2.0
    budget_bonus: float = 1.5
    budget_penalty: float = -1.0
    avoid_penalty: float = -5.0
    priority_factor: float = 0.1
    gender_mismatch_penalty: float = -0.5
    age_mismatch_penalty: float = -0.5


DEFAULT_WEIGHTS = ScoringWeights()


def _stem(token: str) -> str:
    if len(token) > 3 and token.endswith("s"):
        return token[:-1]
    return token


def _signal_phrases(signals: RecipientSignals) -> list[str]:
    phrases = list(signals.interests)
    for value in (signals.gift_preference, signals.occasion, signals.lifestyle):
        if value:
            phrases.append(value)
    return phrases


def signal_tokens(signals: RecipientSignals) -> set[str]:
    tokens: set[str] = set()
    for phrase in _signal_phrases(signals):
        tokens.update(tokenize(phrase))
    return tokens


def avoid_tokens(gifts_to_avoid: str | None) -> set[str]:
    return {
        _stem(token)
        for token in tokenize(gifts_to_avoid)
        if len(token) > 2 and token not in _AVOID_FILLER
    }


def _item_tokens(item: CatalogItem) -> set[str]:
    tokens = {_stem(token) for token in tokenize(item.name)}
    for tag in item.tags:
        tokens.update(_stem(token) for token in tokenize(tag))
    return tokens


def _keyword_matches(keyword: str, tokens: set[str]) -> bool:
    keyword_tokens = tokenize(keyword)
    return bool(keyword_tokens) and all(token in tokens for token in keyword_tokens)


def score_item(
    signals: RecipientSignals,
    item: CatalogItem,
    categories: dict[str, CategoryKeywords],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoreResult:
    tokens = signal_tokens(signals)
    phrases = {normalize_text(phrase) for phrase in _signal_phrases(signals)}

    value = 0.0
    matched: list[str] = []
    reasons: list[str] = []
    best_category: str | None = None
    best_contribution = 0.0

    for category_id in sorted(item.category_ids):
        category = categories.get(category_id)
        if category is None or not category.is_active:
            continue

        contribution = 0.0
        for keyword in category.keywords:
            if _keyword_matches(keyword, tokens):
                contribution += weights.keyword
                if keyword not in matched:
                    matched.append(keyword)
        if normalize_text(category.name) in phrases:
            contribution += weights.category_name_bonus
            reasons.append(f"Interesse em {category.name}")

        if best_category is None or contribution > best_contribution:
            best_category = category.name
            best_contribution = contribution
        value += contribution

    if matched:
        reasons.append("Palavras-chave: " + ", ".join(matched[:4]))

    band = budget_band(signals.budget_range)
    if band is not None:
        low, high = band
        if item.price_min <= high and item.price_max >= low:
            value += weights.budget_bonus
            reasons.append("Dentro do orçamento")
        else:
            value += weights.budget_penalty
            reasons.append("Fora do orçamento")

    avoid = avoid_tokens(signals.gifts_to_avoid)
    if avoid and avoid & _item_tokens(item):
        value += weights.avoid_penalty
        reasons.append("Parecido com algo a evitar")

    target_gender = _GENDER_ALIASES.get(normalize_text(item.target_gender))
    recipient_gender = _GENDER_ALIASES.get(normalize_text(signals.gender))
    if target_gender and recipient_gender and target_gender != recipient_gender:
        value += weights.gender_mismatch_penalty

    target_age = normalize_text(item.target_age_range)
    recipient_age = normalize_text(signals.age_range)
    if target_age and target_age != "todos" and recipient_age and target_age != recipient_age:
        value += weights.age_mismatch_penalty

    # Priority only breaks ties between items that already match.
    if value > 0 and item.priority is not None and item.priority > 0:
        value += weights.priority_factor * item.priority

    return ScoreResult(
        value=round(value, 6),
        matched_keywords=matched,
        reasons=reasons,
        best_category=best_category,
    )


def _rank_key(entry: tuple[CatalogItem, ScoreResult]) -> tuple[float, float, str]:
    item, result = entry
    priority = float(item.priority) if item.priority is not None else float("-inf")
    return (-result.value, -priority, item.id)


def rank_items(
    signals: RecipientSignals,
    items: list[CatalogItem],
    taxonomy: TaxonomySnapshot,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[tuple[CatalogItem, ScoreResult]]:
    """Score every catalog item and return the matching ones best-first.

    Items scoring <= 0 are dropped. Ties fall back to priority (descending)
    and then item id, so the order is stable for an unchanged catalog.
    """
    categories = taxonomy.categories
    scored: list[tuple[CatalogItem, ScoreResult]] = []
    for item in items:
        if not taxonomy.is_gift_type_active(item.gift_type_id):
            continue
        result = score_item(signals, item, categories, weights)
        if result.value <= 0:
            continue
        scored.append((item, result))

    scored.sort(key=_rank_key)
    return scored
