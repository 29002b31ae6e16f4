from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class BudgetRange:
    min: float
    max: Optional[float] = None  # None = no upper bound

    def contains(self, value: float) -> bool:
        if value < self.min:
            return False
        return self.max is None or value <= self.max

    def widen(self, pct: float) -> "BudgetRange":
        """
        Lower the floor and raise the ceiling by pct (0.2 = 20%).
        The floor never goes below zero; an open ceiling stays open.
        """
        lo = max(0.0, self.min * (1 - pct))
        hi = self.max * (1 + pct) if self.max is not None else None
        return BudgetRange(min=lo, max=hi)


# Buckets must match the quiz front-end labels (USD)
BUDGETS: Dict[str, BudgetRange] = {
    "$0-10": BudgetRange(0, 10),
    "$11-49": BudgetRange(11, 49),
    "$50-99": BudgetRange(50, 99),
    "$100-499": BudgetRange(100, 499),
    "$500-999": BudgetRange(500, 999),
    "$1000+": BudgetRange(1000, None),
}

INTEREST_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Sports & Outdoor": ("fitness", "gym accessories", "running", "cycling"),
    "Cooking & Food": ("coffee grinder", "kitchen gadget", "spice kit"),
    "Tech & Gadgets": ("mini projector", "smart lamp", "earbuds", "power bank"),
    "Art & DIY": ("calligraphy kit", "3d pen", "painting set"),
    "Travel & Adventure": ("scratch map", "packing cubes", "travel organizer"),
    "Books & Learning": ("puzzle", "brain teaser"),
    "Fashion & Accessories": ("minimalist wallet", "scarf", "jewelry"),
    "Home & Decor": ("aroma diffuser", "led strip", "desk lamp"),
}

# One-line reason shown on each card, keyed by quiz language
WHY_TEXT: Dict[str, str] = {
    "ru": "Под интересы и бюджет. Доставка в ваш регион.",
    "pt-BR": "Alinha interesses e orçamento. Envio para sua região.",
    "en": "Matches the interests and budget. Ships to your region.",
}

DEFAULT_BUCKET = "$11-49"
DEFAULT_INTEREST = "Tech & Gadgets"
GENERIC_KEYWORDS = "gift present"


@dataclass(frozen=True)
class Catalog:
    """
    Fixed lookup tables the recommender works from.
    Built once and handed to the planner/orchestrator so tests can swap it.
    """
    budgets: Mapping[str, BudgetRange] = field(default_factory=lambda: dict(BUDGETS))
    interest_keywords: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(INTEREST_KEYWORDS)
    )
    why_text: Mapping[str, str] = field(default_factory=lambda: dict(WHY_TEXT))
    default_bucket: str = DEFAULT_BUCKET
    default_interest: str = DEFAULT_INTEREST
    generic_keywords: str = GENERIC_KEYWORDS

    def resolve_bucket(self, label: Optional[str]) -> str:
        if label and label in self.budgets:
            return label
        return self.default_bucket

    def budget_for(self, label: Optional[str]) -> BudgetRange:
        return self.budgets[self.resolve_bucket(label)]

    def keyword_phrases(self, interests: Iterable[str]) -> List[str]:
        """
        Union of keyword phrases for the given interests, first-seen order.
        """
        out: List[str] = []
        for interest in interests or []:
            for phrase in self.interest_keywords.get(interest, ()):
                if phrase not in out:
                    out.append(phrase)
        return out

    def keywords_for(self, interests: Iterable[str]) -> str:
        phrases = self.keyword_phrases(interests)
        if not phrases:
            return self.generic_keywords
        return " ".join(phrases)

    def bucket_for_price(self, value: float) -> str:
        for label, rng in self.budgets.items():
            if rng.contains(value):
                return label
        return ""


DEFAULT_CATALOG = Catalog()
