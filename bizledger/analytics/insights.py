"""
Business Insight Text

Templated sentences built from the profit margin and the top seller.
This is string formatting, not inference: the same inputs always give the
same text, and no model or network service is involved.
"""

from decimal import Decimal
from typing import Optional

from bizledger.models.ledger import Language


_TEMPLATES = {
    Language.ENGLISH: (
        "Your business is performing well with a {margin:.1f}% profit margin. "
        "{top} is your top seller. "
        "Consider restocking popular items and optimizing expenses."
    ),
    Language.LUGANDA: (
        "Bizinensi yo ekola bulungi nga profit margin ya {margin:.1f}%. "
        "{top} y'ekintu ekitundibwa ennyo. "
        "Weekendeeze ku kuzingiza ebintu ebitundibwa n'okukendeeza ku nsaasaanya."
    ),
}

# Shown in place of the product name before anything has been sold
_NO_TOP_SELLER = {
    Language.ENGLISH: "Focus on inventory",
    Language.LUGANDA: "Weekendeeze ku bintu",
}


def generate_insight(
    language: Language,
    margin: Decimal,
    top_product: Optional[str],
) -> str:
    return _TEMPLATES[language].format(
        margin=margin,
        top=top_product or _NO_TOP_SELLER[language],
    )


def generate_insights(
    margin: Decimal,
    top_product: Optional[str],
) -> dict[Language, str]:
    """The insight sentence in every supported language."""
    return {
        language: generate_insight(language, margin, top_product)
        for language in Language
    }
