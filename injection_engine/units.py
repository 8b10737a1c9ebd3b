"""Unit normalization.

Maps free-text units from extracted documents onto the MKG unit vocabulary.
Unknown units are passed through lower-cased; nothing is rejected here.
"""

import logging
from typing import Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "st."

# canonical unit -> synonyms (upper-case)
UNIT_SYNONYMS: Dict[str, tuple] = {
    "st.": ("ST", "STK", "STUK", "STUKS", "PIECE", "PIECES", "PC", "PCS", "EA", "EACH", "ITEM", "ITEMS"),
    "m": ("M", "MTR", "METER", "METRE", "METERS", "METRES"),
    "mm": ("MM", "MILLIMETER", "MILLIMETRE"),
    "cm": ("CM", "CENTIMETER", "CENTIMETRE"),
    "kg": ("KG", "KILOGRAM", "KILOGRAMS"),
    "g": ("G", "GRAM", "GRAMS"),
    "t": ("T", "TON", "TONS", "TONNE", "TONNES"),
    "l": ("L", "LITER", "LITRE", "LITERS", "LITRES"),
    "ml": ("ML", "MILLILITER", "MILLILITRE"),
    "m²": ("M2", "M²", "SQM", "SQUARE METER", "SQUARE METRE"),
    "uur": ("H", "HR", "HOUR", "HOURS", "UUR", "UREN"),
    "set": ("SET", "SETS"),
    "paar": ("PAIR", "PAIRS", "PR"),
    "pak": ("PACK", "PACKAGE", "PACKAGES", "PKG"),
    "doos": ("BOX", "BOXES"),
}

_LOOKUP: Dict[str, str] = {
    synonym: canonical
    for canonical, synonyms in UNIT_SYNONYMS.items()
    for synonym in synonyms
}

VALID_UNITS: FrozenSet[str] = frozenset(UNIT_SYNONYMS)

# Revision field names whose old/new values are units
UNIT_FIELDS: FrozenSet[str] = frozenset({
    "unit", "eenh", "eenheid", "measurement_unit", "uom", "um",
    "vorr_eenh_order", "vofr_eenh_order", "order_unit", "quote_unit",
})


def normalize_unit(unit: Optional[str]) -> str:
    """Map a unit string to its canonical MKG unit.

    Examples:
        "PCS" -> "st."
        " mtr " -> "m"
        "" -> "st."
        "Rol" -> "rol" (logged as unknown)
    """
    if unit is None or not unit.strip():
        return DEFAULT_UNIT

    cleaned = unit.strip()
    canonical = _LOOKUP.get(cleaned.upper())
    if canonical is not None:
        return canonical
    if cleaned in VALID_UNITS:
        return cleaned

    fallback = cleaned.lower()
    logger.warning(f"Unknown unit '{unit}', passing through as '{fallback}'")
    return fallback


def is_unit_field(field_name: Optional[str]) -> bool:
    """True if a revision field change carries unit values."""
    return bool(field_name) and field_name.strip().lower() in UNIT_FIELDS
