from datetime import date

FRENCH_MONTHS: dict[str, int] = {
    "janvier": 1,
    "février": 2,
    "fevrier": 2,
    "mars": 3,
    "avril": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "août": 8,
    "aout": 8,
    "septembre": 9,
    "octobre": 10,
    "novembre": 11,
    "décembre": 12,
    "decembre": 12,
}


def to_iso_date(day: str, month: str, year: str) -> str | None:
    """'12', 'juillet', '2024' -> '2024-07-12'. None when any part is invalid."""
    month_number = FRENCH_MONTHS.get(month.strip().lower())
    if month_number is None:
        return None
    try:
        return date(int(year), month_number, int(day)).isoformat()
    except ValueError:
        return None


def parse_iso_date(value: str | None) -> str | None:
    """Validate an optional ISO date string, returning None when blank or invalid."""
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        return None
