"""
Production Approval Workflow
Manufacturing sites (Standorte) and their alias spellings.

Location distribution maps are human-entered and have been stored under
several spellings over time ("doebeln", "Döbeln", "Doebeln", and the
mis-encoded "DÃ¶beln" from an early import).  Every comparison against a
location therefore goes through the alias table below; a key only counts
as "no match" after all known spellings of the location were checked.
"""

LOCATIONS = {
    "gudensberg": "Gudensberg",
    "brenz": "Brenz",
    "storkow": "Storkow",
    "visbek": "Visbek",
    "doebeln": "Döbeln",
}

# Extra spellings beyond the code and display name.
_EXTRA_ALIASES = {
    "doebeln": ("Doebeln", "Dobeln", "DÃ¶beln"),
}


def _normalize(key) -> str:
    return str(key).strip().casefold()


def location_aliases(code: str) -> frozenset[str]:
    """All recognised spellings of *code* (normalised)."""
    if code not in LOCATIONS:
        return frozenset()
    spellings = {code, LOCATIONS[code], *_EXTRA_ALIASES.get(code, ())}
    return frozenset(_normalize(s) for s in spellings)


_ALIAS_INDEX = {
    alias: code
    for code in LOCATIONS
    for alias in location_aliases(code)
}


def resolve_location_code(key) -> str | None:
    """Map any known spelling to its canonical location code, else None."""
    if key is None:
        return None
    return _ALIAS_INDEX.get(_normalize(key))


def location_matches(code: str, key) -> bool:
    """True if the distribution key *key* is one of the spellings of *code*."""
    return _normalize(key) in location_aliases(code)


def get_location_name(code: str) -> str:
    return LOCATIONS.get(code, code)


def list_locations() -> list[dict]:
    return [
        {"code": code, "name": name, "aliases": sorted(location_aliases(code))}
        for code, name in LOCATIONS.items()
    ]
