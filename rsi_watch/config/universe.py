"""Tracked symbol universe filtering."""

from collections.abc import Iterable


def filter_universe(
    tracked: Iterable[str],
    excluded: Iterable[str],
    quote_suffix: str
) -> list[str]:
    """
    Select the symbols to monitor.

    Keeps symbols quoted in ``quote_suffix`` that are not excluded, in their
    configured order, without duplicates.
    """
    excluded_set = set(excluded)
    selected = []
    seen = set()

    for symbol in tracked:
        if symbol in seen or symbol in excluded_set:
            continue
        if not symbol.endswith(quote_suffix):
            continue
        seen.add(symbol)
        selected.append(symbol)

    return selected
