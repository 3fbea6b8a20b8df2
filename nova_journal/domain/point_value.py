"""Contract point values for futures symbols."""

from typing import Callable, List, Tuple


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda symbol: any(n in symbol for n in needles)


class PointValueResolver:
    """Maps a symbol to the dollar value of a 1.0 price move per contract."""

    DEFAULT_POINT_VALUE = 1.0

    # Evaluated top to bottom, first match wins. Micro roots that contain a
    # full-size root ("MGC" contains "GC") must sit above it.
    RULES: List[Tuple[Callable[[str], bool], float]] = [
        (_contains("MGC"), 10.0),
        (_contains("ES", "MES"), 50.0),
        (_contains("NQ", "MNQ"), 20.0),
        (_contains("RTY", "M2K"), 50.0),
        (_contains("GC"), 100.0),
        (_contains("CL", "MCL"), 1000.0),
        # Unreachable: the "NQ" rule above already matches every MNQ symbol,
        # so MNQ resolves to 20. Open question, see DESIGN.md before reordering.
        (_contains("MNQ"), 2.0),
    ]

    @staticmethod
    def resolve(symbol: str) -> float:
        """
        Resolve point value for a symbol.

        Unknown symbols get DEFAULT_POINT_VALUE, meaning the price difference
        is taken as already being in dollars.
        """
        key = (symbol or "").strip().upper()
        for matches, value in PointValueResolver.RULES:
            if matches(key):
                return value
        return PointValueResolver.DEFAULT_POINT_VALUE
