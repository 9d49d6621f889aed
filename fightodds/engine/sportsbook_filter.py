"""
Sportsbook include / exclude / priority rules.
"""

from typing import Optional, Sequence

import structlog

from fightodds.config import DEFAULT_FILTER_CONFIG, SportsbookFilterConfig
from fightodds.models.schemas import OddsSnapshot

logger = structlog.get_logger()


class SportsbookFilter:
    """
    Selects and orders the quotes used for a fight.

    1. include set -> keep only those books
    2. else exclude set -> drop those books
    3. priority books move to the front in the given order; the rest
       keep their original relative order

    Names that match no book in the data are a logged no-op.
    """

    def __init__(self):
        self.logger = logger.bind(component="sportsbook_filter")

    def apply(
        self,
        quotes: Sequence[OddsSnapshot],
        config: Optional[SportsbookFilterConfig] = None,
    ) -> list[OddsSnapshot]:
        config = config or DEFAULT_FILTER_CONFIG
        if config.is_empty:
            return list(quotes)

        self._warn_unmatched(quotes, config)

        if config.include is not None:
            selected = [q for q in quotes if q.sportsbook in config.include]
        elif config.exclude is not None:
            selected = [q for q in quotes if q.sportsbook not in config.exclude]
        else:
            selected = list(quotes)

        if not config.priority_sportsbooks:
            return selected

        rank = {book: i for i, book in enumerate(config.priority_sportsbooks)}
        prioritized = sorted(
            (q for q in selected if q.sportsbook in rank),
            key=lambda q: rank[q.sportsbook],
        )
        others = [q for q in selected if q.sportsbook not in rank]
        return prioritized + others

    def _warn_unmatched(
        self,
        quotes: Sequence[OddsSnapshot],
        config: SportsbookFilterConfig,
    ) -> None:
        present = {q.sportsbook for q in quotes}
        referenced = set(config.include or ()) | set(config.exclude or ()) | set(config.priority_sportsbooks)
        missing = sorted(referenced - present)
        if missing:
            self.logger.warning(
                "Filter references sportsbooks absent from data",
                sportsbooks=missing,
            )


def apply_sportsbook_filter(
    quotes: Sequence[OddsSnapshot],
    config: Optional[SportsbookFilterConfig] = None,
) -> list[OddsSnapshot]:
    """Module-level shortcut for SportsbookFilter().apply."""
    return SportsbookFilter().apply(quotes, config)
