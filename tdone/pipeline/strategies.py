"""Ordered identification strategies, expressed as data.

Adding or removing a metadata source is a config change
(processing.tv_sources / processing.movie_sources), not a code change.
"""

from typing import List, Sequence, Tuple
from tdone.config.models import ProcessingConfig
from tdone.domain.models import MediaCategory, Strategy

AUTO_DETECT = Strategy(label="auto-detect")
# No source and no -non-strict: FileBot falls back on xattr metadata cached by earlier runs
LAST_RESORT = Strategy(label="cached identification (last resort)", non_strict=False)


def build_chain(sources: Sequence[str], category: MediaCategory) -> Tuple[Strategy, ...]:
    return tuple(Strategy(label=source, metadata_source=source, category=category) for source in sources)


class StrategyPlan:
    """The TV and movie chains for one run, and the order to walk them in."""

    def __init__(self, tv_chain: Sequence[Strategy], movie_chain: Sequence[Strategy]):
        self.tv_chain = tuple(tv_chain)
        self.movie_chain = tuple(movie_chain)

    @classmethod
    def from_config(cls, config: ProcessingConfig) -> "StrategyPlan":
        return cls(
            tv_chain=build_chain(config.tv_sources, MediaCategory.TV),
            movie_chain=build_chain(config.movie_sources, MediaCategory.MOVIE),
        )

    def chain_for(self, category: MediaCategory) -> Tuple[Strategy, ...]:
        return self.movie_chain if category == MediaCategory.MOVIE else self.tv_chain

    def chain_order(self, category: MediaCategory) -> List[MediaCategory]:
        """Primary chain first, the other as cross-fallback. Unknown walks TV then movie."""
        if category == MediaCategory.MOVIE:
            return [MediaCategory.MOVIE, MediaCategory.TV]
        return [MediaCategory.TV, MediaCategory.MOVIE]
