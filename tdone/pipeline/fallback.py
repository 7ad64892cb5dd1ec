"""Fallback orchestrator: identify and organize one batch, trying every strategy in order.

Key responsibilities:
- Let the engine auto-detect first (strategy 1)
- Classify the batch from filenames and walk the matching metadata-source
  chain, then the other chain as cross-fallback (strategy 2)
- Fall back on identification data the engine cached earlier (strategy 3)
- Stop at the first strategy that affects files; log every attempt
- Work out which library the files went to, for the rescan

No strategy is ever run twice for the same batch.
"""

from typing import List, Optional
from tdone.domain.models import (
    ActionMode,
    ClassificationResult,
    FallbackOutcome,
    MediaBatch,
    MediaCategory,
    Strategy,
    StrategyAttempt,
)
from tdone.infrastructure.filebot import RenameEngine
from tdone.infrastructure.filebot_output import category_hint
from tdone.pipeline.classifier import classify
from tdone.pipeline.context import RunContext
from tdone.pipeline.strategies import AUTO_DETECT, LAST_RESORT, StrategyPlan

CHAIN_NAMES = {
    MediaCategory.TV: "TV",
    MediaCategory.MOVIE: "movie",
}


class FallbackOrchestrator:
    """Multi-strategy identification state machine.

    AutoDetect -> HeuristicClassify -> primary chain -> cross-fallback chain
    -> LastResort -> Exhausted, short-circuiting on the first success.

    Args:
        context: RunContext with config and logger.
        engine: RenameEngine used for every attempt (FileBotAdapter in production).
        plan: StrategyPlan with the TV and movie chains (defaults to config).
    """

    def __init__(self, context: RunContext, engine: RenameEngine, plan: Optional[StrategyPlan] = None):
        self.context = context
        self.engine = engine
        self.plan = plan or StrategyPlan.from_config(context.config.processing)
        self.logger = context.child("fallback")

    def _attempt(self, batch: MediaBatch, strategy: Strategy, attempts: List[StrategyAttempt]) -> StrategyAttempt:
        result = self.engine.invoke(
            batch,
            metadata_source=strategy.metadata_source,
            action=ActionMode.COMMIT,
            non_strict=strategy.non_strict,
        )
        attempt = StrategyAttempt(strategy=strategy, result=result)
        attempts.append(attempt)
        return attempt

    def _run_chain(
        self,
        batch: MediaBatch,
        category: MediaCategory,
        attempts: List[StrategyAttempt],
    ) -> Optional[StrategyAttempt]:
        name = CHAIN_NAMES[category]
        self.logger.info(f"Trying {name} database fallback chain")
        for strategy in self.plan.chain_for(category):
            self.logger.info(f"Trying {name} database: {strategy.label}")
            attempt = self._attempt(batch, strategy, attempts)
            if attempt.succeeded:
                self.logger.info(f"Success with {name} database: {strategy.label}")
                return attempt
            self.logger.info(f"Failed with {name} database: {strategy.label}")
        return None

    def _resolve_category(
        self,
        winner: StrategyAttempt,
        batch: MediaBatch,
        classification: Optional[ClassificationResult],
    ) -> MediaCategory:
        if winner.strategy.category is not None:
            return winner.strategy.category
        hint = category_hint(winner.result.output)
        if hint != MediaCategory.UNKNOWN:
            return hint
        if classification is None:
            classification = classify(batch.files, logger=self.logger)
        if classification.category == MediaCategory.TV:
            return MediaCategory.TV
        return MediaCategory.MOVIE

    def _succeed(
        self,
        batch: MediaBatch,
        winner: StrategyAttempt,
        attempts: List[StrategyAttempt],
        classification: Optional[ClassificationResult],
    ) -> FallbackOutcome:
        category = self._resolve_category(winner, batch, classification)
        return FallbackOutcome(
            succeeded=True,
            attempts=attempts,
            classification=classification,
            winner=winner,
            category=category,
        )

    def run(self, batch: MediaBatch) -> FallbackOutcome:
        attempts: List[StrategyAttempt] = []
        self.logger.info("Starting comprehensive fallback processing")

        # Strategy 1: let the engine decide
        self.logger.info("Strategy 1: FileBot auto-detection")
        attempt = self._attempt(batch, AUTO_DETECT, attempts)
        if attempt.succeeded:
            self.logger.info("Success: FileBot auto-detection")
            return self._succeed(batch, attempt, attempts, None)
        self.logger.info("Failed: FileBot auto-detection")

        # Strategy 2: heuristic classification + database chains
        self.logger.info("Strategy 2: Heuristic detection with database fallback")
        classification = classify(batch.files, logger=self.logger)
        if classification.category == MediaCategory.TV:
            self.logger.info("Detected as TV show, trying TV database chain")
        elif classification.category == MediaCategory.MOVIE:
            self.logger.info("Detected as movie, trying movie database chain")
        else:
            self.logger.info("Unknown type, trying both TV and movie databases")

        order = self.plan.chain_order(classification.category)
        for index, chain_category in enumerate(order):
            if index > 0 and classification.conclusive:
                self.logger.info(
                    f"Failed: {CHAIN_NAMES[order[0]]} database chain, "
                    f"trying {CHAIN_NAMES[chain_category]} databases as fallback"
                )
            winner = self._run_chain(batch, chain_category, attempts)
            if winner is not None:
                self.logger.info(f"Success: {CHAIN_NAMES[chain_category]} database chain")
                return self._succeed(batch, winner, attempts, classification)

        # Strategy 3: cached identification
        self.logger.info("Strategy 3: xattr cache (last resort)")
        attempt = self._attempt(batch, LAST_RESORT, attempts)
        if attempt.succeeded:
            self.logger.info("Success: xattr cache")
            return self._succeed(batch, attempt, attempts, classification)
        self.logger.info("Failed: xattr cache")

        self.logger.error(f"Error: All fallback strategies exhausted ({len(attempts)} attempts)")
        return FallbackOutcome(
            succeeded=False,
            attempts=attempts,
            classification=classification,
            category=classification.category,
        )
