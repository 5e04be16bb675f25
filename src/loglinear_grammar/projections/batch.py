"""Projection of a whole corpus to anchored rule scorers on a worker pool.

Each sentence is independent. A sentence whose scorer cannot be built is
logged and gets the identity scorer, so one bad sentence never aborts the
batch.
"""

import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Hashable, List, Optional, Sequence

from ..parser.span_scorer import IDENTITY, SpanScorer
from .anchored import AnchoredRuleScorerFactory

logger = logging.getLogger(__name__)


@dataclass
class ProjectionResult:
    """Outcome for one sentence.

    Attributes
    ----------
    position : int
        Index of the sentence in the input corpus
    words : List
        The sentence
    scorer : SpanScorer
        Anchored scorer, or the identity scorer on failure
    error : Optional[str]
        Failure message, ``None`` on success
    """
    position: int
    words: List[Hashable]
    scorer: SpanScorer
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _project_single(factory: AnchoredRuleScorerFactory,
                    position: int,
                    words: Sequence[Hashable]) -> ProjectionResult:
    try:
        scorer = factory.make_span_scorer(words)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Sentence %d: %s; using identity scorer", position, exc)
        return ProjectionResult(position, list(words), IDENTITY, str(exc))
    return ProjectionResult(position, list(words), scorer)


def project_corpus(factory: AnchoredRuleScorerFactory,
                   sentences: Sequence[Sequence[Hashable]],
                   max_workers: int = 1,
                   serial: bool = False,
                   use_processes: bool = False,
                   settings=None) -> List[ProjectionResult]:
    """Build one scorer per sentence.

    Parameters
    ----------
    factory : AnchoredRuleScorerFactory
        Scorer factory; shared read-only by all workers
    sentences : Sequence[Sequence]
        Tokenized sentences
    max_workers : int, default=1
        Size of the worker pool
    serial : bool, default=False
        Run in the calling thread regardless of ``max_workers``
    use_processes : bool, default=False
        Use a process pool instead of a thread pool (the factory must be picklable)
    settings : Optional[Settings]
        When given, its ``n_workers`` and ``use_processes`` replace
        ``max_workers`` and ``use_processes``

    Returns
    -------
    List[ProjectionResult]
        One result per sentence, in input order
    """
    if settings is not None:
        max_workers = settings.n_workers
        use_processes = settings.use_processes

    start = time.time()
    results: List[Optional[ProjectionResult]] = [None] * len(sentences)

    if serial or max_workers <= 1:
        logger.info("Projecting %d sentences serially", len(sentences))
        for position, words in enumerate(sentences):
            results[position] = _project_single(factory, position, words)
    else:
        logger.info("Projecting %d sentences in parallel (%d workers)", len(sentences), max_workers)
        pool_cls = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
        executor: Executor
        with pool_cls(max_workers=max_workers) as executor:
            future_to_position = {
                executor.submit(_project_single, factory, position, words): position
                for position, words in enumerate(sentences)
            }
            try:
                for future in as_completed(future_to_position):
                    position = future_to_position[future]
                    try:
                        results[position] = future.result()
                    except Exception as exc:  # pylint: disable=broad-except
                        logger.error("Sentence %d failed: %s", position, exc)
                        results[position] = ProjectionResult(
                            position, list(sentences[position]), IDENTITY, str(exc))
            except KeyboardInterrupt:
                logger.warning("Keyboard interrupt received; cancelling remaining sentences")
                executor.shutdown(cancel_futures=True)
                raise

    failures = sum(1 for r in results if r is not None and not r.ok)
    logger.info("Projected %d sentences in %.1f s (%d failures)",
                len(sentences), time.time() - start, failures)
    return results
