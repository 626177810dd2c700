"""
Batch Orchestrator

Runs the statement composer for many authors with a bounded worker pool.
Each author is isolated: a failure becomes a failed Outcome and the rest of
the batch carries on. Preview and final generation share this code path;
the only difference is that final outcomes get a statement ID.
"""

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor

from .config import EngineConfig, TenantSettings
from .exceptions import RoyaltyEngineError
from .models import BatchResult, Outcome, PeriodBounds
from .output import OutputBuilder
from .processor import StatementComposer
from .repositories import Repositories

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """Generates statements for a set of authors within one period."""

    def __init__(
        self,
        composer: StatementComposer,
        config: EngineConfig | None = None,
        settings: TenantSettings | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.composer = composer
        self.config = config or EngineConfig()
        self.settings = settings or composer.settings
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    @property
    def max_workers(self) -> int:
        return max(1, self.settings.max_workers)

    def generate_batch(
        self,
        author_ids: Iterable[str],
        period: PeriodBounds,
        preview: bool = False,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> BatchResult:
        """
        Compose statements for every author and account for each one.

        Cancellation (via ``cancel_event`` or once ``timeout`` seconds have
        passed) stops new authors from starting. Authors already running
        finish normally; the rest are reported as cancelled.

        Outcomes are ordered by author ID.
        """
        authors = list(dict.fromkeys(str(a) for a in author_ids))
        cancel_event = cancel_event or threading.Event()
        timeout = timeout if timeout is not None else self.config.batch_timeout
        deadline = time.monotonic() + timeout if timeout is not None else None

        mode = "preview" if preview else "final"
        logger.info(
            f"Starting {mode} batch for {len(authors)} authors, period "
            f"{period.start_date.isoformat()} to {period.end_date.isoformat()}"
        )
        started = time.monotonic()

        def run(author_id: str) -> Outcome:
            if deadline is not None and time.monotonic() >= deadline:
                cancel_event.set()
            if cancel_event.is_set():
                return Outcome.cancelled(author_id)
            return self._compose_one(author_id, period, preview)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, max(1, len(authors)))) as executor:
            futures = [executor.submit(run, author_id) for author_id in authors]
            outcomes = [future.result() for future in futures]

        outcomes.sort(key=lambda o: o.author_id)
        duration_ms = int((time.monotonic() - started) * 1000)
        result = BatchResult(period=period, preview=preview, outcomes=tuple(outcomes), duration_ms=duration_ms)

        if result.cancelled:
            logger.warning(f"Batch cancelled: {result.cancelled} authors not processed")
        logger.info(
            f"Batch complete in {duration_ms}ms: {result.succeeded} succeeded, "
            f"{result.failed} failed, {result.cancelled} cancelled"
        )
        return result

    def preview(self, author_ids: Iterable[str], period: PeriodBounds, **kwargs) -> BatchResult:
        """Same pipeline as generation; results are returned, never persisted."""
        return self.generate_batch(author_ids, period, preview=True, **kwargs)

    def pending_royalties(self, author_ids: Iterable[str], period: PeriodBounds) -> list[tuple[str, str, int]]:
        """
        (author_id, name, pending net payable) for each author, largest first.
        Authors whose statement cannot be composed show 0.
        """
        result = self.preview(author_ids, period)
        rows = []
        for outcome in result.outcomes:
            if outcome.succeeded:
                payee = outcome.statement.payee
                name = payee.name if payee else outcome.author_id
                rows.append((outcome.author_id, name, outcome.statement.calculations.net_payable))
            else:
                rows.append((outcome.author_id, outcome.author_id, 0))
        rows.sort(key=lambda row: (-row[2], row[0]))
        return rows

    def _compose_one(self, author_id: str, period: PeriodBounds, preview: bool) -> Outcome:
        try:
            statement = self.composer.compose(author_id, period)
        except RoyaltyEngineError as e:
            return Outcome.failed(author_id, e.code, str(e))
        except Exception as e:
            logger.error(f"Unexpected error composing statement for author {author_id}: {str(e)}", exc_info=True)
            return Outcome.failed(author_id, "internal_error", str(e))

        statement_id = None if preview else self.id_factory()
        return Outcome.composed(author_id, statement, statement_id=statement_id)


# =============================================================================
# CONVENIENCE FUNCTIONS (API surfaces)
# =============================================================================


def _from_payload(data: dict, config: EngineConfig | None = None):
    config = config or EngineConfig.from_env()
    settings = TenantSettings.from_dict(data.get("tenant"), config)
    composer = StatementComposer(Repositories.from_snapshot(data), settings)
    period = PeriodBounds.from_dict(data["period"])
    return BatchOrchestrator(composer, config=config, settings=settings), period


def generate_from_dict(data: dict, preview: bool = False, config: EngineConfig | None = None) -> dict:
    """
    Run a batch from a snapshot payload and return the serialized result.
    Preview requests return preview rows and totals as well.
    """
    orchestrator, period = _from_payload(data, config)
    result = orchestrator.generate_batch(data.get("author_ids", []), period, preview=preview)

    builder = OutputBuilder()
    output = builder.build_batch(result)
    if preview:
        output["previewSummary"] = builder.build_preview(result)
    return output


def calculate_from_dict(data: dict, config: EngineConfig | None = None) -> dict:
    """Compose a single author's statement. Fatal errors propagate."""
    orchestrator, period = _from_payload(data, config)
    statement = orchestrator.composer.compose(str(data["author_id"]), period, data.get("contract_id"))
    return OutputBuilder().build_statement(statement)
