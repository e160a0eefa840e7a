"""Session lifecycle: upload parsing, lookups and edits."""

import logging
from pathlib import Path
from typing import Protocol

from wine_value.config import AppConfig
from wine_value.core.enums import SessionStatus
from wine_value.core.errors import (
    ConfigurationError,
    InvalidWineIndexError,
    LookupConflictError,
    SessionNotReadyError,
)
from wine_value.core.schema import ParseResult, Session, WineEdit, WineRecord, WineValueResult
from wine_value.enrichment.cache import ResultCache
from wine_value.enrichment.orchestrator import LookupOrchestrator
from wine_value.enrichment.rate_limit import DailyQuotaGate, IntervalGate
from wine_value.enrichment.scheduler import LookupReport, WaveScheduler
from wine_value.enrichment.sources.community import CommunityScoreSource
from wine_value.enrichment.sources.price_api import PriceApiSource
from wine_value.enrichment.sources.web_search import WebSearchSource
from wine_value.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class WineListParser(Protocol):
    """Anything that turns a wine list file into a ParseResult."""

    async def parse_document(self, file_path: Path | str) -> ParseResult: ...


class SessionService:
    """
    Service coordinating sessions, parsing and enrichment.

    All methods run on one event loop. ``begin_lookup`` checks and sets the
    session status without awaiting, so two concurrent starts cannot both
    pass the conflict check.
    """

    def __init__(
        self,
        store: SessionStore,
        cache: ResultCache,
        scheduler: WaveScheduler,
        parser: WineListParser | None = None,
        quota: DailyQuotaGate | None = None,
    ):
        """
        Initialize the session service.

        Args:
            store: Session snapshot store.
            cache: Lookup result cache shared with the scheduler.
            scheduler: Wave scheduler that performs lookups.
            parser: Document parser; None when no AI key is configured.
            quota: Daily quota of the price API, for reporting.
        """
        self.store = store
        self.cache = cache
        self.scheduler = scheduler
        self.parser = parser
        self.quota = quota

    @classmethod
    def from_config(cls, config: AppConfig) -> "SessionService":
        """Wire the full enrichment stack from configuration."""
        from wine_value.services.ai.client import get_agent_client
        from wine_value.services.ai.document_parser import DocumentParser

        cache = ResultCache(ttl_seconds=config.cache.ttl_hours * 3600)
        quota = DailyQuotaGate(config.price_api.daily_limit)
        price_source = PriceApiSource(config.price_api, quota=quota)

        search_source = None
        community_source = None
        parser = None
        if config.ai_configured:
            agent = get_agent_client("anthropic", config.anthropic_api_key, config.search.model)
            search_source = WebSearchSource(
                agent, config.search, IntervalGate(config.search.requests_per_second)
            )
            community_source = CommunityScoreSource(agent, config.community)
            parser = DocumentParser(
                api_key=config.anthropic_api_key,
                model=config.search.model,
                max_tokens=config.upload.parser_max_tokens,
                timeout=config.upload.parser_timeout,
            )
        else:
            logger.warning("ANTHROPIC_API_KEY not set: parsing and web search are disabled")

        orchestrator = LookupOrchestrator(price_source, search_source, community_source, cache)
        scheduler = WaveScheduler(
            orchestrator,
            cache,
            wave_size=config.scheduler.wave_size,
            retry_pass=config.scheduler.retry_pass,
        )
        return cls(
            store=SessionStore(ttl_minutes=config.sessions.ttl_minutes),
            cache=cache,
            scheduler=scheduler,
            parser=parser,
            quota=quota,
        )

    def create_session(self) -> Session:
        """Create and store a new session in status ``parsing``."""
        session = Session()
        self.store.put(session)
        return session

    def get_session(self, session_id: str) -> Session:
        """Return the current snapshot of a session."""
        return self.store.require(session_id)

    async def parse_upload(
        self,
        session_id: str,
        file_path: Path | str,
        delete_after: bool = False,
    ) -> Session:
        """
        Parse an uploaded wine list into the session.

        Failures never propagate: the session ends in status ``error`` with
        the message attached.

        Args:
            session_id: The session created for this upload.
            file_path: Path of the uploaded file.
            delete_after: Remove the file once parsing finished.

        Returns:
            The resulting session snapshot.
        """
        session = self.store.require(session_id)
        try:
            if self.parser is None:
                raise ConfigurationError("ANTHROPIC_API_KEY is not configured")
            result = await self.parser.parse_document(file_path)
        except Exception as e:
            logger.error(f"Parse failed for session {session_id}: {e}")
            session = session.evolve(status=SessionStatus.ERROR, error=str(e))
        else:
            session = session.evolve(
                status=SessionStatus.PARSED,
                currency=result.currency,
                wines=[WineValueResult.from_record(wine) for wine in result.wines],
                error=None,
            )
            logger.info(f"Session {session_id}: parsed {len(result.wines)} wines ({result.currency})")
        finally:
            if delete_after:
                Path(file_path).unlink(missing_ok=True)

        self.store.put(session)
        return session

    def begin_lookup(self, session_id: str) -> Session:
        """
        Move a session to ``looking_up``.

        Raises:
            SessionNotFoundError: If the session does not exist.
            LookupConflictError: If a lookup is already running.
            SessionNotReadyError: If the session is still parsing or failed.
        """
        session = self.store.require(session_id)
        if session.status == SessionStatus.LOOKING_UP:
            raise LookupConflictError(session_id)
        if session.status not in (SessionStatus.PARSED, SessionStatus.COMPLETE):
            raise SessionNotReadyError(
                f"Session is {session.status.value}, lookups need a parsed wine list"
            )

        session = session.evolve(status=SessionStatus.LOOKING_UP, error=None)
        self.store.put(session)
        return session

    async def run_lookup(self, session_id: str) -> LookupReport:
        """Enrich the pending wines of a session that was moved to ``looking_up``."""
        session = self.store.require(session_id)
        return await self.scheduler.run(session, self.store.put)

    def edit_wine(self, session_id: str, index: int, edit: WineEdit) -> WineValueResult:
        """
        Apply a user edit to one wine and reset its enrichment.

        Args:
            session_id: The session id.
            index: Position of the wine in the session.
            edit: The validated partial edit.

        Returns:
            The edited wine, back in status ``pending``.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionNotReadyError: While parsing or looking up.
            InvalidWineIndexError: If the index is out of range.
        """
        session = self.store.require(session_id)
        if session.status in (SessionStatus.PARSING, SessionStatus.LOOKING_UP):
            raise SessionNotReadyError(f"Cannot edit wines while the session is {session.status.value}")
        if not 0 <= index < len(session.wines):
            raise InvalidWineIndexError(index)

        current = session.wines[index].to_record()
        self.cache.invalidate(current, session.currency)

        data = current.model_dump()
        data.update(edit.changes())
        edited = WineValueResult.from_record(WineRecord.model_validate(data))

        wines = list(session.wines)
        wines[index] = edited
        self.store.put(session.evolve(wines=wines))
        return edited

    def remaining_api_calls(self) -> int:
        """Price API calls left today."""
        return self.quota.remaining() if self.quota is not None else 0

    def cache_size(self) -> int:
        """Number of cached lookup results."""
        return len(self.cache)
