"""
Workflow controller: run analysis, score, suggest, apply fixes, undo.

The controller is the single owner of the analysis session, the latest
score breakdown, the latest suggestion bundle and the undo slot, and the
only writer of the document. The display layer reads its observables and
calls its four commands; it never sees an exception from them. Failures
end up in last_error instead.

State machine:

    IDLE --run_analysis--> ANALYZING --ok--> BENCHMARKED --score ok--> SCORED
                                                         SCORED <-> SUGGESTING / APPLYING

SCORED is re-entered after every successful score (manual, automatic or
after undo). There is no terminal state; close() drops everything.
"""

import asyncio
import html
import logging
from typing import Callable, Optional

from .adapters import (
    NO_SESSION_MESSAGE,
    Oracle,
    normalize_keywords,
    request_suggestions as fetch_suggestions,
    run_analysis as fetch_analysis,
    score_content,
)
from .config import WorkflowConfig
from .errors import AssistantError, PreconditionError, StaleResponseDiscard
from .models import (
    OBSERVED_FIELDS,
    AnalysisSession,
    ContentAnalysisResponse,
    ContentBreakdown,
    DocumentState,
    SuggestionBundle,
    UndoSnapshot,
    WorkflowState,
)
from .patch_applier import apply_suggestions
from .scheduler import RescoreScheduler

logger = logging.getLogger(__name__)


APPLY_IN_PROGRESS_MESSAGE = "AI fixes are already being applied."


class WorkflowController:
    """
    Orchestrates one editing session against the scoring service.

    Created per post being edited and discarded with it. Site and post
    context come in through the config; nothing is read from globals.
    """

    def __init__(
        self,
        oracle: Oracle,
        config: Optional[WorkflowConfig] = None,
        document: Optional[DocumentState] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Initialize the controller.

        Args:
            oracle: Scoring service (OracleClient or a compatible object).
            config: Session configuration. Defaults to WorkflowConfig().
            document: Initial document state loaded by the editor.
            loop: Event loop for the debounce timer. Defaults to the loop
                running when a document field changes.
        """
        self.oracle = oracle
        self.config = config or WorkflowConfig()

        self._document = document or DocumentState()
        self._session: Optional[AnalysisSession] = None
        self._breakdown: Optional[ContentBreakdown] = None
        self._suggestions: Optional[SuggestionBundle] = None
        self._undo: Optional[UndoSnapshot] = None
        self._last_error: Optional[str] = None

        self._analysis_issued = 0
        self._analyses_in_flight = 0
        self._suggesting = 0
        self._applying = False

        self._listeners: list[Callable[["WorkflowController"], None]] = []

        self.scheduler = RescoreScheduler(
            scorer=self._score,
            session_id_provider=lambda: self._session.id if self._session else None,
            document_provider=lambda: self._document,
            on_result=self._accept_score,
            on_error=self._report,
            delay=self.config.rescore_delay_seconds,
            on_activity=self._notify,
            loop=loop,
        )

    # =========================================================================
    # Observables
    # =========================================================================

    @property
    def document(self) -> DocumentState:
        return self._document

    @property
    def session(self) -> Optional[AnalysisSession]:
        return self._session

    @property
    def breakdown(self) -> Optional[ContentBreakdown]:
        return self._breakdown

    @property
    def suggestions(self) -> Optional[SuggestionBundle]:
        return self._suggestions

    @property
    def undo_snapshot(self) -> Optional[UndoSnapshot]:
        return self._undo

    @property
    def can_undo(self) -> bool:
        return self._undo is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_analyzing(self) -> bool:
        return self._analyses_in_flight > 0

    @property
    def is_scoring(self) -> bool:
        return self.scheduler.in_flight > 0

    @property
    def is_suggesting(self) -> bool:
        return self._suggesting > 0

    @property
    def is_applying(self) -> bool:
        return self._applying

    @property
    def state(self) -> WorkflowState:
        """Current state derived from what is held and what is in flight."""
        if self._applying:
            return WorkflowState.APPLYING
        if self._suggesting:
            return WorkflowState.SUGGESTING
        if self._analyses_in_flight:
            return WorkflowState.ANALYZING
        if self._session is None:
            return WorkflowState.IDLE
        if self._breakdown is None:
            return WorkflowState.BENCHMARKED
        return WorkflowState.SCORED

    def subscribe(
        self, listener: Callable[["WorkflowController"], None]
    ) -> Callable[[], None]:
        """
        Register a listener called after every observable change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_error(self) -> None:
        self._last_error = None
        self._notify()

    # =========================================================================
    # Document writes
    # =========================================================================

    def update_document(self, **changes) -> DocumentState:
        """
        The single write path for the document.

        Fires the edit signal when an observed field actually changes. Without
        an event loop the write still happens but no rescore is scheduled.

        Args:
            **changes: DocumentState fields to replace.

        Returns:
            The new document state.
        """
        unknown = set(changes) - set(OBSERVED_FIELDS)
        if unknown:
            raise TypeError(f"Unknown document fields: {', '.join(sorted(unknown))}")
        if "secondary_keywords" in changes:
            changes["secondary_keywords"] = tuple(
                normalize_keywords(changes["secondary_keywords"])
            )

        return self._write(self._document.with_changes(**changes))

    def set_content_html(self, content_html: str) -> DocumentState:
        return self.update_document(content_html=content_html)

    def set_meta_title(self, meta_title: str) -> DocumentState:
        return self.update_document(meta_title=meta_title)

    def set_meta_description(self, meta_description: str) -> DocumentState:
        return self.update_document(meta_description=meta_description)

    def set_keywords(self, primary_keyword: str, secondary_keywords=()) -> DocumentState:
        return self.update_document(
            primary_keyword=primary_keyword,
            secondary_keywords=secondary_keywords,
        )

    def insert_term(self, term: str) -> DocumentState:
        """Append a term as its own paragraph (the panel's click-to-insert)."""
        term = (term or "").strip()
        if not term:
            return self._document
        return self.set_content_html(
            f"{self._document.content_html}<p>{html.escape(term, quote=False)}</p>"
        )

    # =========================================================================
    # Commands
    # =========================================================================

    async def run_analysis(
        self,
        location: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Optional[AnalysisSession]:
        """
        Benchmark the document's primary keyword and score the draft.

        On success the previous breakdown and suggestions are dropped, since
        they belong to the old session, and the draft is scored right away.
        When two analyses overlap, the one issued last wins.

        Returns:
            The installed session, or None on failure or if superseded.
        """
        self._last_error = None
        self._analysis_issued += 1
        sequence = self._analysis_issued
        self._analyses_in_flight += 1
        self._notify()

        document = self._document
        try:
            session = await fetch_analysis(
                self.oracle,
                document.primary_keyword,
                location or self.config.default_location,
                language or self.config.default_language,
                document.secondary_keywords,
            )
        except AssistantError as e:
            if sequence == self._analysis_issued:
                self._report(e)
            return None
        finally:
            self._analyses_in_flight -= 1
            self._notify()

        if sequence != self._analysis_issued:
            logger.debug(
                f"Discarded stale analysis response #{sequence} "
                f"(latest is #{self._analysis_issued})"
            )
            return None

        self._install_session(session)
        await self._score_reporting_errors()
        return session

    async def rescore(self) -> Optional[ContentBreakdown]:
        """Score the current document now, bypassing the debounce."""
        self._last_error = None
        if not await self._score_reporting_errors():
            return None
        return self._breakdown

    async def request_suggestions(self) -> Optional[SuggestionBundle]:
        """Fetch AI-authored fixes for the current document without applying them."""
        self._last_error = None
        try:
            return await self._fetch_suggestions()
        except StaleResponseDiscard as e:
            logger.debug(str(e))
        except AssistantError as e:
            self._report(e)
        return None

    async def apply_fixes(self) -> bool:
        """
        Fetch AI-authored fixes and apply them to the document.

        The patch is applied to the document as it is when the suggestions
        arrive, and the pre-patch fields go into the undo slot. A second
        call while one is running is rejected.

        Returns:
            True if the document was changed.
        """
        if self._applying:
            logger.warning("Rejected apply_fixes: another apply is in flight")
            self._report(PreconditionError(APPLY_IN_PROGRESS_MESSAGE))
            return False

        self._last_error = None
        self._applying = True
        self._notify()
        try:
            bundle = await self._fetch_suggestions()
        except StaleResponseDiscard as e:
            logger.debug(str(e))
            return False
        except AssistantError as e:
            self._report(e)
            return False
        finally:
            self._applying = False
            self._notify()

        top_terms = self._session.nlp_terms.top_terms if self._session else ()
        result = apply_suggestions(self._document, bundle, top_terms, self.config)
        if not result.applied:
            logger.info("Suggestions had nothing to apply")
            return False

        self._undo = result.snapshot
        self.update_document(
            content_html=result.document.content_html,
            meta_title=result.document.meta_title,
            meta_description=result.document.meta_description,
        )
        logger.info(f"Applied AI fixes ({', '.join(result.changed_fields)})")
        return True

    def undo(self) -> bool:
        """
        Restore the document captured before the last applied fix.

        A no-op without a snapshot. The slot is cleared, so a second undo
        does nothing.

        Returns:
            True if a snapshot was restored.
        """
        if self._undo is None:
            return False

        snapshot = self._undo
        self._undo = None
        # Always signal, so the restored document is rescored
        self._write(snapshot.restore_onto(self._document), always_signal=True)
        logger.info("Reverted last AI fix")
        return True

    def close(self) -> None:
        """Tear down the session: stop pending rescoring and drop all state."""
        self.scheduler.close()
        self._analysis_issued += 1
        self._session = None
        self._breakdown = None
        self._suggestions = None
        self._undo = None
        self._last_error = None
        self._listeners.clear()

    # =========================================================================
    # Internals
    # =========================================================================

    def _write(self, updated: DocumentState, always_signal: bool = False) -> DocumentState:
        if updated == self._document and not always_signal:
            return self._document
        self._document = updated
        self.scheduler.notify_change()
        self._notify()
        return updated

    def _install_session(self, session: AnalysisSession) -> None:
        self._session = session
        self._breakdown = None
        self._suggestions = None
        self.scheduler.invalidate()
        self._notify()

    async def _score(self, session_id: str, document: DocumentState) -> ContentAnalysisResponse:
        return await score_content(
            self.oracle,
            session_id,
            document,
            base_url=self.config.base_url,
            blog_post_id=self.config.post_id,
        )

    async def _score_reporting_errors(self) -> bool:
        try:
            await self.scheduler.score_now()
        except StaleResponseDiscard as e:
            logger.debug(str(e))
            return False
        except AssistantError as e:
            self._report(e)
            return False
        return True

    def _accept_score(self, session_id: str, response: ContentAnalysisResponse) -> None:
        if self._session is None or self._session.id != session_id:
            raise StaleResponseDiscard("score", f"session {session_id} is no longer active")
        self._breakdown = response.breakdown
        self._suggestions = None
        self._notify()

    async def _fetch_suggestions(self) -> SuggestionBundle:
        if self._session is None:
            raise PreconditionError(NO_SESSION_MESSAGE)

        session_id = self._session.id
        missing = list(self._breakdown.missing_terms) if self._breakdown else []
        self._suggesting += 1
        self._notify()
        try:
            bundle = await fetch_suggestions(self.oracle, session_id, self._document, missing)
        finally:
            self._suggesting -= 1
            self._notify()

        if self._session is None or self._session.id != session_id:
            raise StaleResponseDiscard("suggestion", f"session {session_id} is no longer active")

        self._suggestions = bundle
        self._notify()
        return bundle

    def _report(self, error: AssistantError) -> None:
        self._last_error = error.message
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
