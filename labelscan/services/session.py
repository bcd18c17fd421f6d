"""
Live scanning sessions.

A camera scanner feeds the same label to OCR many times a second. Each
session fuses those noisy observations: every time a value is seen again its
accumulated confidence rises by a fixed step (capped at 1.0), and once the
leading value is confident enough it is selected.

Observations are debounced: a new observation cancels the pending one, so
only the latest frame of a burst is processed.
"""

import re
import uuid
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional

from labelscan.config import settings
from labelscan.services.expiration import ExpirationDateParser
from labelscan.services.nutrition import NutritionParser
from labelscan.services.shopping import ShoppingListParser
from labelscan.utils.candidates import Candidate
from labelscan.utils.scoring import rank_candidates

logger = logging.getLogger(__name__)

# Ledger values are rounded so that repeated float additions compare equal
LEDGER_PRECISION = 6


class SessionNotFoundError(LookupError):
    """Raised when a session handle is unknown or already closed."""


class SessionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    ACCUMULATING = "accumulating"
    CONFIRMED = "confirmed"


class ScanDomain(str, Enum):
    DATE = "date"
    NUTRITION = "nutrition"
    SHOPPING = "shopping"


@dataclass(frozen=True)
class DomainExtractor:
    """How a session finds candidates in one domain and when two are "the same"."""
    domain: ScanDomain
    find_all: Callable[[str], List[Candidate]]
    key: Callable[[Any], Hashable]
    describe: Callable[[Any], str]
    label: str
    idle_hint: str


def build_extractor(
    domain: ScanDomain,
    date_parser: Optional[ExpirationDateParser] = None,
    nutrition_parser: Optional[NutritionParser] = None,
    shopping_parser: Optional[ShoppingListParser] = None,
) -> DomainExtractor:
    """
    Build the extractor for a scan domain.

    Raises:
        ValueError: If the domain is unknown
    """
    domain = ScanDomain(domain)

    if domain == ScanDomain.DATE:
        parser = date_parser or ExpirationDateParser()
        return DomainExtractor(
            domain=domain,
            find_all=parser.find_all_dates,
            key=lambda value: value,
            describe=parser.format_date,
            label="Date",
            idle_hint="Point camera at expiration date",
        )

    if domain == ScanDomain.NUTRITION:
        parser = nutrition_parser or NutritionParser()
        return DomainExtractor(
            domain=domain,
            find_all=parser.find_all_fields,
            key=lambda value: (value.field, value.amount),
            describe=lambda value: f"{value.field.replace('_', ' ')} {value.amount:g}{value.unit or ''}",
            label="Nutrition",
            idle_hint="Point camera at nutrition label",
        )

    parser = shopping_parser or ShoppingListParser()
    return DomainExtractor(
        domain=domain,
        find_all=parser.parse_shopping_utterance,
        key=lambda item: (item.name.lower(), item.quantity, item.unit),
        describe=lambda item: item.display(),
        label="Item",
        idle_hint="Say the items to add",
    )


class ConfidenceLedger:
    """Accumulated confidence per value key. Values only grow until the ledger is replaced."""

    def __init__(self, step: float):
        self.step = step
        self._scores: Dict[Hashable, float] = {}

    def bump(self, key: Hashable) -> float:
        """Add one step for key (capped at 1.0) and return the new value."""
        score = round(min(1.0, self._scores.get(key, 0.0) + self.step), LEDGER_PRECISION)
        self._scores[key] = score
        return score

    def get(self, key: Hashable) -> float:
        return self._scores.get(key, 0.0)

    def snapshot(self) -> Dict[Hashable, float]:
        return dict(self._scores)

    def __len__(self) -> int:
        return len(self._scores)


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent read-only view of a session."""
    id: str
    domain: ScanDomain
    state: SessionState
    candidates: List[Candidate]
    best: Optional[Candidate]
    selected: Optional[Candidate]
    hint: str
    last_text: Optional[str]
    observations: int
    history_size: int


class ExtractionSession:
    """
    One live scanning flow.

    All mutation (processing, selection, reset) happens under the session
    lock, so a reset can never interleave with a half-applied observation.
    """

    def __init__(
        self,
        session_id: str,
        extractor: DomainExtractor,
        debounce_ms: Optional[int] = None,
        confidence_step: Optional[float] = None,
        select_threshold: Optional[float] = None,
        hint_threshold: Optional[float] = None,
        history_size: Optional[int] = None,
        top_n: Optional[int] = None,
    ):
        self.id = session_id
        self.extractor = extractor
        self.debounce_seconds = (settings.SESSION_DEBOUNCE_MS if debounce_ms is None else debounce_ms) / 1000
        self.confidence_step = settings.SESSION_CONFIDENCE_STEP if confidence_step is None else confidence_step
        self.select_threshold = settings.SESSION_SELECT_THRESHOLD if select_threshold is None else select_threshold
        self.hint_threshold = settings.SESSION_HINT_THRESHOLD if hint_threshold is None else hint_threshold
        self.history_size = settings.SESSION_HISTORY_SIZE if history_size is None else history_size
        self.top_n = settings.SESSION_TOP_N if top_n is None else top_n

        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._closed = False

        self.state = SessionState.IDLE
        self._clear()

    def _clear(self):
        self.ledger = ConfidenceLedger(self.confidence_step)
        self.history: deque = deque(maxlen=self.history_size)
        self.candidates: List[Candidate] = []
        self.best: Optional[Candidate] = None
        self.selected: Optional[Candidate] = None
        self._explicit_selection = False
        self.hint = self.extractor.idle_hint
        self.last_text: Optional[str] = None
        self.observations = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self):
        with self._lock:
            self._ensure_open()
            self.state = SessionState.LISTENING

    def _ensure_open(self):
        if self._closed:
            raise SessionNotFoundError(self.id)

    def _cancel_timer(self):
        """Cancel pending work. Caller holds the lock."""
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def observe(self, text: str):
        """
        Queue an OCR observation; it is processed after the debounce delay
        unless a newer observation arrives first. Blank text is ignored.
        """
        if not text or not text.strip():
            return

        with self._lock:
            self._ensure_open()
            self._cancel_timer()
            generation = self._generation
            self._timer = threading.Timer(self.debounce_seconds, self._run_scheduled, args=(text, generation))
            self._timer.daemon = True
            self._timer.start()

    def observe_now(self, text: str):
        """Process an observation immediately, dropping any pending one."""
        if not text or not text.strip():
            return

        with self._lock:
            self._ensure_open()
            self._cancel_timer()
            self._process(text)

    def _run_scheduled(self, text: str, generation: int):
        with self._lock:
            if self._closed or generation != self._generation:
                return
            self._timer = None
            self._process(text)

    def _process(self, text: str):
        """Extract, accumulate and rank one observation. Caller holds the lock."""
        self.last_text = text
        self.observations += 1

        try:
            found = self.extractor.find_all(text)
        except (re.error, ValueError, AttributeError):
            logger.warning("Error processing observation", exc_info=True, extra={"session_id": self.id})
            return

        if not found:
            return

        scored = [
            candidate.with_confidence(self.ledger.bump(self.extractor.key(candidate.value)))
            for candidate in found
        ]
        ranked = rank_candidates(scored)

        self.history.extend(ranked)
        self.candidates = ranked[:self.top_n]
        self.best = ranked[0]

        # Automatic selections follow the latest frame; explicit ones stick
        if not self._explicit_selection:
            if self.best.confidence >= self.select_threshold:
                if self.selected is None or self.selected.value != self.best.value:
                    logger.info("Session confirmed", extra={
                        "session_id": self.id,
                        "domain": self.extractor.domain.value,
                        "rule_id": self.best.rule_id,
                        "confidence": self.best.confidence,
                    })
                self.selected = self.best
            else:
                self.selected = None

        if self.selected is not None:
            self.state = SessionState.CONFIRMED
        else:
            self.state = SessionState.ACCUMULATING

        if self.best.confidence >= self.hint_threshold:
            self.hint = f"{self.extractor.label} detected: {self.extractor.describe(self.best.value)}"
        else:
            self.hint = f"Looking for {self.extractor.label.lower()}..."

    def select(self, candidate: Candidate):
        """Pin the caller's choice; later observations never replace it."""
        with self._lock:
            self._ensure_open()
            self.selected = candidate
            self._explicit_selection = True
            self.state = SessionState.CONFIRMED

    def select_manual(self, value: Any) -> Candidate:
        """Record a value typed in by the user as a fully confident selection."""
        candidate = Candidate(
            value=value,
            original_text="Manual entry",
            confidence=1.0,
            rule_id='manual',
            format_used='manual',
        )
        self.select(candidate)
        return candidate

    def reset(self):
        """Discard everything learned so far and start listening again."""
        with self._lock:
            self._ensure_open()
            self._cancel_timer()
            self._clear()
            self.state = SessionState.LISTENING
        logger.info("Session reset", extra={"session_id": self.id})

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._cancel_timer()
            self._closed = True
            self.state = SessionState.IDLE

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until any pending debounced observation has run. Returns False on timeout."""
        with self._lock:
            timer = self._timer
        if timer is None:
            return True
        timer.join(timeout)
        return not timer.is_alive()

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                id=self.id,
                domain=self.extractor.domain,
                state=self.state,
                candidates=list(self.candidates),
                best=self.best,
                selected=self.selected,
                hint=self.hint,
                last_text=self.last_text,
                observations=self.observations,
                history_size=len(self.history),
            )


class SessionManager:
    """Registry of open sessions keyed by handle."""

    def __init__(
        self,
        clock: Optional[Callable[[], date]] = None,
        **session_options,
    ):
        """
        Args:
            clock: "today" for date sessions; defaults to date.today
            session_options: Overrides passed to every ExtractionSession
                (debounce_ms, confidence_step, select_threshold, ...)
        """
        self._clock = clock
        self._session_options = session_options
        self._sessions: Dict[str, ExtractionSession] = {}
        self._lock = threading.Lock()
        self._date_parser = ExpirationDateParser(clock=clock)
        self._nutrition_parser = NutritionParser()
        self._shopping_parser = ShoppingListParser()

    def open_session(self, domain: ScanDomain = ScanDomain.DATE) -> str:
        """
        Open a session for a scan domain.

        Returns:
            Session handle

        Raises:
            ValueError: If the domain is unknown
        """
        extractor = build_extractor(
            domain,
            date_parser=self._date_parser,
            nutrition_parser=self._nutrition_parser,
            shopping_parser=self._shopping_parser,
        )
        session = ExtractionSession(uuid.uuid4().hex, extractor, **self._session_options)
        session.start()

        with self._lock:
            self._sessions[session.id] = session

        logger.info("Session opened", extra={"session_id": session.id, "domain": extractor.domain.value})
        return session.id

    def get(self, handle: str) -> ExtractionSession:
        with self._lock:
            session = self._sessions.get(handle)
        if session is None:
            raise SessionNotFoundError(handle)
        return session

    def observe(self, handle: str, text: str):
        self.get(handle).observe(text)

    def observe_now(self, handle: str, text: str):
        self.get(handle).observe_now(text)

    def select(self, handle: str, candidate: Candidate):
        self.get(handle).select(candidate)

    def select_manual(self, handle: str, value: Any) -> Candidate:
        return self.get(handle).select_manual(value)

    def reset(self, handle: str):
        self.get(handle).reset()

    def close(self, handle: str):
        with self._lock:
            session = self._sessions.pop(handle, None)
        if session is None:
            raise SessionNotFoundError(handle)
        session.close()
        logger.info("Session closed", extra={"session_id": handle})

    def close_all(self):
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
