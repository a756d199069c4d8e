# apbrowse/navigation.py
"""
Navigation state machine.

Fetched documents are nodes of a graph that is discovered one link at a
time and never materialized. The engine keeps the path the user took (the
history stack) and decides, for each event, whether a fetch is needed.

All state lives in a NavigationState owned by the event loop. The engine
mutates it only inside dispatch(), one event at a time, and answers with a
FetchCommand when the loop should start a fetch. Fetch results come back as
events carrying the generation they were issued under; completions from a
superseded generation are dropped.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, ClassVar, Dict, List, Optional, Union

from .fetch import FetchResult
from .links import extract_link

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Where the engine is in the fetch cycle."""
    IDLE = auto()
    FETCHING = auto()
    READY = auto()
    ERRORED = auto()


class EventKind(Enum):
    """Every kind of event the engine handles."""
    SUBMIT = auto()           # URI typed into the input and submitted
    EDIT = auto()             # Input text changed
    CLICK = auto()            # Document line clicked
    BACK = auto()             # Back affordance used
    RESIZE = auto()           # Terminal resized
    FETCH_COMPLETED = auto()  # Fetch returned a document
    FETCH_FAILED = auto()     # Fetch raised


@dataclass(frozen=True)
class Submit:
    uri: str
    kind: ClassVar[EventKind] = EventKind.SUBMIT


@dataclass(frozen=True)
class Edit:
    text: str
    kind: ClassVar[EventKind] = EventKind.EDIT


@dataclass(frozen=True)
class Click:
    line: int
    kind: ClassVar[EventKind] = EventKind.CLICK


@dataclass(frozen=True)
class Back:
    kind: ClassVar[EventKind] = EventKind.BACK


@dataclass(frozen=True)
class Resize:
    width: int
    height: int
    kind: ClassVar[EventKind] = EventKind.RESIZE


@dataclass(frozen=True)
class FetchCompleted:
    generation: int
    uri: str
    result: FetchResult
    kind: ClassVar[EventKind] = EventKind.FETCH_COMPLETED


@dataclass(frozen=True)
class FetchFailed:
    generation: int
    uri: str
    error: Exception
    kind: ClassVar[EventKind] = EventKind.FETCH_FAILED


Event = Union[Submit, Edit, Click, Back, Resize, FetchCompleted, FetchFailed]


@dataclass(frozen=True)
class FetchCommand:
    """Request from the engine to fetch uri under a generation."""
    uri: str
    generation: int


@dataclass
class HistoryEntry:
    """A visited URI and the document fetched for it, once there is one."""
    uri: str
    document: Optional[FetchResult] = None


@dataclass
class NavigationState:
    """
    Everything the interactive client displays.

    Attributes:
        history: Visited entries, oldest first; the tip is the current URI
        document: Document on screen
        status: Status line message
        phase: Fetch cycle phase
        uri_input: Contents of the URI input
        generation: Incremented for every fetch issued or abandoned
        width: Viewport width
        height: Viewport height
    """
    history: List[HistoryEntry] = field(default_factory=list)
    document: Optional[FetchResult] = None
    status: str = "init"
    phase: Phase = Phase.IDLE
    uri_input: str = ""
    generation: int = 0
    width: int = 80
    height: int = 24

    @property
    def current_uri(self) -> Optional[str]:
        return self.history[-1].uri if self.history else None

    @property
    def uris(self) -> List[str]:
        return [entry.uri for entry in self.history]

    def lines(self) -> List[str]:
        return self.document.lines() if self.document else []


class NavigationEngine:
    """
    Applies events to a NavigationState.

    Usage:
        engine = NavigationEngine()
        state = NavigationState()
        command = engine.dispatch(state, Submit("https://example.test/actor"))
        if command:
            start_fetch(command)
    """

    def __init__(self):
        self._handlers: Dict[EventKind, Callable[[NavigationState, Event], Optional[FetchCommand]]] = {
            EventKind.SUBMIT: self._on_submit,
            EventKind.EDIT: self._on_edit,
            EventKind.CLICK: self._on_click,
            EventKind.BACK: self._on_back,
            EventKind.RESIZE: self._on_resize,
            EventKind.FETCH_COMPLETED: self._on_fetch_completed,
            EventKind.FETCH_FAILED: self._on_fetch_failed,
        }
        missing = set(EventKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for event kinds: {sorted(k.name for k in missing)}")

    def dispatch(self, state: NavigationState, event: Event) -> Optional[FetchCommand]:
        """Apply one event; return the fetch to start, if any."""
        handler = self._handlers.get(getattr(event, "kind", None))
        if handler is None:
            raise TypeError(f"Not a navigation event: {event!r}")
        return handler(state, event)

    # Transitions

    def navigate_to(self, state: NavigationState, uri: str) -> Optional[FetchCommand]:
        """Push uri onto the history and fetch it, unless it is already current."""
        uri = uri.strip()
        if not uri or uri == state.current_uri:
            return None

        state.history.append(HistoryEntry(uri))
        state.uri_input = uri
        return self._begin_fetch(state, uri)

    def navigate_back(self, state: NavigationState) -> Optional[FetchCommand]:
        """Pop the history tip and show the previous entry."""
        if len(state.history) < 2:
            return None

        state.history.pop()
        entry = state.history[-1]
        state.uri_input = entry.uri

        if entry.document is None:
            return self._begin_fetch(state, entry.uri)

        # Abandon any fetch still running for the popped entry.
        state.generation += 1
        state.document = entry.document
        state.phase = Phase.READY
        state.status = f"restored: {entry.document.status_code}"
        return None

    def _begin_fetch(self, state: NavigationState, uri: str) -> FetchCommand:
        state.generation += 1
        state.phase = Phase.FETCHING
        state.status = f"fetching {uri}"
        return FetchCommand(uri=uri, generation=state.generation)

    def _is_stale(self, state: NavigationState, generation: int, uri: str) -> bool:
        if generation != state.generation:
            logger.debug(f"Dropping stale result for {uri} (generation {generation} != {state.generation})")
            return True
        return False

    # Handlers

    def _on_submit(self, state: NavigationState, event: Submit) -> Optional[FetchCommand]:
        return self.navigate_to(state, event.uri)

    def _on_edit(self, state: NavigationState, event: Edit) -> None:
        state.uri_input = event.text

    def _on_click(self, state: NavigationState, event: Click) -> Optional[FetchCommand]:
        target = extract_link(state.lines(), event.line)
        if target is None:
            return None

        if target.error:
            state.status = f"Error: {target.error}"
            return None
        if target.uri is None:
            state.status = target.text
            return None

        state.status = target.uri
        return self.navigate_to(state, target.uri)

    def _on_back(self, state: NavigationState, event: Back) -> Optional[FetchCommand]:
        return self.navigate_back(state)

    def _on_resize(self, state: NavigationState, event: Resize) -> None:
        state.width = event.width
        state.height = event.height

    def _on_fetch_completed(self, state: NavigationState, event: FetchCompleted) -> None:
        if self._is_stale(state, event.generation, event.uri):
            return

        state.document = event.result
        if state.history and state.history[-1].uri == event.uri:
            state.history[-1].document = event.result
        state.phase = Phase.READY
        state.status = f"fetched: {event.result.status_code}"

    def _on_fetch_failed(self, state: NavigationState, event: FetchFailed) -> None:
        if self._is_stale(state, event.generation, event.uri):
            return

        logger.warning(f"Fetch of {event.uri} failed: {event.error}")
        state.phase = Phase.ERRORED
        state.status = f"error: {event.error}"
