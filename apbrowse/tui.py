# apbrowse/tui.py
"""
Curses front end.

Layout (rows):
    0-2   Back button (top-left box)
    3     URI input
    4     separator
    5..   document pane
    -2    separator
    -1    status line

Keys, mouse clicks, resizes and fetch completions all become events on one
queue. The loop takes them off one at a time and hands them to the
NavigationEngine, so NavigationState is only ever touched from this thread.
"""

import curses
import logging
import queue
from typing import List, Optional

from .fetch import FetchPipeline
from .links import LINK_PATTERN, find_links
from .navigation import (
    Back,
    Click,
    Edit,
    Event,
    NavigationEngine,
    NavigationState,
    Resize,
    Submit,
)
from .worker import FetchWorker

logger = logging.getLogger(__name__)

HEADER_HEIGHT = 5
FOOTER_HEIGHT = 2
BACK_BUTTON_WIDTH = 8
BACK_BUTTON_HEIGHT = 3
POLL_INTERVAL_MS = 50

KEY_CTRL_B = 2
KEY_CTRL_C = 3
KEY_CTRL_U = 21
KEY_ESC = 27


def is_back_button(x: int, y: int) -> bool:
    """Whether a click at (x, y) hits the back button."""
    return 0 <= x <= BACK_BUTTON_WIDTH and 0 <= y < BACK_BUTTON_HEIGHT


def document_line_at(y: int, scroll: int) -> int:
    """Document line index under screen row y."""
    return y - HEADER_HEIGHT + scroll


def pane_height(rows: int) -> int:
    return max(0, rows - HEADER_HEIGHT - FOOTER_HEIGHT)


class BrowserApp:
    """
    Interactive browser session.

    Args:
        pipeline: Pipeline used for every fetch
        worker: Fetch worker (defaults to a threaded one posting to the queue)
    """

    def __init__(self, pipeline: FetchPipeline, worker: Optional[FetchWorker] = None):
        self.events: "queue.Queue[Event]" = queue.Queue()
        self.engine = NavigationEngine()
        self.state = NavigationState()
        self.worker = worker or FetchWorker(pipeline, self.events.put)
        self.scroll = 0
        self.link_count = 0
        self._shown = None

    def post(self, event: Event):
        """Queue an event for the loop."""
        self.events.put(event)

    def handle(self, event: Event):
        """Apply one event and start any fetch it calls for."""
        command = self.engine.dispatch(self.state, event)
        if command is not None:
            logger.debug(f"Starting fetch {command.generation}: {command.uri}")
            self.worker.submit(command)

        if self.state.document is not self._shown:
            self._shown = self.state.document
            self.scroll = 0
            self.link_count = len(find_links(self._shown.text)) if self._shown else 0

    def process_pending(self) -> int:
        """Handle every queued event; returns how many were handled."""
        handled = 0
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return handled
            self.handle(event)
            handled += 1

    # Input

    def scroll_by(self, delta: int):
        lines = len(self.state.lines())
        limit = max(0, lines - pane_height(self.state.height))
        self.scroll = min(max(0, self.scroll + delta), limit)

    def on_mouse(self, x: int, y: int, bstate: int):
        wheel_down = getattr(curses, "BUTTON5_PRESSED", 0)
        if bstate & curses.BUTTON4_PRESSED:
            self.scroll_by(-3)
        elif wheel_down and bstate & wheel_down:
            self.scroll_by(3)
        elif bstate & (curses.BUTTON1_PRESSED | curses.BUTTON1_CLICKED):
            if is_back_button(x, y):
                self.post(Back())
            elif HEADER_HEIGHT <= y < HEADER_HEIGHT + pane_height(self.state.height):
                self.post(Click(document_line_at(y, self.scroll)))

    def on_key(self, stdscr, key: int) -> bool:
        """Translate a key into events; returns False to quit."""
        state = self.state
        page = max(1, pane_height(state.height) - 1)

        if key in (KEY_ESC, KEY_CTRL_C):
            return False
        if key in (curses.KEY_ENTER, 10, 13):
            self.post(Submit(state.uri_input))
        elif key in (curses.KEY_BACKSPACE, 127, 8):
            self.post(Edit(state.uri_input[:-1]))
        elif key == KEY_CTRL_U:
            self.post(Edit(""))
        elif key == KEY_CTRL_B:
            self.post(Back())
        elif key == curses.KEY_UP:
            self.scroll_by(-1)
        elif key == curses.KEY_DOWN:
            self.scroll_by(1)
        elif key == curses.KEY_PPAGE:
            self.scroll_by(-page)
        elif key == curses.KEY_NPAGE:
            self.scroll_by(page)
        elif key == curses.KEY_HOME:
            self.scroll = 0
        elif key == curses.KEY_END:
            self.scroll_by(len(state.lines()))
        elif key == curses.KEY_RESIZE:
            rows, cols = stdscr.getmaxyx()
            self.post(Resize(width=cols, height=rows))
        elif key == curses.KEY_MOUSE:
            try:
                _, x, y, _, bstate = curses.getmouse()
            except curses.error:
                return True
            self.on_mouse(x, y, bstate)
        elif 32 <= key <= 126:
            self.post(Edit(state.uri_input + chr(key)))
        return True

    # Output

    def visible_lines(self) -> List[str]:
        lines = self.state.lines()
        return lines[self.scroll:self.scroll + pane_height(self.state.height)]

    def render(self, stdscr):
        rows, cols = stdscr.getmaxyx()
        stdscr.erase()

        def put(y: int, x: int, text: str, attr: int = 0):
            if 0 <= y < rows and x < cols:
                try:
                    stdscr.addnstr(y, x, text, cols - x, attr)
                except curses.error:
                    # Writing the bottom-right cell moves the cursor off screen.
                    pass

        put(0, 0, "+" + "-" * BACK_BUTTON_WIDTH + "+")
        put(1, 0, "|" + "Back".center(BACK_BUTTON_WIDTH) + "|", curses.A_BOLD)
        put(2, 0, "+" + "-" * BACK_BUTTON_WIDTH + "+")
        summary = f"history: {len(self.state.history)}  links: {self.link_count}"
        put(1, BACK_BUTTON_WIDTH + 3, summary, curses.A_DIM)
        put(3, 0, "> " + self.state.uri_input)
        put(4, 0, "-" * cols)

        for offset, line in enumerate(self.visible_lines()):
            attr = curses.A_UNDERLINE if LINK_PATTERN.search(line) else 0
            put(HEADER_HEIGHT + offset, 0, line, attr)

        put(rows - 2, 0, "-" * cols)
        put(rows - 1, 0, f"Status: {self.state.status}", curses.A_REVERSE)

        cursor_x = min(cols - 1, 2 + len(self.state.uri_input))
        try:
            stdscr.move(3, cursor_x)
        except curses.error:
            pass
        stdscr.refresh()

    # Loop

    def run(self, stdscr, start_uri: Optional[str] = None):
        """Run the event loop until the user quits."""
        curses.mousemask(curses.ALL_MOUSE_EVENTS | curses.REPORT_MOUSE_POSITION)
        curses.mouseinterval(0)
        stdscr.keypad(True)
        stdscr.timeout(POLL_INTERVAL_MS)

        rows, cols = stdscr.getmaxyx()
        self.handle(Resize(width=cols, height=rows))
        if start_uri:
            self.post(Submit(start_uri))

        while True:
            self.process_pending()
            self.render(stdscr)
            try:
                key = stdscr.getch()
            except KeyboardInterrupt:
                break
            if key != -1 and not self.on_key(stdscr, key):
                break

        logger.info("Browser session ended")


def run_browser(pipeline: FetchPipeline, start_uri: Optional[str] = None):
    """Take over the terminal and browse until quit."""
    app = BrowserApp(pipeline)
    try:
        curses.wrapper(app.run, start_uri)
    except KeyboardInterrupt:
        pass
    return app.state
