# tests/test_tui.py
"""Tests for the curses front end's event handling (no terminal needed)."""

import curses

import pytest

from apbrowse.fetch import FetchResult, pretty_json
from apbrowse.navigation import Back, Click, Edit, FetchCompleted, Submit
from apbrowse.tui import (
    HEADER_HEIGHT,
    BrowserApp,
    document_line_at,
    is_back_button,
    pane_height,
)


class RecordingWorker:
    """Worker that records commands instead of fetching."""

    def __init__(self):
        self.commands = []

    def submit(self, command):
        self.commands.append(command)


def document(uri: str, lines: int = 3) -> FetchResult:
    body = ('{"id": "%s", "items": [%s]}' % (uri, ", ".join(str(i) for i in range(lines)))).encode()
    text, is_json = pretty_json(body)
    return FetchResult(uri=uri, status_code=200, body=body, text=text, is_json=is_json)


@pytest.fixture
def worker():
    return RecordingWorker()


@pytest.fixture
def app(worker):
    return BrowserApp(pipeline=None, worker=worker)


def drain(app):
    return [app.events.get_nowait() for _ in range(app.events.qsize())]


class TestLayout:
    """Test screen geometry helpers."""

    def test_back_button_area(self):
        assert is_back_button(0, 0)
        assert is_back_button(8, 2)
        assert not is_back_button(9, 1)
        assert not is_back_button(3, 3)

    def test_document_line_at(self):
        assert document_line_at(HEADER_HEIGHT, 0) == 0
        assert document_line_at(HEADER_HEIGHT + 4, 10) == 14

    def test_pane_height(self):
        assert pane_height(24) == 17
        assert pane_height(3) == 0


class TestBrowserApp:
    """Test BrowserApp event flow."""

    def test_submit_starts_fetch(self, app, worker):
        app.post(Submit("https://a.test/actor"))
        assert app.process_pending() == 1
        assert [c.uri for c in worker.commands] == ["https://a.test/actor"]

    def test_completion_resets_scroll(self, app, worker):
        app.handle(Submit("https://a.test/actor"))
        app.scroll = 5
        command = worker.commands[0]
        app.handle(FetchCompleted(command.generation, command.uri, document(command.uri)))
        assert app.scroll == 0
        assert app.state.document.uri == "https://a.test/actor"
        assert app.link_count == 1

    def test_scroll_bounds(self, app, worker):
        app.state.height = HEADER_HEIGHT + 2 + 5
        app.handle(Submit("https://a.test/actor"))
        command = worker.commands[0]
        app.handle(FetchCompleted(command.generation, command.uri, document(command.uri, lines=20)))

        app.scroll_by(-3)
        assert app.scroll == 0
        app.scroll_by(1000)
        assert app.scroll == len(app.state.lines()) - 5
        assert len(app.visible_lines()) == 5


class TestInput:
    """Test key and mouse translation."""

    def test_typing_edits_input(self, app):
        app.on_key(None, ord("h"))
        app.process_pending()
        app.on_key(None, ord("i"))
        app.process_pending()
        assert app.state.uri_input == "hi"

    def test_backspace(self, app):
        app.state.uri_input = "abc"
        app.on_key(None, 127)
        assert drain(app) == [Edit("ab")]

    def test_enter_submits_input(self, app):
        app.state.uri_input = "https://a.test/actor"
        app.on_key(None, 10)
        assert drain(app) == [Submit("https://a.test/actor")]

    def test_escape_quits(self, app):
        assert app.on_key(None, 27) is False

    def test_ctrl_b_goes_back(self, app):
        app.on_key(None, 2)
        assert drain(app) == [Back()]

    def test_click_back_button(self, app):
        app.on_mouse(3, 1, curses.BUTTON1_PRESSED)
        assert drain(app) == [Back()]

    def test_click_document_line(self, app):
        app.scroll = 2
        app.on_mouse(10, HEADER_HEIGHT + 1, curses.BUTTON1_CLICKED)
        assert drain(app) == [Click(3)]

    def test_click_outside_pane(self, app):
        app.on_mouse(10, 3, curses.BUTTON1_PRESSED)
        assert drain(app) == []

    def test_click_link_navigates(self, app, worker):
        app.handle(Submit("https://a.test/actor"))
        first = worker.commands[0]
        doc = document("https://a.test/outbox")
        app.handle(FetchCompleted(first.generation, first.uri, doc))
        index = next(i for i, line in enumerate(doc.lines()) if "https://a.test/outbox" in line)

        app.on_mouse(0, HEADER_HEIGHT + index, curses.BUTTON1_PRESSED)
        app.process_pending()

        assert worker.commands[-1].uri == "https://a.test/outbox"
        assert app.state.uris == ["https://a.test/actor", "https://a.test/outbox"]
