"""Terminal texthooker: live view of lines arriving over WebSocket.

TUI = window onto the session. Connection handling lives in
SocketConnection; this module only wires keys and widgets to the session's
signals.
"""

from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widgets import Footer, Input, RichLog, Static

from texthooker import logging as console
from texthooker.config import Config, validate_websocket_url
from texthooker.connection import TransportFactory
from texthooker.errors import ConfigurationError
from texthooker.models import ConnectionState, LineEvent
from texthooker.session import Session, Slot
from texthooker.signals import Subscription

# Dracula palette, matching the border colors used elsewhere
STATE_COLORS = {
    ConnectionState.CONNECTING: "#f1fa8c",
    ConnectionState.OPEN: "#50fa7b",
    ConnectionState.CLOSING: "#ffb86c",
    ConnectionState.CLOSED: "#ff5555",
}

STATE_LABELS = {
    ConnectionState.CONNECTING: "connecting",
    ConnectionState.OPEN: "connected",
    ConnectionState.CLOSING: "closing",
    ConnectionState.CLOSED: "disconnected",
}


def format_line(text: str, preserve_whitespace: bool) -> str:
    """Prepare received text for display."""
    return text if preserve_whitespace else text.strip()


class ConnectionStatus(Static):
    """One-line status for a target slot, border colored by state."""

    DEFAULT_CSS = """
    ConnectionStatus {
        height: 3;
        padding: 0 1;
        border: solid #ff5555;
        border-title-align: left;
    }
    """

    state: reactive[ConnectionState] = reactive(ConnectionState.CLOSED, always_update=True)

    def __init__(self, slot_name: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.slot_name = slot_name
        self.url: str | None = None

    def on_mount(self) -> None:
        self.border_title = self.slot_name.upper()
        self._render_status()

    def set_state(self, state: ConnectionState, url: str | None) -> None:
        """Show a newly published state."""
        self.url = url
        self.state = state

    def watch_state(self, state: ConnectionState) -> None:
        self._render_status()

    def _render_status(self) -> None:
        color = STATE_COLORS[self.state]
        self.styles.border = ("solid", color)
        self.update(
            Text.assemble(
                (f"● {STATE_LABELS[self.state]}", f"bold {color}"),
                "  ",
                (self.url or "(no target)", "dim"),
            )
        )


class LineLog(Static):
    """Scrolling list of received lines."""

    DEFAULT_CSS = """
    LineLog {
        height: 1fr;
        border: solid $primary;
        border-title-align: left;
    }

    LineLog RichLog {
        width: 100%;
        height: 100%;
    }
    """

    def __init__(self, max_lines: int = 1000, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._max_lines = max_lines
        self.count = 0

    def compose(self) -> ComposeResult:
        yield RichLog(id="line-log", wrap=True, max_lines=self._max_lines)

    def on_mount(self) -> None:
        self.border_title = "LINES"

    def add_line(self, text: str) -> None:
        """Append one line."""
        self.count += 1
        self.border_subtitle = f"{self.count} lines"
        try:
            self.query_one("#line-log", RichLog).write(Text(text))
        except NoMatches:
            pass

    def clear(self) -> None:
        """Remove every line."""
        self.count = 0
        self.border_subtitle = ""
        try:
            self.query_one("#line-log", RichLog).clear()
        except NoMatches:
            pass


class TexthookerApp(App):
    """Displays lines received on the configured WebSocket targets."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #url-input {
        display: none;
    }

    #url-input.editing {
        display: block;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reconnect", "Reconnect"),
        ("d", "disconnect", "Disconnect"),
        ("a", "toggle_auto_reconnect", "Auto-reconnect"),
        ("u", "edit_url", "Edit URL"),
        ("c", "clear", "Clear"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        transport_factory: TransportFactory | None = None,
    ):
        super().__init__()
        self.config = config or Config.load()
        self.session = Session(self.config, transport_factory=transport_factory)
        self._subscriptions: list[Subscription] = []

    def compose(self) -> ComposeResult:
        """Create the TUI layout."""
        for slot in self.session.slots:
            yield ConnectionStatus(slot.name, id=f"status-{slot.name}")
        yield LineLog(max_lines=self.config.display.max_lines, id="lines")
        yield Input(placeholder="ws://host:port", id="url-input")
        yield Footer()

    def on_mount(self) -> None:
        """Subscribe to the session and start connecting."""
        self.title = self.config.display.window_title
        self._subscriptions.append(self.session.lines.subscribe(self._on_line))
        for slot in self.session.slots:
            self._subscriptions.append(
                slot.state.subscribe(lambda state, slot=slot: self._on_state(slot, state))
            )
        self._subscriptions.append(
            self.session.auto_reconnect.subscribe(lambda _enabled: self._update_sub_title())
        )
        self.session.start()
        self.set_interval(self.config.connection.reconnect_interval, self.session.tick)

    def on_unmount(self) -> None:
        """Close connections and drop subscriptions."""
        self.session.close()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    # Actions

    def action_reconnect(self) -> None:
        """Reconnect every configured target now."""
        self.session.reconnect_all()

    def action_disconnect(self) -> None:
        """Close every connection (auto-reconnect may reopen them)."""
        self.session.disconnect_all()

    def action_toggle_auto_reconnect(self) -> None:
        """Flip the auto-reconnect flag."""
        enabled = self.session.toggle_auto_reconnect()
        self.notify(f"Auto-reconnect {'on' if enabled else 'off'}")

    def action_edit_url(self) -> None:
        """Show the URL input for the primary target."""
        try:
            url_input = self.query_one("#url-input", Input)
        except NoMatches:
            return
        url_input.value = self.session.slots[0].target.value or ""
        url_input.add_class("editing")
        url_input.focus()

    def action_clear(self) -> None:
        """Clear displayed lines."""
        try:
            self.query_one("#lines", LineLog).clear()
        except NoMatches:
            pass

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Apply an edited URL to the primary target."""
        try:
            url = validate_websocket_url(event.value)
        except ConfigurationError as e:
            self.notify(str(e), severity="error")
            return
        event.input.remove_class("editing")
        self.session.set_target(0, url)

    # Session callbacks

    def _on_line(self, event: LineEvent) -> None:
        text = format_line(event.text, self.config.display.preserve_whitespace)
        try:
            self.query_one("#lines", LineLog).add_line(text)
        except NoMatches:
            pass

    def _on_state(self, slot: Slot, state: ConnectionState) -> None:
        try:
            self.query_one(f"#status-{slot.name}", ConnectionStatus).set_state(
                state, slot.target.value
            )
        except NoMatches:
            pass
        self._update_sub_title()

    def _update_sub_title(self) -> None:
        auto = "on" if self.session.auto_reconnect.value else "off"
        targets = [s for s in self.session.slots if s.target.value]
        live = sum(1 for s in targets if s.state.value == ConnectionState.OPEN)
        self.sub_title = f"{live}/{len(targets)} connected · auto-reconnect {auto}"


def run_tui(config: Config | None = None) -> None:
    """Run the TUI application."""
    config = config or Config.load()
    # Create config file with defaults if it doesn't exist
    if not config.config_path.exists():
        config.save()
        console.config_created(str(config.config_path))
    console.configure(config, source="tui")
    app = TexthookerApp(config)
    app.run()
