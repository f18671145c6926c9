#!/usr/bin/env python3
"""OmniRadio - internet radio browser and player for the terminal."""

import asyncio
import sys
from typing import Awaitable, Callable, List, Optional, Set

import readchar
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from omniradio.config import get_config_dir, load_config
from omniradio.directory import Category, StationDirectory, filter_by_name
from omniradio.errors import DirectoryError, Notice
from omniradio.events import NoticeRaised, SessionEventBus, StateChanged
from omniradio.library import StationLibrary
from omniradio.log import setup_logging
from omniradio.mpv_backend import MpvBackend
from omniradio.player import PlaybackPhase, SessionState, Station
from omniradio.session import Direction, PlaybackSession

console = Console()

# EQ-style animation (vertical bars)
SPINNER_FRAMES = ["▂▄", "▄▆", "▆█", "█▆", "▆▄", "▄▂", "▂▆", "▆▂"]
CONNECTING_FRAMES = ["·  ", "·· ", "···", " ··", "  ·", "   "]


HELP_TEXT = """
[bold magenta]OmniRadio Controls[/bold magenta]

[magenta]c[/magenta]  Countries           [magenta]l[/magenta]  Languages
[magenta]g[/magenta]  Genres              [magenta]t[/magenta]  Top voted
[magenta]/[/magenta]  Search by name      [magenta]f[/magenta]  Favorites
[magenta]r[/magenta]  Recently played     [magenta]*[/magenta]  Favorite current
[magenta]n[/magenta]  Next station        [magenta]p[/magenta]  Previous station
[magenta]space[/magenta] Pause/Resume     [magenta]i[/magenta]  Station info
[magenta]h[/magenta]  Show help           [magenta]q[/magenta]  Quit
"""

PHASE_COLORS = {
    PlaybackPhase.CONNECTING: "\033[33m",  # Yellow
    PlaybackPhase.PLAYING: "\033[38;2;29;185;84m",  # Green
    PlaybackPhase.PAUSED: "\033[2m",
    PlaybackPhase.FAILED: "\033[91m",
}


class OmniRadio:
    """Main application class."""

    def __init__(self):
        self.config = load_config()
        config_dir = get_config_dir()
        setup_logging(
            config_dir / "omniradio.log",
            self.config.get("general", {}).get("log_level", "INFO"),
        )

        player_config = self.config.get("player", {})
        directory_config = self.config.get("directory", {})
        self.list_limit = int(directory_config.get("list_limit", 50))
        self.directory = StationDirectory(directory_config)
        self.library = StationLibrary(
            config_dir, self.config.get("library", {}).get("recents_limit", 100)
        )
        self.events = SessionEventBus()
        self.session = PlaybackSession(
            MpvBackend(player_config),
            self.events,
            ready_timeout=float(player_config.get("ready_timeout", 15)),
        )

        self.stations: List[Station] = []  # Navigation context for n/p
        self.running = False
        self.spinner_idx = 0
        self._state = SessionState()
        self._last_recorded: Optional[str] = None
        self._favorite = False  # Current station is a favorite
        self._prompting = False  # Suppress status line while asking for input
        self._tasks: Set[asyncio.Task] = set()

    # -- status line --------------------------------------------------------

    def _clear_status(self):
        """Clear the status line."""
        sys.stdout.write("\r\033[2K")
        sys.stdout.flush()

    def _get_status_line(self) -> str:
        """Generate the status line with spinner and colors."""
        state = self._state
        station = state.current_station
        if not station:
            return "\033[2m  No station playing\033[0m"

        reset = "\033[0m"
        bold = "\033[1m"
        dim = "\033[2m"
        white = "\033[97m"
        color = PHASE_COLORS.get(state.phase, white)

        if state.phase == PlaybackPhase.PAUSED:
            spinner = "⏸"
        elif state.phase == PlaybackPhase.FAILED:
            spinner = "✗"
        elif state.phase == PlaybackPhase.CONNECTING or state.is_buffering:
            spinner = CONNECTING_FRAMES[self.spinner_idx % len(CONNECTING_FRAMES)]
        else:
            spinner = SPINNER_FRAMES[self.spinner_idx % len(SPINNER_FRAMES)]

        heart = " \033[91m♥\033[0m" if self._favorite else ""
        where = ", ".join(x for x in (station.country, station.language) if x)
        quality = f"  {station.bitrate}kbps {station.codec}" if station.bitrate else ""

        return (
            f"{bold}{color}{spinner}{reset} "
            f"{color}[{state.phase.value.upper()}]{reset} "
            f"{bold}{white}{station.name}{reset}{heart}"
            f"{dim}  {where}{quality}{reset}"
        )

    async def _status_updater(self):
        """Redraw the status line until the app stops."""
        while self.running:
            self.spinner_idx += 1
            if not self._prompting:
                sys.stdout.write(f"\r\033[K{self._get_status_line()}")
                sys.stdout.flush()
            await asyncio.sleep(0.1)

    async def _event_listener(self):
        """Track session state and surface notices."""
        async with self.events.subscribe() as queue:
            while True:
                event = await queue.get()
                if isinstance(event, StateChanged):
                    self._on_state(event.state)
                elif isinstance(event, NoticeRaised):
                    self._show_notice(event.notice)

    def _on_state(self, state: SessionState):
        self._state = state
        station = state.current_station
        self._favorite = bool(station) and self.library.is_favorite(station)
        # Record every station we start connecting to, including n/p moves
        if station and state.phase == PlaybackPhase.CONNECTING and station.id != self._last_recorded:
            self._last_recorded = station.id
            try:
                self.library.add_recent(station)
            except OSError as e:
                logger.error(f"Error saving station to recent: {e}")

    def _show_notice(self, notice: Notice):
        self._clear_status()
        color = "red" if notice.level == "error" else "yellow"
        console.print(f"[{color}]{notice.title}:[/{color}] {notice.message}")

    # -- input helpers ------------------------------------------------------

    async def _ask(self, prompt: str) -> str:
        self._prompting = True
        self._clear_status()
        try:
            return (await asyncio.to_thread(Prompt.ask, prompt, default="", show_default=False)).strip()
        finally:
            self._prompting = False

    async def _fetch(self, what: str, fetch: Callable[[], Awaitable[list]]) -> list:
        self._clear_status()
        console.print(f"[dim]Loading {what}...[/dim]")
        try:
            return await fetch()
        except DirectoryError as e:
            logger.error(f"Error fetching {what}: {e}")
            console.print(f"[red]Could not fetch {what}: {e}[/red]")
            return []

    def _run(self, coro: Awaitable) -> None:
        """Fire and forget a session command."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -- screens ------------------------------------------------------------

    async def browse(self, kind: str):
        """Pick a country, language or genre, then a station from it."""
        loaders = {
            "countries": (self.directory.countries, self.directory.stations_by_country),
            "languages": (self.directory.languages, self.directory.stations_by_language),
            "genres": (self.directory.genres, self.directory.stations_by_genre),
        }
        list_categories, list_stations = loaders[kind]
        categories = await self._fetch(kind, list_categories)
        category = await self._pick(kind.capitalize(), categories, self._category_table)
        if not category:
            return
        stations = await self._fetch(f"{category.name} stations", lambda: list_stations(category.name))
        await self.choose_station(f"{category.name} stations", stations)

    async def search(self):
        query = await self._ask("[magenta]Search stations[/magenta]")
        if not query:
            return
        stations = await self._fetch(f"'{query}'", lambda: self.directory.search(query))
        await self.choose_station(f"Results for '{query}'", stations)

    async def top_voted(self):
        stations = await self._fetch("top stations", lambda: self.directory.top_voted(100))
        await self.choose_station("Top voted", stations)

    async def choose_station(self, title: str, stations: List[Station]):
        """Show stations and play the one picked."""
        station = await self._pick(title, stations, self._station_table)
        if not station:
            return
        self.stations = list(stations)
        self._run(self.session.select(station, self.stations))

    async def _pick(self, title: str, items: list, render: Callable[[str, list], Table]):
        """Numbered pick from items; text input narrows the list by name."""
        shown = list(items)
        while True:
            if not shown:
                console.print(f"[yellow]No {title.lower()} found[/yellow]")
                return None
            console.print(render(title, shown[: self.list_limit]))
            if len(shown) > self.list_limit:
                console.print(f"[dim]Showing {self.list_limit} of {len(shown)}, type text to filter[/dim]")

            answer = await self._ask("[magenta]Number or filter[/magenta] (enter to cancel)")
            if not answer:
                return None
            if answer.isdigit():
                index = int(answer) - 1
                if 0 <= index < min(len(shown), self.list_limit):
                    return shown[index]
                console.print("[red]No such entry[/red]")
                continue
            shown = filter_by_name(items, answer)

    def _category_table(self, title: str, categories: List[Category]) -> Table:
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Name", style="white")
        table.add_column("Stations", style="cyan", justify="right")
        for i, category in enumerate(categories, 1):
            table.add_row(str(i), category.name, str(category.station_count))
        return table

    def _station_table(self, title: str, stations: List[Station]) -> Table:
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Station", style="white")
        table.add_column("Country", style="cyan")
        table.add_column("Language", style="cyan")
        table.add_column("", style="red")
        favorite_ids = {s.id for s in self.library.favorites()}
        for i, station in enumerate(stations, 1):
            heart = "♥" if station.id in favorite_ids else ""
            table.add_row(str(i), station.name, station.country, station.language, heart)
        return table

    # -- commands -----------------------------------------------------------

    def switch(self, direction: Direction):
        self._run(self.session.switch(direction, self.stations))

    def toggle_pause(self):
        self._run(self.session.toggle_play_pause())

    def favorite_current(self):
        station = self._state.current_station
        if not station:
            return
        self._clear_status()
        self._favorite = self.library.toggle_favorite(station)
        if self._favorite:
            console.print(f"[red]♥[/red] [green]Added {station.name} to favorites[/green]")
        else:
            console.print(f"[yellow]Removed {station.name} from favorites[/yellow]")

    def show_info(self):
        """Show detailed station info."""
        self._clear_status()
        station = self._state.current_station
        if not station:
            console.print("[yellow]No station playing[/yellow]")
            return

        table = Table(title="Station Info", box=box.ROUNDED)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Name", station.name)
        table.add_row("Country", station.country or "-")
        table.add_row("Language", station.language or "-")
        table.add_row("Tags", ", ".join(station.tags) or "-")
        if station.bitrate:
            table.add_row("Quality", f"{station.bitrate}kbps {station.codec}")
        table.add_row("Stream", station.url)
        if station.homepage:
            table.add_row("Homepage", station.homepage)
        table.add_row("Status", self._state.phase.value)
        console.print(table)

    def show_help(self):
        """Show help."""
        self._clear_status()
        console.print(Panel(HELP_TEXT, title="Help", border_style="magenta"))

    async def _handle_key(self, key: str):
        if key == 'q':
            self.running = False
        elif key == 'c':
            await self.browse("countries")
        elif key == 'l':
            await self.browse("languages")
        elif key == 'g':
            await self.browse("genres")
        elif key == 't':
            await self.top_voted()
        elif key == '/':
            await self.search()
        elif key == 'f':
            await self.choose_station("Favorites", self.library.favorites())
        elif key == 'r':
            await self.choose_station("Recently played", self.library.recents())
        elif key == 'n':
            self.switch(Direction.NEXT)
        elif key == 'p':
            self.switch(Direction.PREV)
        elif key == ' ':
            self.toggle_pause()
        elif key == '*':
            self.favorite_current()
        elif key == 'i':
            self.show_info()
        elif key == 'h' or key == '?':
            self.show_help()

    async def run(self):
        """Main run loop."""
        console.print(Panel.fit(
            "[bold magenta]OmniRadio[/bold magenta]\n"
            "Internet radio from radio-browser.info",
            border_style="magenta"
        ))
        console.print("[dim]Press 'h' for help, 'q' to quit[/dim]")
        print()

        self.running = True
        listener = asyncio.create_task(self._event_listener())
        status = asyncio.create_task(self._status_updater())

        try:
            while self.running:
                try:
                    key = await asyncio.to_thread(readchar.readkey)
                except KeyboardInterrupt:
                    break
                await self._handle_key(key)
        finally:
            self.running = False
            listener.cancel()
            status.cancel()
            pending = list(self._tasks)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            await self.session.close()
            await self.directory.aclose()
            self._clear_status()
            console.print("[magenta]Goodbye![/magenta]")


def main():
    """Entry point."""
    app = OmniRadio()
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
