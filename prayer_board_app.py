#!/usr/bin/env python3
"""
Prayer Board
Always-on masjid screen showing:
  - Live clock, Gregorian and Hijri date
  - Today's athan and iqamah times (Jumu'ah on Fridays)
  - Countdown to the next athan or iqamah
  - "Prayer now" holding screen after each iqamah
  - Time simulation controls outside production
"""

import logging
import sys
import tkinter as tk

from src.calendar_fmt import format_clock, format_gregorian_date, format_hijri_date
from src.config import get_holding_durations, get_timezone, is_production, load_config
from src.holding import HoldingController
from src.page_state import PrayerPageState
from src.prayer_calc import TO_IQAMAH, format_time, get_prayer_display_state
from src.prayer_data import PrayerDataError, preload, set_data_dir
from src.prayer_times import ATHAN, IQAMAH, PRAYER_LABELS, PRAYER_ORDER
from src.time_source import TimeSource, parse_time_input
from src.timeline import TimelineCache

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Theme constants
# ──────────────────────────────────────────────────────────────────────────────
BG_DARK = "#0d1117"
BG_CARD = "#161b22"
BG_NOW = "#e6edf3"
BORDER_COLOR = "#2ea043"
ACCENT_GOLD = "#f0c040"
ACCENT_GREEN = "#3fb950"
TEXT_WHITE = "#e6edf3"
TEXT_DIM = "#8b949e"
TEXT_DARK = "#0d1117"
TEXT_RED = "#ff6b6b"

FONT_SM = ("Courier", 10)
FONT_ROW = ("Courier", 20, "bold")
FONT_ROW_PAST = ("Courier", 15)
FONT_TITLE = ("Courier", 12, "bold")
FONT_CLOCK = ("Courier", 64, "bold")
FONT_DATE = ("Courier", 18)
FONT_COUNTDOWN = ("Courier", 44, "bold")
FONT_HOLDING = ("Courier", 72, "bold")

WINDOW_W = 1280
WINDOW_H = 720

SPEED_OPTIONS = (1, 10, 60, 300, 3600)
JUMP_OPTIONS = (("−1d", -1440), ("+1m", 1), ("+5m", 5), ("+10m", 10), ("+30m", 30), ("+1h", 60), ("+1d", 1440))
PRESETS_PER_ROW = 4


def setup_logging(level: str = "INFO") -> None:
    """Log to stdout before anything else runs."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))


class TkScheduler:
    """Runs holding expiry callbacks on the Tk event loop."""

    def __init__(self, root: tk.Tk):
        self.root = root

    def schedule(self, delay: float, callback):
        return self.root.after(max(int(delay * 1000), 0), callback)

    def cancel(self, handle) -> None:
        self.root.after_cancel(handle)


# ──────────────────────────────────────────────────────────────────────────────
# Main App
# ──────────────────────────────────────────────────────────────────────────────
class PrayerBoardApp:
    def __init__(self, root: tk.Tk, config: dict):
        self.root = root
        self._drag_x = 0
        self._drag_y = 0
        self._tick_job = None
        self.prayer_rows = {}
        self._preset_frame = None
        self._preset_date = None

        tz = get_timezone(config)
        self.time_source = TimeSource(tz, production=is_production(config))
        holding = HoldingController(
            durations=get_holding_durations(config),
            scheduler=TkScheduler(root),
            on_expire=self._on_holding_expired,
        )
        self.page = PrayerPageState(self.time_source, TimelineCache(tz), holding)

        self._setup_window()
        self._build_ui()
        self._tick()

    # ──────────────────────────────────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────────────────────────────────
    def _setup_window(self):
        root = self.root
        root.title("Prayer Board")
        root.geometry(f"{WINDOW_W}x{WINDOW_H}")
        root.configure(bg=BG_DARK)
        root.overrideredirect(True)
        root.attributes("-topmost", True)
        root.protocol("WM_DELETE_WINDOW", self.close)

        root.bind("<ButtonPress-1>", self._on_drag_start)
        root.bind("<B1-Motion>", self._on_drag_motion)
        root.bind("<Escape>", lambda event: self.close())

    def _on_drag_start(self, event):
        self._drag_x = event.x_root - self.root.winfo_x()
        self._drag_y = event.y_root - self.root.winfo_y()

    def _on_drag_motion(self, event):
        self.root.geometry(f"+{event.x_root - self._drag_x}+{event.y_root - self._drag_y}")

    # ──────────────────────────────────────────────────────────────────────
    # UI construction
    # ──────────────────────────────────────────────────────────────────────
    def _build_ui(self):
        outer = tk.Frame(self.root, bg=BORDER_COLOR, bd=0)
        outer.pack(fill=tk.BOTH, expand=True, padx=2, pady=2)
        self._content = tk.Frame(outer, bg=BG_DARK, bd=0)
        self._content.pack(fill=tk.BOTH, expand=True, padx=1, pady=1)

        # ── left: prayer table ───────────────────────────────────────────
        self.prayer_frame = tk.Frame(self._content, bg=BG_DARK)
        self.prayer_frame.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=24, pady=24)
        self._build_prayer_rows()

        # ── right: clock, dates and countdown ────────────────────────────
        side = tk.Frame(self._content, bg=BG_DARK)
        side.pack(side=tk.RIGHT, fill=tk.BOTH, expand=True, padx=24, pady=24)

        self.lbl_clock = tk.Label(side, text="--:--:--", font=FONT_CLOCK, fg=TEXT_WHITE, bg=BG_DARK)
        self.lbl_clock.pack(pady=(20, 4))
        self.lbl_date = tk.Label(side, text="", font=FONT_DATE, fg=TEXT_WHITE, bg=BG_DARK)
        self.lbl_date.pack()
        self.lbl_hijri = tk.Label(side, text="", font=FONT_DATE, fg=TEXT_DIM, bg=BG_DARK)
        self.lbl_hijri.pack(pady=(0, 30))

        self.lbl_next_name = tk.Label(side, text="", font=FONT_TITLE, fg=ACCENT_GREEN, bg=BG_DARK)
        self.lbl_next_name.pack()
        self.lbl_countdown = tk.Label(side, text="", font=FONT_COUNTDOWN, fg=ACCENT_GOLD, bg=BG_DARK)
        self.lbl_countdown.pack()
        self.lbl_simulation = tk.Label(side, text="", font=FONT_SM, fg=TEXT_RED, bg=BG_DARK)
        self.lbl_simulation.pack(pady=(10, 0))

        if not self.time_source.production:
            self._build_dev_tools(side)

        # ── holding overlay ──────────────────────────────────────────────
        self.holding_frame = tk.Frame(self._content, bg="black")
        self.lbl_holding = tk.Label(self.holding_frame, text="", font=FONT_HOLDING, fg=TEXT_WHITE, bg="black")
        self.lbl_holding.place(relx=0.5, rely=0.45, anchor="center")
        self.lbl_holding_left = tk.Label(self.holding_frame, text="", font=FONT_SM, fg=TEXT_DIM, bg="black")
        self.lbl_holding_left.place(relx=0.5, rely=0.75, anchor="center")

    def _build_prayer_rows(self):
        """Create a row per prayer with athan and iqamah columns."""
        header = tk.Frame(self.prayer_frame, bg=BG_DARK)
        header.pack(fill=tk.X, pady=(0, 8))
        tk.Label(header, text="", font=FONT_TITLE, bg=BG_DARK, width=12).pack(side=tk.LEFT)
        tk.Label(header, text=PRAYER_LABELS["athan"], font=FONT_TITLE, fg=TEXT_DIM, bg=BG_DARK, width=10).pack(side=tk.LEFT)
        self.lbl_iqamah_header = tk.Label(
            header, text=PRAYER_LABELS["iqamah"], font=FONT_TITLE, fg=TEXT_DIM, bg=BG_DARK, width=10
        )
        self.lbl_iqamah_header.pack(side=tk.LEFT)

        for name in PRAYER_ORDER:
            row = tk.Frame(self.prayer_frame, bg=BG_DARK, pady=6)
            cells = []
            for text, width in ((PRAYER_LABELS[name], 12), ("", 10), ("", 10)):
                lbl = tk.Label(row, text=text, font=FONT_ROW, fg=TEXT_WHITE, bg=BG_DARK, width=width, anchor="w")
                lbl.pack(side=tk.LEFT)
                cells.append(lbl)
            self.prayer_rows[name] = {"row": row, "cells": cells, "visible": False}

    def _build_dev_tools(self, parent):
        """Simulation controls; only built outside production."""
        panel = tk.Frame(parent, bg=BG_CARD, padx=8, pady=8)
        panel.pack(side=tk.BOTTOM, fill=tk.X)

        speeds = tk.Frame(panel, bg=BG_CARD)
        speeds.pack(fill=tk.X)
        tk.Label(speeds, text="Speed", font=FONT_SM, fg=TEXT_DIM, bg=BG_CARD).pack(side=tk.LEFT, padx=4)
        for speed in SPEED_OPTIONS:
            self._dev_button(speeds, f"{speed}x", lambda s=speed: self._dev(self.page.set_speed, s))

        jumps = tk.Frame(panel, bg=BG_CARD)
        jumps.pack(fill=tk.X)
        tk.Label(jumps, text="Jump", font=FONT_SM, fg=TEXT_DIM, bg=BG_CARD).pack(side=tk.LEFT, padx=4)
        for text, minutes in JUMP_OPTIONS:
            self._dev_button(jumps, text, lambda m=minutes: self._dev(self.page.jump_forward, m))

        events = tk.Frame(panel, bg=BG_CARD)
        events.pack(fill=tk.X)
        self._dev_button(events, "◀ Event", lambda: self._dev(self.page.step_event, -1))
        self._dev_button(events, "Event ▶", lambda: self._dev(self.page.step_event, 1))
        self._dev_button(events, "23:59:55", lambda: self._dev(self.page.jump_to_end_of_day))
        self._dev_button(events, "Reset", lambda: self._dev(self.page.reset))

        set_time = tk.Frame(panel, bg=BG_CARD)
        set_time.pack(fill=tk.X)
        tk.Label(set_time, text="Time", font=FONT_SM, fg=TEXT_DIM, bg=BG_CARD).pack(side=tk.LEFT, padx=4)
        self.time_entry = tk.Entry(
            set_time, font=FONT_SM, width=20, fg=TEXT_WHITE, bg=BG_DARK, insertbackground=TEXT_WHITE, bd=0
        )
        self.time_entry.pack(side=tk.LEFT, padx=2, pady=2)
        self.time_entry.bind("<Return>", lambda event: self._set_time_from_entry())
        self._dev_button(set_time, "Set", self._set_time_from_entry)

        # one button per present leg, rebuilt when the day changes
        self._preset_frame = tk.Frame(panel, bg=BG_CARD)
        self._preset_frame.pack(fill=tk.X)

    def _dev_button(self, frame, text, command):
        tk.Button(
            frame, text=text, font=FONT_SM, fg=TEXT_WHITE, bg=BG_DARK,
            activebackground=BORDER_COLOR, bd=0, cursor="hand2", command=command,
        ).pack(side=tk.LEFT, padx=2, pady=2)

    def _set_time_from_entry(self):
        """Accepts 'YYYY-MM-DD HH:MM[:SS]' or 'HH:MM[:SS]' on the current simulated day."""
        text = self.time_entry.get()
        try:
            instant = parse_time_input(text, self.time_source.now().date())
        except ValueError as e:
            logger.warning(f"Ignoring time entry: {e}")
            return
        self._dev(self.page.set_time, instant)

    def _render_presets(self, snapshot):
        timeline = snapshot.timeline
        if self._preset_frame is None or timeline.date == self._preset_date:
            return
        self._preset_date = timeline.date
        for child in self._preset_frame.winfo_children():
            child.destroy()

        index = 0
        for name in PRAYER_ORDER:
            time = timeline[name]
            legs = [(leg, mark) for leg, mark in ((ATHAN, "A"), (IQAMAH, "I")) if getattr(time, leg) is not None]
            if not legs:
                continue
            cell = tk.Frame(self._preset_frame, bg=BG_CARD)
            cell.grid(row=index // PRESETS_PER_ROW, column=index % PRESETS_PER_ROW, sticky="w")
            for leg, mark in legs:
                self._dev_button(
                    cell, f"{PRAYER_LABELS[name]} {mark}",
                    lambda n=name, l=leg: self._dev(self.page.jump_to_prayer, n, l),
                )
            index += 1

    # ──────────────────────────────────────────────────────────────────────
    # Tick loop
    # ──────────────────────────────────────────────────────────────────────
    def _tick(self):
        """Evaluate the page state and render; never lets an error stop the loop."""
        try:
            self._render(self.page.tick())
        except Exception:
            logger.exception("Tick failed")
        self._tick_job = self.root.after(self.time_source.tick_interval_ms, self._tick)

    def _dev(self, action, *args):
        """Run a simulation control, then restart the tick loop at the new interval."""
        try:
            self._render(action(*args))
        except Exception:
            logger.exception("Simulation control failed")
        if self._tick_job is not None:
            self.root.after_cancel(self._tick_job)
        self._tick_job = self.root.after(self.time_source.tick_interval_ms, self._tick)

    def _on_holding_expired(self):
        try:
            self._render(self.page.refresh())
        except Exception:
            logger.exception("Render after holding expiry failed")

    def _render(self, snapshot):
        now = snapshot.now
        self.lbl_clock.config(text=format_clock(now))
        self.lbl_date.config(text=format_gregorian_date(now))
        self.lbl_hijri.config(text=format_hijri_date(now))

        self._render_rows(snapshot)
        if not self.time_source.production:
            self._render_presets(snapshot)

        if snapshot.countdown:
            label = PRAYER_LABELS.get(snapshot.next_prayer.prayer, "")
            leg = PRAYER_LABELS["iqamah"] if snapshot.countdown_mode == TO_IQAMAH else PRAYER_LABELS["athan"]
            self.lbl_next_name.config(text=f"{label} {leg} in")
            self.lbl_countdown.config(text=snapshot.countdown)
        else:
            self.lbl_next_name.config(text="No prayer times available")
            self.lbl_countdown.config(text="--:--:--")

        if snapshot.is_simulating:
            self.lbl_simulation.config(text=f"SIMULATED {snapshot.speed}x")
        else:
            self.lbl_simulation.config(text="")

        if snapshot.show_prayer_now:
            label = PRAYER_LABELS.get(snapshot.holding_prayer, "")
            self.lbl_holding.config(text=f"{label}\n{PRAYER_LABELS['prayer']}")
            self.lbl_holding_left.config(text=snapshot.holding_remaining)
            self.holding_frame.place(relx=0, rely=0, relwidth=1, relheight=1)
            self.holding_frame.lift()
        else:
            self.holding_frame.place_forget()

    def _render_rows(self, snapshot):
        timeline = snapshot.timeline
        current = snapshot.previous_prayer.prayer if snapshot.previous_prayer else None
        if snapshot.has_iqamah:
            self.lbl_iqamah_header.config(text=PRAYER_LABELS["iqamah"])
        else:
            self.lbl_iqamah_header.config(text="")

        for name in PRAYER_ORDER:
            widgets = self.prayer_rows[name]
            time = timeline[name]
            visible = not time.is_empty and not (name == "dhuhr" and snapshot.jumuah1_has_iqamah)
            if visible != widgets["visible"]:
                # re-pack everything to keep display order
                for other in PRAYER_ORDER:
                    self.prayer_rows[other]["row"].pack_forget()
                widgets["visible"] = visible
                for other in PRAYER_ORDER:
                    if self.prayer_rows[other]["visible"]:
                        self.prayer_rows[other]["row"].pack(fill=tk.X, pady=2)
            if not visible:
                continue

            state = get_prayer_display_state(name, timeline, snapshot.now, current)
            if state == "now":
                bg, fg, font = BG_NOW, TEXT_DARK, FONT_ROW
            elif state == "past":
                bg, fg, font = BG_DARK, TEXT_DIM, FONT_ROW_PAST
            else:
                bg, fg, font = BG_DARK, TEXT_WHITE, FONT_ROW

            _, athan_cell, iqamah_cell = widgets["cells"]
            athan_cell.config(text=format_time(time.athan))
            iqamah_cell.config(text=format_time(time.iqamah) if snapshot.has_iqamah else "")
            widgets["row"].config(bg=bg)
            for cell in widgets["cells"]:
                cell.config(bg=bg, fg=fg, font=font)

    def close(self):
        if self._tick_job is not None:
            self.root.after_cancel(self._tick_job)
            self._tick_job = None
        self.page.close()
        self.root.destroy()


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def main():
    config = load_config()
    setup_logging(config.get("log_level", "INFO"))
    set_data_dir(config["data_dir"])
    try:
        preload()
    except PrayerDataError as e:
        logger.error(f"Prayer data failed validation: {e}")
        raise SystemExit(1)

    root = tk.Tk()
    PrayerBoardApp(root, config)
    root.mainloop()


if __name__ == "__main__":
    main()
