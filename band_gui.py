"""
band_gui.py
===========
Tkinter front-end for the tweet band visualisation.

Layout
------
Top bar      – "Load JSON…" (replaces the dataset, clears the selection)
               and the colour-scheme selector.
Centre panel – embedded matplotlib canvas and navigation toolbar.  Left-click
               a point to toggle its selection.
Right panel  – texts of the selected tweets, most recently selected first.
Bottom bar   – PNG / SVG export, status line and progress indicator.

Full rebuilds (new dataset, new scheme) run on a worker thread.  Each one
carries a generation token; a rebuild that finishes after a newer one was
requested is discarded.  Clicking a point only restyles outlines of the
already drawn figure.

Usage
-----
    python band_gui.py [tweets.json] [--color_by subjectivity]
"""

from __future__ import annotations

import argparse
import logging
import threading
from typing import Callable, Optional

import numpy as np
from scipy.spatial import cKDTree

import tkinter as tk
from tkinter import ttk, filedialog, messagebox

import matplotlib
matplotlib.use("TkAgg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg, NavigationToolbar2Tk

from bandlayout import LayoutConfig
from colorscales import ColorScheme
from logging_config import setup_logging
from plot_bands import draw_scene, restyle_figure
from records import load_records
from scene import BandScene, Scene

logger = logging.getLogger("tweetbands.gui")


class BandGUI:
    """Top-level GUI application window."""

    def __init__(self, root: tk.Tk, cfg: Optional[LayoutConfig] = None,
                 scheme: str = ColorScheme.SENTIMENT.value) -> None:
        self.root = root
        root.title("Tweet Bands")
        root.minsize(1100, 640)

        self.state = BandScene(cfg, scheme=scheme)

        self._current_fig: Optional[plt.Figure] = None
        self._pending = 0                            # rebuilds in flight

        # Click lookup over the drawn circles
        self._point_tree: Optional[cKDTree] = None
        self._point_ids: list = []

        self._build_vars(scheme)
        self._build_ui()

    # ── Variable definitions ──────────────────────────────────────────────

    def _build_vars(self, scheme: str) -> None:
        self.v_scheme = tk.StringVar(value=ColorScheme.parse(scheme).value)
        self.v_source = tk.StringVar(value="No file loaded.")
        self._status_var = tk.StringVar(value="Ready.")

    # ── UI construction ───────────────────────────────────────────────────

    def _build_ui(self) -> None:
        self._build_control_bar()
        self._build_action_bar()

        paned = ttk.PanedWindow(self.root, orient="horizontal")
        paned.pack(fill="both", expand=True, padx=6, pady=6)

        centre = ttk.Frame(paned)
        right = ttk.Frame(paned, width=320)
        paned.add(centre, weight=4)
        paned.add(right, weight=1)

        self._build_preview_panel(centre)
        self._build_selection_panel(right)

    def _build_control_bar(self) -> None:
        bar = ttk.Frame(self.root)
        bar.pack(side="top", fill="x", padx=6, pady=(6, 0))

        ttk.Button(bar, text="Load JSON…", command=self._on_load,
                   width=12).pack(side="left", padx=(0, 8))
        ttk.Label(bar, textvariable=self.v_source, anchor="w").pack(
            side="left", padx=(0, 16))

        ttk.Label(bar, text="Colour by").pack(side="left", padx=(0, 4))
        combo = ttk.Combobox(
            bar, textvariable=self.v_scheme,
            values=[s.value for s in ColorScheme],
            state="readonly", width=13,
        )
        combo.pack(side="left")
        combo.bind("<<ComboboxSelected>>", lambda _e: self._on_scheme_change())

    def _build_preview_panel(self, parent: ttk.Frame) -> None:
        self._preview_frame = ttk.Frame(parent)
        self._preview_frame.pack(fill="both", expand=True)

        self._placeholder = ttk.Label(
            self._preview_frame,
            text=(
                "Press  Load JSON…  to open a tweet file.\n\n"
                "Click any point to show its text."
            ),
            anchor="center",
            justify="center",
        )
        self._placeholder.pack(expand=True)

    def _build_selection_panel(self, parent: ttk.Frame) -> None:
        ttk.Label(parent, text="Selected tweets",
                  font=("TkDefaultFont", 10, "bold")).pack(anchor="w", padx=4, pady=(0, 4))
        holder = ttk.Frame(parent)
        holder.pack(fill="both", expand=True)

        self._selection_text = tk.Text(holder, wrap="word", width=40,
                                       state="disabled", borderwidth=1,
                                       relief="solid")
        vscroll = ttk.Scrollbar(holder, orient="vertical",
                                command=self._selection_text.yview)
        self._selection_text.configure(yscrollcommand=vscroll.set)
        vscroll.pack(side="right", fill="y")
        self._selection_text.pack(side="left", fill="both", expand=True)

    def _build_action_bar(self) -> None:
        bar = ttk.Frame(self.root)
        bar.pack(side="bottom", fill="x", padx=6, pady=(0, 6))

        self.btn_png = ttk.Button(bar, text="Export PNG…",
                                  command=lambda: self._export("png"), width=13)
        self.btn_png.pack(side="left", padx=(0, 4))

        self.btn_svg = ttk.Button(bar, text="Export SVG…",
                                  command=lambda: self._export("svg"), width=13)
        self.btn_svg.pack(side="left", padx=4)

        ttk.Label(bar, textvariable=self._status_var, anchor="w").pack(
            side="left", padx=12)

        self._progress = ttk.Progressbar(bar, mode="indeterminate", length=110)
        self._progress.pack(side="right", padx=4)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _status(self, msg: str) -> None:
        self._status_var.set(msg)

    def _set_busy(self, busy: bool) -> None:
        if busy:
            self._progress.start(10)
        else:
            self._progress.stop()

    def _refresh_selection_list(self) -> None:
        box = self._selection_text
        box.configure(state="normal")
        box.delete("1.0", "end")
        for entry in self.state.selection:
            box.insert("end", f"{entry.text}\n")
            box.insert("end", "─" * 30 + "\n")
        box.configure(state="disabled")

    # ── Dataset / scheme triggers ─────────────────────────────────────────

    def load_file(self, path: str) -> None:
        try:
            records = load_records(path)
        except (FileNotFoundError, ValueError) as exc:
            self._status(f"Load failed: {exc}")
            messagebox.showerror("Load failed", str(exc))
            return
        self.state.set_dataset(records, rebuild=False)
        self.v_source.set(f"{path}  ({len(records):,} tweets)")
        self._refresh_selection_list()
        self._start_rebuild(f"Laying out {len(records):,} tweets…")

    def _on_load(self) -> None:
        path = filedialog.askopenfilename(
            title="Open tweet JSON",
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
        )
        if path:
            self.load_file(path)

    def _on_scheme_change(self) -> None:
        self.state.set_color_scheme(self.v_scheme.get(), rebuild=False)
        if self.state.scene is None and not self.state.records:
            return
        self._start_rebuild(f"Recolouring by {self.v_scheme.get()}…")

    # ── Full rebuild ──────────────────────────────────────────────────────

    def _start_rebuild(self, msg: str) -> None:
        token, job = self.state.begin_rebuild()
        self._pending += 1
        self._set_busy(True)
        self._status(msg)
        threading.Thread(target=self._rebuild_worker, args=(token, job),
                         daemon=True).start()

    def _rebuild_worker(self, token: int, job: Callable[[], Scene]) -> None:
        try:
            scene = job()
            self.root.after(0, lambda: self._finish_rebuild(token, scene))
        except Exception as exc:
            logger.exception("Rebuild %d failed", token)
            msg = str(exc)
            self.root.after(0, lambda: (
                self._status(f"Rebuild failed: {msg}"),
                messagebox.showerror("Rebuild failed", msg),
            ))
        finally:
            self.root.after(0, self._rebuild_done)

    def _rebuild_done(self) -> None:
        self._pending -= 1
        if self._pending <= 0:
            self._pending = 0
            self._set_busy(False)

    def _finish_rebuild(self, token: int, scene: Scene) -> None:
        installed = self.state.finish_rebuild(token, scene)
        if installed is None:
            return
        self._display_figure(draw_scene(installed))
        self._point_ids = [c.id for c in installed.circles]
        self._point_tree = (cKDTree(np.array(installed.positions()))
                            if installed.circles else None)
        self._refresh_selection_list()
        note = f", {installed.dropped:,} dropped" if installed.dropped else ""
        self._status(f"{len(installed.circles):,} tweets drawn{note}.  "
                     "Click a point to select it.")

    def _display_figure(self, fig: plt.Figure) -> None:
        """Replace the preview with *fig*; the previous figure is closed."""
        self._placeholder.pack_forget()
        for child in self._preview_frame.winfo_children():
            if child is not self._placeholder:
                child.destroy()
        if self._current_fig is not None:
            plt.close(self._current_fig)
        self._current_fig = fig

        canvas = FigureCanvasTkAgg(fig, master=self._preview_frame)
        bar = ttk.Frame(self._preview_frame)
        bar.pack(side="bottom", fill="x")
        NavigationToolbar2Tk(canvas, bar).update()
        canvas.get_tk_widget().pack(side="top", fill="both", expand=True)
        canvas.draw()
        self._attach_point_click(canvas)

    # ── Point click / selection ───────────────────────────────────────────

    def _attach_point_click(self, canvas: FigureCanvasTkAgg) -> None:
        """Left-click toggles the point under the cursor, if any."""
        radius = self.state.cfg.mark_radius

        def _on_click(event):
            if event.button != 1 or event.inaxes is None:
                return
            if self._point_tree is None:
                return
            # Ignore clicks while a toolbar pan/zoom mode is active.
            toolbar = getattr(canvas, "toolbar", None)
            if toolbar is not None and getattr(toolbar, "mode", ""):
                return
            dist, idx = self._point_tree.query([event.xdata, event.ydata], k=1)
            if float(dist) <= radius:
                rid = self._point_ids[int(idx)]
                self.root.after(0, lambda: self._on_point_clicked(rid))

        canvas.mpl_connect("button_press_event", _on_click)

    def _on_point_clicked(self, record_id) -> None:
        scene = self.state.click(record_id)
        if scene is None or self._current_fig is None:
            return
        restyle_figure(self._current_fig, scene)
        self._refresh_selection_list()
        state = "selected" if record_id in self.state.selection else "deselected"
        self._status(f"Tweet {record_id} {state}.  "
                     f"{len(self.state.selection)} selected.")

    # ── Export ────────────────────────────────────────────────────────────

    def _export(self, fmt: str) -> None:
        scene = self.state.scene
        if scene is None:
            messagebox.showwarning("No data", "Load a tweet file first.")
            return

        filetypes = [(f"{fmt.upper()} files", f"*.{fmt}"), ("All files", "*.*")]
        path = filedialog.asksaveasfilename(
            defaultextension=f".{fmt}",
            filetypes=filetypes,
            initialfile=f"bands.{fmt}",
            title=f"Export as {fmt.upper()}",
        )
        if not path:
            return

        fig = draw_scene(scene)
        try:
            fig.savefig(path, format=fmt)
            self._status(f"Saved → {path}")
        except (OSError, ValueError) as exc:
            self._status(f"Export failed: {exc}")
            messagebox.showerror("Export failed", str(exc))
        finally:
            plt.close(fig)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(
        prog="band_gui.py",
        description="Interactive tweet band viewer.",
    )
    parser.add_argument("input", nargs="?", default=None,
                        help="Optional JSON file to open on start.")
    parser.add_argument("--color_by", default=ColorScheme.SENTIMENT.value,
                        choices=[s.value for s in ColorScheme])
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    root = tk.Tk()
    gui = BandGUI(root, scheme=args.color_by)
    if args.input:
        root.after(0, lambda: gui.load_file(args.input))
    root.mainloop()


if __name__ == "__main__":
    main()
