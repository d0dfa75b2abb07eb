import tkinter as tk
from tkinter import ttk, messagebox, filedialog
import logging, os
import sys
from typing import Optional, Dict, List, Any

from dbs.utils.numbers import safe_float, format_ms
from dbs.utils.debounce import DebouncedInvoker, debounce
from dbs.utils.options import (default_settings, default_settings_path, load_settings,
                               save_settings, options_from_settings)
from dbs.utils.popup import popup_df_simple
from dbs.host.tk_host import TkHost
from dbs.data.provider import TriggerSource
from dbs.data.simulator import SimulatedBursts, replay, summarize


# --- Python version check ---
_MIN_PY = (3, 9)
if sys.version_info < _MIN_PY:
    raise RuntimeError(f"Python {_MIN_PY[0]}.{_MIN_PY[1]}+ required, got {sys.version.split()[0]}")

logger = logging.getLogger("DebounceScheduler")

# --- Deps ---
try:
    import pandas as pd
except Exception:
    logger.exception("pandas import failed"); raise

# matplotlib is optional
MATPLOTLIB_OK = False
try:
    from matplotlib.figure import Figure
    from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
    MATPLOTLIB_OK = True
except Exception:
    logger.warning("matplotlib not available; charts disabled.")


class DebounceLab(tk.Tk):
    """Playground window: real Tk events go through debounced invokers, with a live event log."""
    EVENT_COLS = ["t_ms", "kind", "source", "value"]
    MAX_LOG_LINES = 500

    def __init__(self, source: Optional[TriggerSource] = None, settings_path: Optional[str] = None):
        super().__init__()
        self.source = source or SimulatedBursts(seed=7)
        self.host = TkHost(self)
        self._t0 = self.host.now()
        self._ui_ready = False
        self.title("Debounce Lab")
        self.geometry("1100x760")

        self.settings_path = settings_path or default_settings_path()

        self.PALETTE = {
            "bg": "#f5f7fb", "panel": "#ffffff", "panel2": "#f0f3f9",
            "pending": "#fde8e8", "pending_txt": "#b91c1c",
            "idle": "#e6f6ee", "idle_txt": "#047857",
            "kpi_neu": "#eef2ff", "kpi_neu_txt": "#1e3a8a",
        }
        try: self.configure(bg=self.PALETTE["bg"])
        except Exception: pass

        style = ttk.Style(self)
        try: style.theme_use("clam")
        except Exception: logger.warning("Could not use 'clam' theme")
        try:
            style.configure("TButton", font=("Segoe UI", 10, "bold"), padding=(10, 6))
            style.configure("TEntry", padding=4)
            style.configure("Card.TFrame", background=self.PALETTE["panel"])
            style.configure("Soft.TFrame", background=self.PALETTE["panel2"])
            style.configure("Root.TFrame", background=self.PALETTE["bg"])
        except Exception:
            logger.exception("ttk style config failed")

        # ---------- STATE ----------
        self.events: List[Dict[str, Any]] = []
        self.wait_var = tk.StringVar(value="250")
        self.max_wait_var = tk.StringVar(value="")
        self.leading_var = tk.BooleanVar(value=False)
        self.trailing_var = tk.BooleanVar(value=True)
        self.search_var = tk.StringVar(value="")
        self.search_invoker: Optional[DebouncedInvoker] = None

        self._load_settings_startup()

        # ---------- UI ----------
        banner = ttk.Frame(self, style="Soft.TFrame"); banner.pack(fill=tk.X, padx=16, pady=(12, 8))
        ttk.Label(banner, text="Debounce Lab", font=("Segoe UI Semibold", 16)).pack(side=tk.LEFT)
        ttk.Label(banner, text="Leading / trailing / maxWait on live Tk events", foreground="#555").pack(side=tk.LEFT, padx=12)

        ctrl = ttk.Frame(self, style="Card.TFrame"); ctrl.pack(fill=tk.X, padx=16, pady=(0, 8))
        ttk.Label(ctrl, text="wait (ms):").pack(side=tk.LEFT, padx=(10, 4))
        ttk.Entry(ctrl, width=7, textvariable=self.wait_var).pack(side=tk.LEFT, padx=(0, 10))
        ttk.Label(ctrl, text="maxWait (ms):").pack(side=tk.LEFT, padx=(6, 4))
        ttk.Entry(ctrl, width=7, textvariable=self.max_wait_var).pack(side=tk.LEFT, padx=(0, 10))
        ttk.Checkbutton(ctrl, text="leading", variable=self.leading_var).pack(side=tk.LEFT, padx=4)
        ttk.Checkbutton(ctrl, text="trailing", variable=self.trailing_var).pack(side=tk.LEFT, padx=4)
        ttk.Button(ctrl, text="Load Settings", command=self.load_settings_dialog).pack(side=tk.RIGHT, padx=6)
        ttk.Button(ctrl, text="Save Settings", command=self.save_settings_dialog).pack(side=tk.RIGHT, padx=6)

        # option edits rebuild the invoker, debounced so typing "1500" builds once
        self._rebuild = debounce(self.build_invokers, 300, host=self.host)
        for var in (self.wait_var, self.max_wait_var, self.leading_var, self.trailing_var):
            var.trace_add("write", lambda *_: self._rebuild())

        search_card = ttk.Frame(self, style="Card.TFrame"); search_card.pack(fill=tk.X, padx=16, pady=(0, 8))
        ttk.Label(search_card, text="Type here:", font=("Segoe UI", 10, "bold")).pack(side=tk.LEFT, padx=(10, 4))
        e = ttk.Entry(search_card, width=40, textvariable=self.search_var); e.pack(side=tk.LEFT, padx=(0, 12), pady=8)
        e.bind("<KeyRelease>", lambda ev: self.on_search_key())
        ttk.Button(search_card, text="Cancel", command=self.cancel_search).pack(side=tk.LEFT, padx=4)
        ttk.Button(search_card, text="Flush", command=self.flush_search).pack(side=tk.LEFT, padx=4)
        self.pending_lbl = tk.Label(search_card, text="idle", font=("Segoe UI", 10, "bold"), padx=10, pady=4,
                                    bg=self.PALETTE["idle"], fg=self.PALETTE["idle_txt"])
        self.pending_lbl.pack(side=tk.LEFT, padx=10)
        self.result_lbl = ttk.Label(search_card, text="last result: -"); self.result_lbl.pack(side=tk.LEFT, padx=10)

        body = ttk.Panedwindow(self, orient=tk.HORIZONTAL); body.pack(fill=tk.BOTH, expand=True, padx=16, pady=(0, 12))
        left = ttk.Frame(body, style="Card.TFrame"); right = ttk.Frame(body, style="Card.TFrame")
        body.add(left, weight=1); body.add(right, weight=1)

        # event log
        log_bar = ttk.Frame(left, style="Card.TFrame"); log_bar.pack(fill=tk.X, padx=8, pady=(8, 0))
        ttk.Label(log_bar, text="Event log", font=("Segoe UI Semibold", 11)).pack(side=tk.LEFT)
        ttk.Button(log_bar, text="Show trace", command=self.show_trace).pack(side=tk.RIGHT)
        self.log_list = tk.Listbox(left, font=("Courier", 10), activestyle="none")
        self.log_list.pack(fill=tk.BOTH, expand=True, padx=8, pady=8)

        # resize canvas: redraw is debounced to the next idle frame (wait omitted)
        self.canvas = tk.Canvas(right, height=160, bg="white", highlightthickness=0)
        self.canvas.pack(fill=tk.X, padx=8, pady=8)
        self._redraw = debounce(self.redraw_canvas, host=self.host)
        self.canvas.bind("<Configure>", lambda ev: self._redraw(ev.width, ev.height))

        sim_bar = ttk.Frame(right, style="Card.TFrame"); sim_bar.pack(fill=tk.X, padx=8)
        ttk.Button(sim_bar, text="▶ Simulate", command=self.run_simulation).pack(side=tk.LEFT)
        self.kpi_lbl = tk.Label(sim_bar, text="", font=("Segoe UI", 10), bg=self.PALETTE["kpi_neu"],
                                fg=self.PALETTE["kpi_neu_txt"], padx=10, pady=4)
        self.kpi_lbl.pack(side=tk.LEFT, padx=10)

        self.fig = self.ax = self.fig_canvas = None
        if MATPLOTLIB_OK:
            try:
                self.fig = Figure(figsize=(5, 3.2), dpi=100); self.ax = self.fig.add_subplot(111)
                self.fig_canvas = FigureCanvasTkAgg(self.fig, master=right)
                self.fig_canvas.get_tk_widget().pack(fill=tk.BOTH, expand=True, padx=8, pady=8)
            except Exception: logger.exception("figure init failed")

        self._ui_ready = True
        self.build_invokers()
        self.after(100, self._poll_pending)

    # ================= SETTINGS (JSON) =================
    def _gather_settings_from_ui(self) -> Dict[str, Any]:
        return {
            "wait_ms": safe_float(self.wait_var.get(), 0.0),
            "max_wait_ms": safe_float(self.max_wait_var.get(), None),
            "leading": bool(self.leading_var.get()),
            "trailing": bool(self.trailing_var.get()),
        }

    def _apply_settings_to_ui(self, s: Dict[str, Any]) -> None:
        self.wait_var.set(str(s.get("wait_ms", 250)))
        mw = s.get("max_wait_ms")
        self.max_wait_var.set("" if mw is None else str(mw))
        self.leading_var.set(bool(s.get("leading", False)))
        self.trailing_var.set(bool(s.get("trailing", True)))

    def load_settings_dialog(self):
        try:
            path = filedialog.askopenfilename(
                title="Load settings JSON",
                filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
                initialfile=os.path.basename(self.settings_path),
                initialdir=os.path.dirname(self.settings_path),
            )
            if not path:
                return
            self._apply_settings_to_ui(load_settings(path))
            self.settings_path = path
        except Exception as e:
            logger.exception("load_settings_dialog failed")
            messagebox.showerror("Load Settings", f"Error loading settings:\n{e}")

    def save_settings_dialog(self):
        try:
            path = filedialog.asksaveasfilename(
                defaultextension=".json",
                title="Save settings JSON",
                filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
                initialfile=os.path.basename(self.settings_path),
                initialdir=os.path.dirname(self.settings_path),
            )
            if not path:
                return
            save_settings(path, self._gather_settings_from_ui())
            self.settings_path = path
            messagebox.showinfo("Save Settings", f"Settings saved to:\n{path}")
        except Exception as e:
            logger.exception("save_settings_dialog failed")
            messagebox.showerror("Save Settings", f"Error saving settings:\n{e}")

    def _load_settings_startup(self):
        try:
            s = load_settings(self.settings_path)
        except Exception:
            logger.exception("Failed to load settings at startup")
            s = default_settings()
        self._apply_settings_to_ui(s)

    # ============== Invokers ==============
    def build_invokers(self):
        """(Re)create the search invoker from the current controls; a pending cycle is dropped."""
        try:
            wait, opts = options_from_settings(self._gather_settings_from_ui())
            if self.search_invoker is not None:
                self.search_invoker.cancel()
            self.search_invoker = debounce(self.run_search, wait, opts, host=self.host)
            logger.info("Search invoker rebuilt: %r", self.search_invoker)
        except ValueError as e:
            logger.warning("Invalid options: %s", e)

    def on_search_key(self):
        text = self.search_var.get()
        self._log("trigger", "search", text)
        if self.search_invoker is not None:
            self.search_invoker(text)

    def run_search(self, text: str) -> str:
        self._log("exec", "search", text)
        self.result_lbl.config(text=f"last result: {text!r}")
        return text

    def cancel_search(self):
        if self.search_invoker is not None:
            self.search_invoker.cancel(); self._log("cancel", "search", "")

    def flush_search(self):
        if self.search_invoker is not None:
            res = self.search_invoker.flush(); self._log("flush", "search", res)

    def redraw_canvas(self, width: int, height: int):
        self._log("exec", "resize", f"{width}x{height}")
        c = self.canvas
        c.delete("all")
        c.create_rectangle(4, 4, width - 4, height - 4, outline="#2563eb", width=2)
        c.create_text(width // 2, height // 2, text=f"{width} × {height}", font=("Segoe UI Semibold", 14))

    def _poll_pending(self):
        try:
            busy = self.search_invoker is not None and self.search_invoker.pending()
            if busy:
                self.pending_lbl.config(text="pending", bg=self.PALETTE["pending"], fg=self.PALETTE["pending_txt"])
            else:
                self.pending_lbl.config(text="idle", bg=self.PALETTE["idle"], fg=self.PALETTE["idle_txt"])
        except Exception:
            logger.exception("poll_pending failed")
        finally:
            self.after(100, self._poll_pending)

    # ============== Log / trace ==============
    def _log(self, kind: str, source: str, value: Any):
        t = round(self.host.now() - self._t0, 1)
        self.events.append({"t_ms": t, "kind": kind, "source": source, "value": value})
        if not self._ui_ready:
            return
        self.log_list.insert(tk.END, f"{t:>10.1f}  {kind:<8}{source:<8}{value}")
        if kind == "exec":
            self.log_list.itemconfig(tk.END, foreground="#047857")
        if self.log_list.size() > self.MAX_LOG_LINES:
            self.log_list.delete(0)
        self.log_list.see(tk.END)

    def events_df(self) -> pd.DataFrame:
        return pd.DataFrame(self.events, columns=self.EVENT_COLS)

    def show_trace(self):
        df = self.events_df()
        if df.empty:
            messagebox.showinfo("Trace", "No events yet."); return
        popup_df_simple(self.winfo_toplevel(), df.tail(200), title="Event trace")

    # ============== Simulation ==============
    def run_simulation(self):
        try:
            wait, opts = options_from_settings(self._gather_settings_from_ui())
            triggers = self.source.fetch()
            execs = replay(triggers, wait, opts)
            stats = summarize(triggers, execs)
            ratio = stats["coalescing_ratio"]
            txt = f"{stats['triggers']} calls → {stats['executions']} runs"
            if ratio:
                txt += f"  |  ratio {ratio:.1f}"
            txt += f"  |  max gap {format_ms(stats['max_gap_ms'])}"
            self.kpi_lbl.config(text=txt)
            self.update_timeline(triggers, execs)
        except Exception as e:
            logger.exception("run_simulation failed")
            messagebox.showerror("Simulate", f"Error:\n{e}")

    def update_timeline(self, triggers: pd.DataFrame, execs: pd.DataFrame):
        if not (MATPLOTLIB_OK and self.ax and self.fig_canvas):
            return
        try:
            self.ax.clear()
            self.ax.set_title("Triggers vs executions")
            self.ax.set_xlabel("t (ms)")
            self.ax.set_yticks([0, 1]); self.ax.set_yticklabels(["call", "run"])
            self.ax.set_ylim(-0.5, 1.5)
            if not triggers.empty:
                self.ax.plot(triggers["t_ms"], [0] * len(triggers), "|", markersize=14, color="#6b7280")
            if not execs.empty:
                self.ax.plot(execs["t_ms"], [1] * len(execs), "o", color="#047857")
            self.ax.grid(True, axis="x", alpha=0.2)
            self.fig.tight_layout()
            self.fig_canvas.draw_idle()
        except Exception:
            if logger.isEnabledFor(logging.DEBUG):
                logger.exception("update_timeline failed")
