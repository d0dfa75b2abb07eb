# popup.py
import tkinter as tk
from tkinter import ttk

def popup_df_simple(root, df, kind_col="kind", exec_value="exec", ms=0, title="Trace"):
    """
    Plain-text popup of a DataFrame (event trace, replay result...).
      - rows whose kind_col == exec_value are shown bold/green
    ms: milliseconds before auto-close (0/None = only with OK)
    Returns the Toplevel, or None when there is nothing to show.
    """
    if df is None or df.empty:
        return None

    # --- Window ---
    w = tk.Toplevel(root)
    w.title(title)
    w.attributes("-topmost", True)
    w.resizable(True, True)

    # --- Frame + scroll ---
    frame = ttk.Frame(w)
    frame.pack(fill="both", expand=True, padx=6, pady=6)
    yscroll = ttk.Scrollbar(frame, orient="vertical")
    text = tk.Text(frame, wrap="none", yscrollcommand=yscroll.set, bg="#f9fafb")
    yscroll.config(command=text.yview)
    yscroll.pack(side="right", fill="y")
    text.pack(side="left", fill="both", expand=True)

    # monospace font BEFORE inserting, otherwise columns drift
    text.configure(font=("Courier", 10))

    txt = df.to_string(index=False, justify="left", col_space=4)
    text.insert("1.0", txt)

    text.tag_configure("exec_row", font=("Courier", 10, "bold"), foreground="#047857")

    # line 1 is the header, data rows start at line 2
    if kind_col in df.columns:
        for i, kind in enumerate(df[kind_col].tolist(), start=2):
            if kind == exec_value:
                text.tag_add("exec_row", f"{i}.0", f"{i}.end")

    text.configure(state="disabled")

    ttk.Button(w, text="OK", command=w.destroy).pack(pady=(4, 8))

    # Center and auto-close
    w.update_idletasks()
    ww = min(max(w.winfo_width(), 600), 1000)
    hh = min(max(w.winfo_height(), 300), 700)
    sx, sy = w.winfo_screenwidth(), w.winfo_screenheight()
    w.geometry(f"{ww}x{hh}+{(sx-ww)//2}+{(sy-hh)//5}")
    if ms and ms > 0:
        w.after(ms, w.destroy)
    w.lift()
    return w
