"""
Rephrase Trainer - Tkinter (card-based) desktop app

Flow:
1. Practice card: pick a mode, get a random topic, write your rephrasing.
2. Evaluate: the local model writes its own example, then coaches you on yours.
3. Review the example + feedback, then ask for a new topic.
A second card offers free-form chat with the same model.

Setup (from repo root):

    python -m venv .venv
    source .venv/bin/activate   # or .venv\\Scripts\\activate on Windows
    pip install -e .

Start LM Studio (or any OpenAI-compatible server) on
http://localhost:1234, then run:

    python main.py

API key, model and endpoint are set from the Settings dialog and persisted
to ~/.rephrase_trainer/settings.json.
"""

import threading
import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable, Dict, Optional

from trainer.api import CompletionClient
from trainer.chat import ChatSession
from trainer.config import AppConfig, load_config
from trainer.errors import ConfigurationError
from trainer.evaluation import EvaluationProtocol
from trainer.logger import logger, mask_secret
from trainer.models import Mode, SessionPhase
from trainer.prompts import IMPROVEMENT_MARKER, STRENGTH_MARKER
from trainer.session import PracticeSession
from trainer.settings import JsonFileSettingsBackend, SettingsStore

BG = "#1e1e1e"
PANEL_BG = "#2d2d2d"
FG = "#e0e0e0"
ACCENT = "#7bb3ff"
ERROR_FG = "#ff7b7b"


# ---------------------------------------------------------------------------
# Loading spinner
# ---------------------------------------------------------------------------

class LoadingSpinner(ttk.Frame):
    """Animated braille spinner shown while a request is in flight."""

    def __init__(self, parent, text: str = "Loading...") -> None:
        super().__init__(parent)
        self.text = text
        self.spinner_chars = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
        self.spinner_index = 0
        self.is_running = False
        self._after_id = None

        self.label = ttk.Label(self, text=f"{self.spinner_chars[0]} {text}", foreground=ACCENT)
        self.label.pack(pady=6)

    def start(self) -> None:
        if self.is_running:
            return
        self.is_running = True
        self.grid()
        self._animate()

    def stop(self) -> None:
        self.is_running = False
        if self._after_id:
            self.after_cancel(self._after_id)
            self._after_id = None
        self.grid_remove()

    def _animate(self) -> None:
        if not self.is_running:
            return
        char = self.spinner_chars[self.spinner_index]
        self.label.configure(text=f"{char} {self.text}")
        self.spinner_index = (self.spinner_index + 1) % len(self.spinner_chars)
        self._after_id = self.after(100, self._animate)


def _readonly_text(parent, height: int) -> tk.Text:
    widget = tk.Text(
        parent,
        height=height,
        wrap="word",
        bg=PANEL_BG,
        fg=FG,
        relief="flat",
        font=("Helvetica", 13),
        padx=10,
        pady=8,
    )
    widget.tag_configure("strength", foreground="#8fdc8f")
    widget.tag_configure("improvement", foreground="#ffd27b")
    widget.tag_configure("you", foreground=ACCENT)
    widget.configure(state="disabled")
    return widget


def _set_text(widget: tk.Text, text: str, highlight: bool = False) -> None:
    widget.configure(state="normal")
    widget.delete("1.0", "end")
    for line in text.splitlines(keepends=True):
        tag = ()
        if highlight and line.lstrip().startswith(STRENGTH_MARKER):
            tag = ("strength",)
        elif highlight and line.lstrip().startswith(IMPROVEMENT_MARKER):
            tag = ("improvement",)
        widget.insert("end", line, tag)
    widget.configure(state="disabled")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

class RephraseTrainerApp(tk.Tk):
    def __init__(self, config: AppConfig) -> None:
        super().__init__()
        logger.ui("Initializing RephraseTrainerApp window...")

        self.title("Rephrase Trainer")
        window_width, window_height = 820, 760
        center_x = int(self.winfo_screenwidth() / 2 - window_width / 2)
        center_y = int(self.winfo_screenheight() / 2 - window_height / 2)
        self.geometry(f"{window_width}x{window_height}+{center_x}+{center_y}")
        self.minsize(480, 420)
        self.configure(bg=BG)

        style = ttk.Style()
        style.theme_use("clam")
        style.configure("TFrame", background=BG)
        style.configure("TLabel", background=BG, foreground=FG, font=("Helvetica", 14))
        style.configure("TButton", background=PANEL_BG, foreground=FG, font=("Helvetica", 13))
        style.map("TButton", background=[("active", "#3d3d3d"), ("disabled", "#252525")])
        style.configure("Topic.TLabel", background="#4a6fa5", foreground="#ffffff",
                        font=("Helvetica", 22, "bold"), padding=(16, 8))
        style.configure("TCombobox", fieldbackground="#3d3d3d", background=PANEL_BG,
                        foreground="#ffffff", arrowcolor="#ffffff")

        self.cards: Dict[str, ttk.Frame] = {}

        # Settings + services
        backend = JsonFileSettingsBackend(config.settings_path)
        self.settings = SettingsStore(backend)
        if config.endpoint and not backend.load().get("endpoint"):
            current = self.settings.get()
            self.settings.save(current.api_key, current.model, config.endpoint)
        self.client = CompletionClient(endpoint=self.settings.get().endpoint, timeout=config.timeout)
        self.practice = PracticeSession(
            self.settings,
            EvaluationProtocol(self.client.complete),
            on_change=self._on_session_change,
        )
        self.chat = ChatSession(self.settings, self.client.complete)

        # Navigation bar
        nav = ttk.Frame(self)
        nav.pack(fill="x", padx=16, pady=(12, 0))
        ttk.Label(nav, text="Rephrase Trainer", font=("Helvetica", 20, "bold")).pack(side="left")
        ttk.Button(nav, text="Settings", command=self.open_settings).pack(side="right")
        ttk.Button(nav, text="Chat", command=lambda: self.show_card("ChatCard")).pack(side="right", padx=6)
        ttk.Button(nav, text="Practice", command=lambda: self.show_card("PracticeCard")).pack(side="right")

        container = ttk.Frame(self)
        container.pack(fill="both", expand=True)
        container.rowconfigure(0, weight=1)
        container.columnconfigure(0, weight=1)

        for CardClass in (PracticeCard, ChatCard):
            card = CardClass(parent=container, controller=self)
            self.cards[CardClass.__name__] = card
            card.grid(row=0, column=0, sticky="nsew")
            logger.debug(f"  Created: {CardClass.__name__}")

        logger.ui("Application initialized successfully")
        self.show_card("PracticeCard")
        self._on_session_change(self.practice)

    def show_card(self, name: str) -> None:
        logger.ui(f"Showing card: {name}")
        self.cards[name].tkraise()

    def schedule(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on the Tk thread."""
        self.after(0, callback)

    def _on_session_change(self, session: PracticeSession) -> None:
        card = self.cards.get("PracticeCard")
        if card is not None:
            card.render(session)

    def open_settings(self) -> None:
        SettingsDialog(self, self)

    def apply_settings(self, api_key: str, model: str, endpoint: str) -> None:
        saved = self.settings.save(api_key, model, endpoint)
        self.client.endpoint = saved.endpoint
        logger.ui(f"Settings applied: endpoint={saved.endpoint}, key={mask_secret(saved.api_key)}")


# ---------------------------------------------------------------------------
# Practice card
# ---------------------------------------------------------------------------

class PracticeCard(ttk.Frame):
    """Mode selector, topic, answer box, evaluation results and history."""

    def __init__(self, parent, controller: RephraseTrainerApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self._rendering = False
        self.columnconfigure(0, weight=1)

        # Mode row
        mode_row = ttk.Frame(self)
        mode_row.grid(row=0, column=0, sticky="ew", padx=20, pady=(16, 8))
        self.mode_var = tk.StringVar(value=controller.practice.mode.value)
        self.mode_combo = ttk.Combobox(
            mode_row,
            textvariable=self.mode_var,
            values=[mode.label for mode in Mode],
            state="readonly",
            width=16,
        )
        self.mode_combo.pack(side="left")
        self.mode_combo.bind("<<ComboboxSelected>>", self._on_mode_selected)
        ttk.Button(mode_row, text="New topic", command=self._on_new_topic_clicked).pack(side="left", padx=10)
        self.hint_label = ttk.Label(mode_row, text="", foreground=ACCENT, font=("Helvetica", 12))
        self.hint_label.pack(side="right")

        # Topic badge
        self.topic_label = ttk.Label(self, text="", style="Topic.TLabel")
        self.topic_label.grid(row=1, column=0, sticky="w", padx=20, pady=(4, 12))

        # Answer
        self.answer_text = tk.Text(
            self, height=5, wrap="word", bg="#3d3d3d", fg="#ffffff",
            insertbackground="#ffffff", font=("Helvetica", 14), relief="flat", padx=10, pady=8,
        )
        self.answer_text.grid(row=2, column=0, sticky="ew", padx=20)
        self.answer_text.bind("<<Modified>>", self._on_answer_modified)

        action_row = ttk.Frame(self)
        action_row.grid(row=3, column=0, sticky="ew", padx=20, pady=8)
        self.submit_button = ttk.Button(action_row, text="Evaluate", command=self._on_submit_clicked)
        self.submit_button.pack(side="right")
        self.error_label = ttk.Label(action_row, text="", foreground=ERROR_FG, font=("Helvetica", 12),
                                     wraplength=560, justify="left")
        self.error_label.pack(side="left", fill="x", expand=True)

        self.loading_spinner = LoadingSpinner(self, text="Evaluating your answer...")
        self.loading_spinner.grid(row=4, column=0)
        self.loading_spinner.grid_remove()

        # Results
        ttk.Label(self, text="Example answer", font=("Helvetica", 13, "bold")).grid(
            row=5, column=0, sticky="w", padx=20, pady=(6, 2))
        self.example_text = _readonly_text(self, height=4)
        self.example_text.grid(row=6, column=0, sticky="ew", padx=20)
        ttk.Label(self, text="Feedback", font=("Helvetica", 13, "bold")).grid(
            row=7, column=0, sticky="w", padx=20, pady=(10, 2))
        self.feedback_text = _readonly_text(self, height=5)
        self.feedback_text.grid(row=8, column=0, sticky="ew", padx=20)

        # History
        self.history_label = ttk.Label(self, text="History", font=("Helvetica", 13, "bold"))
        self.history_label.grid(row=9, column=0, sticky="w", padx=20, pady=(10, 2))
        self.history_list = tk.Listbox(self, height=5, bg=PANEL_BG, fg=FG, relief="flat",
                                       font=("Helvetica", 12), activestyle="none")
        self.history_list.grid(row=10, column=0, sticky="nsew", padx=20, pady=(0, 16))
        self.rowconfigure(10, weight=1)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def _on_mode_selected(self, event=None) -> None:
        self.controller.practice.set_mode(Mode.from_string(self.mode_var.get()))
        self.render(self.controller.practice)

    def _on_new_topic_clicked(self) -> None:
        self.controller.practice.new_topic()

    def _on_answer_modified(self, event=None) -> None:
        if not self.answer_text.edit_modified():
            return
        self.answer_text.edit_modified(False)
        if self._rendering:
            return
        self.controller.practice.set_answer(self.answer_text.get("1.0", "end-1c"))

    def _on_submit_clicked(self) -> None:
        try:
            self.controller.practice.submit_in_background(self.controller.schedule)
        except ConfigurationError as e:
            logger.ui(f"Submit blocked: {e}")
            if messagebox.askyesno("Settings", f"{e}. Open settings now?"):
                self.controller.open_settings()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, session: PracticeSession) -> None:
        self._rendering = True
        try:
            self.mode_var.set(session.mode.value)
            self.hint_label.configure(text=session.mode.hint)
            self.topic_label.configure(text=session.topic)

            if self.answer_text.get("1.0", "end-1c") != session.answer:
                self.answer_text.configure(state="normal")
                self.answer_text.delete("1.0", "end")
                self.answer_text.insert("1.0", session.answer)

            evaluating = session.phase == SessionPhase.EVALUATING
            self.answer_text.configure(state="normal" if session.phase == SessionPhase.INPUT else "disabled")
            self.mode_combo.configure(state="disabled" if evaluating else "readonly")
            self.submit_button.configure(state="normal" if session.can_submit else "disabled")
            if evaluating:
                self.loading_spinner.start()
            else:
                self.loading_spinner.stop()

            self.error_label.configure(text=session.error or "")
            result = session.current_result
            _set_text(self.example_text, result.example if result else "")
            _set_text(self.feedback_text, result.feedback if result else "", highlight=True)

            self.history_list.delete(0, "end")
            for index, done in enumerate(session.history, start=1):
                mode = done.mode.value if done.mode else ""
                self.history_list.insert("end", f"{index}. [{mode}] {done.topic}: {done.user_answer}")
            self.history_label.configure(text=f"History ({len(session.history)})")
        finally:
            self._rendering = False


# ---------------------------------------------------------------------------
# Chat card
# ---------------------------------------------------------------------------

class ChatCard(ttk.Frame):
    """Free-form chat with the configured model."""

    def __init__(self, parent, controller: RephraseTrainerApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)

        self.transcript = _readonly_text(self, height=20)
        self.transcript.grid(row=0, column=0, sticky="nsew", padx=20, pady=(16, 8))

        self.loading_spinner = LoadingSpinner(self, text="Waiting for reply...")
        self.loading_spinner.grid(row=1, column=0)
        self.loading_spinner.grid_remove()

        input_row = ttk.Frame(self)
        input_row.grid(row=2, column=0, sticky="ew", padx=20, pady=(0, 8))
        input_row.columnconfigure(0, weight=1)
        self.input_text = tk.Text(input_row, height=3, wrap="word", bg="#3d3d3d", fg="#ffffff",
                                  insertbackground="#ffffff", font=("Helvetica", 13), relief="flat")
        self.input_text.grid(row=0, column=0, sticky="ew")
        self.send_button = ttk.Button(input_row, text="Send", command=self._on_send_clicked)
        self.send_button.grid(row=0, column=1, padx=(8, 0))
        ttk.Button(input_row, text="Clear", command=self._on_clear_clicked).grid(row=0, column=2, padx=(8, 0))

        self.error_label = ttk.Label(self, text="", foreground=ERROR_FG, font=("Helvetica", 12))
        self.error_label.grid(row=3, column=0, sticky="w", padx=20, pady=(0, 12))

    def _on_send_clicked(self) -> None:
        chat = self.controller.chat
        payload = chat.add_user_message(self.input_text.get("1.0", "end-1c"))
        if payload is None:
            return
        self.input_text.delete("1.0", "end")
        self.render()

        def send_threaded():
            logger.task_start("chat request")
            try:
                reply = chat.request(payload)
            except Exception as e:
                logger.task_error("chat request", str(e))
                self.controller.schedule(lambda error=e: self._on_reply(error=error))
                return
            logger.task_complete("chat request")
            self.controller.schedule(lambda: self._on_reply(reply=reply))

        threading.Thread(target=send_threaded, daemon=True).start()

    def _on_reply(self, reply: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        self.controller.chat.finish(reply=reply, error=error)
        self.render()

    def _on_clear_clicked(self) -> None:
        if self.controller.chat.loading:
            return
        self.controller.chat.clear()
        self.render()

    def render(self) -> None:
        chat = self.controller.chat
        self.transcript.configure(state="normal")
        self.transcript.delete("1.0", "end")
        for message in chat.messages:
            if message.role == "user":
                self.transcript.insert("end", f"You: {message.content}\n\n", ("you",))
            else:
                self.transcript.insert("end", f"Model: {message.content}\n\n")
        self.transcript.configure(state="disabled")
        self.transcript.see("end")

        self.send_button.configure(state="disabled" if chat.loading else "normal")
        if chat.loading:
            self.loading_spinner.start()
        else:
            self.loading_spinner.stop()
        self.error_label.configure(text=chat.error or "")


# ---------------------------------------------------------------------------
# Settings dialog
# ---------------------------------------------------------------------------

class SettingsDialog(tk.Toplevel):
    def __init__(self, parent: tk.Tk, controller: RephraseTrainerApp) -> None:
        super().__init__(parent)
        self.controller = controller
        self.title("Settings")
        self.configure(bg=BG)
        self.transient(parent)
        self.resizable(False, False)

        current = controller.settings.get()
        self.key_var = tk.StringVar(value=current.api_key)
        self.model_var = tk.StringVar(value=current.model)
        self.endpoint_var = tk.StringVar(value=current.endpoint)

        frame = ttk.Frame(self)
        frame.pack(fill="both", expand=True, padx=20, pady=16)
        for row, (label, var, show) in enumerate((
            ("API Key", self.key_var, "•"),
            ("Model", self.model_var, ""),
            ("Endpoint", self.endpoint_var, ""),
        )):
            ttk.Label(frame, text=label, font=("Helvetica", 13)).grid(row=row, column=0, sticky="w", pady=4)
            ttk.Entry(frame, textvariable=var, show=show, width=46).grid(row=row, column=1, pady=4, padx=(10, 0))

        buttons = ttk.Frame(frame)
        buttons.grid(row=3, column=0, columnspan=2, sticky="e", pady=(12, 0))
        ttk.Button(buttons, text="Save", command=self._on_save_clicked).pack(side="left", padx=(0, 8))
        ttk.Button(buttons, text="Close", command=self.destroy).pack(side="left")

        self.grab_set()

    def _on_save_clicked(self) -> None:
        model = self.model_var.get().strip()
        endpoint = self.endpoint_var.get().strip()
        if not model or not endpoint:
            messagebox.showerror("Settings", "Model and endpoint must not be empty.", parent=self)
            return
        try:
            self.controller.apply_settings(self.key_var.get(), model, endpoint)
        except OSError as e:
            logger.error(f"Could not save settings: {e}", exc_info=True)
            messagebox.showerror("Settings", f"Could not save settings: {e}", parent=self)
            return
        self.destroy()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    config = load_config()
    logger.enabled = config.debug
    logger.banner("Rephrase Trainer - Starting Application")
    app = RephraseTrainerApp(config)
    logger.success("Application window created, entering main loop")
    logger.info("Ready for user interaction")
    app.mainloop()
    logger.separator("Application Closed")


if __name__ == "__main__":
    main()
