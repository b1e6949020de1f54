"""
Centralized debug logging for Rephrase Trainer.

Every line is tagged with a category and colour so a terminal session shows
what the app is doing at a glance:
- ENV: launch configuration and settings persistence
- API: chat-completion requests and responses
- UI: practice-session state transitions and user intents
- TASK: background worker threads

Usage:
    from trainer.logger import logger

    logger.api_call("chat.completions", model="local-llama")
    logger.ui_transition("INPUT", "EVALUATING")
"""

import sys
import traceback
from datetime import datetime
from typing import Optional

# Emoji/box characters break on legacy Windows code pages
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8")


class ColorCodes:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BLUE = "\033[34m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_CYAN = "\033[96m"


def mask_secret(value: str) -> str:
    """Show the first 4 and last 4 characters of a secret, or a placeholder."""
    if not value:
        return "<empty>"
    if len(value) <= 12:
        return "***"
    return f"{value[:4]}...{value[-4:]}"


class DebugLogger:
    """
    Categorized, colour-coded console logger.

    Output goes to stdout (errors' tracebacks to stderr) and can be switched
    off entirely with ``enabled=False``, which the test-suite and the
    ``REPHRASE_DEBUG=0`` launch option rely on.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._start_time = datetime.now()

    def _timestamp(self) -> str:
        now = datetime.now()
        elapsed = (now - self._start_time).total_seconds()
        return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d} (+{elapsed:>6.1f}s)"

    def _log(self, category: str, color: str, message: str, exc_info: bool = False) -> None:
        if not self.enabled:
            return

        timestamp = self._timestamp()
        padding = " " * (len(timestamp) + 8)
        tag = f"{color}{ColorCodes.BOLD}[{category:>4}]{ColorCodes.RESET}"

        first, *rest = message.split("\n")
        print(f"{ColorCodes.DIM}{timestamp}{ColorCodes.RESET} {tag} {first}", file=sys.stdout, flush=True)
        for line in rest:
            print(f"{padding}{line}", file=sys.stdout, flush=True)

        if exc_info:
            for line in traceback.format_exc().splitlines():
                if line.strip():
                    print(f"{padding}{ColorCodes.RED}{line}{ColorCodes.RESET}", file=sys.stderr, flush=True)

    # === Configuration ===
    def env(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.MAGENTA, message, **kwargs)

    def env_success(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.GREEN, f"✓ {message}", **kwargs)

    def env_error(self, message: str, **kwargs) -> None:
        self._log("ENV", ColorCodes.RED, f"✗ {message}", **kwargs)

    # === Completion endpoint ===
    def api(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.CYAN, message, **kwargs)

    def api_call(self, endpoint: str, model: Optional[str] = None, **kwargs) -> None:
        """Log an outgoing request."""
        model_info = f" (model: {model})" if model else ""
        self._log("API", ColorCodes.CYAN, f"→ Calling {endpoint}{model_info}", **kwargs)

    def api_response(self, endpoint: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        """Log a response; duration is omitted when unknown."""
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("API", ColorCodes.BRIGHT_CYAN, f"← Response from {endpoint}{duration_info}", **kwargs)

    def api_error(self, message: str, **kwargs) -> None:
        self._log("API", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    # === Session / UI ===
    def ui(self, message: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BLUE, message, **kwargs)

    def ui_transition(self, from_state: str, to_state: str, **kwargs) -> None:
        self._log("UI", ColorCodes.BRIGHT_BLUE, f"{from_state} → {to_state}", **kwargs)

    # === Worker threads ===
    def task(self, message: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.WHITE, message, **kwargs)

    def task_start(self, task_name: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.WHITE, f"⚡ Starting: {task_name}", **kwargs)

    def task_complete(self, task_name: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        duration_info = f" ({duration_ms:.0f}ms)" if duration_ms else ""
        self._log("TASK", ColorCodes.BRIGHT_GREEN, f"✓ Completed: {task_name}{duration_info}", **kwargs)

    def task_error(self, task_name: str, error: str, **kwargs) -> None:
        self._log("TASK", ColorCodes.BRIGHT_RED, f"✗ Failed: {task_name} - {error}", **kwargs)

    # === General ===
    def success(self, message: str, **kwargs) -> None:
        self._log("OK", ColorCodes.BRIGHT_GREEN, f"✓ {message}", **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log("WARN", ColorCodes.BRIGHT_YELLOW, f"⚠ {message}", **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log("ERR", ColorCodes.BRIGHT_RED, f"✗ {message}", **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log("INFO", ColorCodes.WHITE, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log("DBG", ColorCodes.DIM, message, **kwargs)

    def separator(self, title: Optional[str] = None) -> None:
        if not self.enabled:
            return
        line = f"{'─' * 20} {title} {'─' * 20}" if title else "─" * 60
        print(f"\n{ColorCodes.DIM}{line}{ColorCodes.RESET}\n", file=sys.stdout, flush=True)

    def banner(self, text: str) -> None:
        if not self.enabled:
            return
        width = max(60, len(text) + 4)
        border = "═" * width
        padding = " " * ((width - len(text)) // 2)
        print(f"\n{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}", file=sys.stdout, flush=True)
        print(f"{padding}{ColorCodes.BOLD}{text}{ColorCodes.RESET}", file=sys.stdout, flush=True)
        print(f"{ColorCodes.BRIGHT_CYAN}{border}{ColorCodes.RESET}\n", file=sys.stdout, flush=True)


# Global logger instance
logger = DebugLogger(enabled=True)


class Timer:
    """Context manager measuring wall time in milliseconds."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.duration_ms: float = 0

    def __enter__(self) -> "Timer":
        import time
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        import time
        if self.start_time:
            self.duration_ms = (time.perf_counter() - self.start_time) * 1000
