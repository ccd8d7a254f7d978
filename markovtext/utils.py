import logging
import os
import re
import sys
from typing import Iterable, List

# Asides and stage directions that read badly in generated text
_CLEANUPS = (
    (re.compile(r"\[.*?\]"), ""),
    (re.compile(r"\(.*?\)"), ""),
    (re.compile(r"^\s*(Act|Scene)\s+[IVX]+\.?\s*$", re.I | re.M), ""),
    (re.compile(r"^\s*(Enter|Exit|Exeunt)\s+", re.I | re.M), ""),
    (re.compile(r"[ \t]+"), " "),
    # One sentence per line
    (re.compile(r"([.!?])[ \t]+(?=[A-Z])"), "\\1\n"),
)

_plugin_prefix_re = re.compile(r"^[a-zA-Z0-9_-]+:")


def clean_text(text: str) -> str:
    """
    Strip bracketed asides, play formatting and runs of whitespace, and
    break the text into one sentence per line.
    """
    for pattern, replacement in _CLEANUPS:
        text = pattern.sub(replacement, text)
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


def corpus_lines(texts: Iterable[str], clean: bool = False, min_length: int = 5) -> List[str]:
    """
    Split texts into corpus lines, skipping lines that are shorter than
    ``min_length`` characters, only digits, or have no letters at all.
    """
    lines = []
    for text in texts:
        if clean:
            text = clean_text(text)
        for line in text.splitlines():
            line = line.strip()
            if len(line) < min_length:
                continue
            if line.isdigit() or not re.search(r"[^\W\d_]", line):
                continue
            lines.append(line)
    return lines


_ARTIFACT_CHARS = ("_", "[", "]")


def is_usable_line(
    text: str, min_words: int = 0, reject_artifacts: bool = False
) -> bool:
    """
    Quality check for a generated line.

    Rejects lines with fewer than ``min_words`` words and, with
    ``reject_artifacts``, lines that are only digits or still carry
    underscores or square brackets from the source formatting.
    """
    text = text.strip()
    if len(text.split()) < min_words:
        return False
    if reject_artifacts:
        if text.isdigit():
            return False
        if any(char in text for char in _ARTIFACT_CHARS):
            return False
    return True


def has_plugin_prefix(value: str) -> bool:
    "Check if value starts with alphanumeric prefix followed by a colon"
    return bool(_plugin_prefix_re.match(value))


def truncate_string(text: str, max_length: int = 100) -> str:
    if not text or len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


# --- HTTP logging ---


class HTTPColorFormatter(logging.Formatter):
    """
    Formatter for request logging, with colors when writing to a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
        "BOLD": "\033[1m",
        "DIM": "\033[2m",
    }

    LOGGER_COLORS = {
        "httpx": "\033[94m",  # Light blue
        "httpcore": "\033[90m",  # Dark gray
        "markovtext": "\033[96m",  # Light cyan
    }

    def __init__(self, use_colors=True):
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self):
        if os.environ.get("NO_COLOR"):
            return False
        return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()

    def format(self, record):
        timestamp = self.formatTime(record, "%H:%M:%S")
        if not self.use_colors:
            return f"[{timestamp}] {record.levelname} {record.name} - {record.getMessage()}"

        reset = self.COLORS["RESET"]
        logger_name = record.name
        logger_color = self.LOGGER_COLORS.get(logger_name.split(".")[0], "")
        if logger_color:
            logger_name = f"{logger_color}{logger_name}{reset}"
        level = record.levelname
        level_color = self.COLORS.get(level, "")
        if level_color:
            level = f"{level_color}{self.COLORS['BOLD']}{level}{reset}"
        message = self._colorize_message(record.getMessage())
        return f"{self.COLORS['DIM']}[{timestamp}]{reset} {level} {logger_name} - {message}"

    def _colorize_message(self, message):
        reset = self.COLORS["RESET"]
        for method in ("GET", "HEAD"):
            message = message.replace(
                f"{method} ", f"{self.COLORS['BOLD']}{method}{reset} "
            )
        message = re.sub(r"\b(2\d\d)\b", f"{self.COLORS['DEBUG']}\\1{reset}", message)
        message = re.sub(r"\b(4\d\d)\b", f"{self.COLORS['WARNING']}\\1{reset}", message)
        message = re.sub(r"\b(5\d\d)\b", f"{self.COLORS['ERROR']}\\1{reset}", message)
        message = re.sub(
            r'(https?://[^\s"]+)', f"{self.COLORS['DIM']}\\1{reset}", message
        )
        return message


def _get_http_logging_config():
    """
    Determine HTTP logging configuration from environment variables.

    Returns:
        dict: Configuration with 'enabled', 'level' and 'use_colors' keys
    """
    enabled = bool(
        os.environ.get("MARKOVTEXT_HTTP_LOGGING")
        or os.environ.get("MARKOVTEXT_HTTP_DEBUG")
        or os.environ.get("MARKOVTEXT_HTTP_VERBOSE")
    )
    if not enabled:
        return {"enabled": False}

    level = "INFO"
    if os.environ.get("MARKOVTEXT_HTTP_DEBUG") or os.environ.get(
        "MARKOVTEXT_HTTP_VERBOSE"
    ):
        level = "DEBUG"

    return {
        "enabled": True,
        "level": level,
        "use_colors": not os.environ.get("NO_COLOR"),
    }


def configure_http_logging():
    """
    Send httpx, httpcore and markovtext logs to stderr.

    Environment variables:
    - MARKOVTEXT_HTTP_LOGGING=1: INFO level
    - MARKOVTEXT_HTTP_DEBUG=1 or MARKOVTEXT_HTTP_VERBOSE=1: DEBUG level
    """
    config = _get_http_logging_config()
    if not config["enabled"]:
        return

    formatter = HTTPColorFormatter(use_colors=config["use_colors"])
    log_level = getattr(logging, config["level"])

    for logger_name in ("httpx", "httpcore", "markovtext"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(log_level)
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False

    logging.getLogger("markovtext.http").info(
        f"HTTP logging enabled at {config['level']} level"
    )


def is_http_logging_enabled() -> bool:
    "Check if HTTP logging is enabled via environment variables."
    return _get_http_logging_config()["enabled"]
