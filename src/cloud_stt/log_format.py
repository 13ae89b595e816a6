import logging

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
MAGENTA = "\033[35m"

LEVEL_COLORS = {
    logging.DEBUG: DIM,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED + BOLD,
}

# First marker found in the message wins.
HIGHLIGHTS = (
    ("Session state:", BOLD + CYAN),
    ("Transcript:", BOLD + GREEN),
    ("API key verified", BOLD + GREEN),
    ("status:", MAGENTA),
)


def highlight_for(msg: str) -> str | None:
    for marker, style in HIGHLIGHTS:
        if marker in msg:
            return style
    return None


class ColoredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, "")
        time = self.formatTime(record, self.datefmt)
        name = record.name.rsplit(".", 1)[-1]
        msg = record.getMessage()

        style = highlight_for(msg)
        if style is None and record.levelno == logging.DEBUG:
            style = DIM
        elif style is None and record.levelno >= logging.WARNING:
            style = color
        if style:
            msg = f"{style}{msg}{RESET}"
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        return f"{DIM}{time}{RESET} {color}{record.levelname:<7}{RESET} {DIM}{name:<16}{RESET} {msg}"
