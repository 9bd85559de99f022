import logging

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"

LEVEL_STYLES = {
    logging.DEBUG: DIM,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: BOLD + RED,
}

# message prefix -> style, checked in order
MESSAGE_STYLES = (
    ("Final:", BOLD + GREEN),
    ("Partial:", CYAN),
    ("Status:", MAGENTA),
)


def _paint(text: str, style: str) -> str:
    return f"{style}{text}{RESET}" if style else text


def _message_style(record: logging.LogRecord, msg: str) -> str:
    if msg.startswith(("State:", "Connection:")) and "->" in msg:
        return BOLD + CYAN
    for prefix, style in MESSAGE_STYLES:
        if msg.startswith(prefix):
            return style
    if record.levelno == logging.DEBUG:
        return DIM
    if record.levelno >= logging.WARNING:
        return LEVEL_STYLES.get(record.levelno, "")
    return ""


class ColoredFormatter(logging.Formatter):
    """Single-line console format: time, level, short logger name, message.

    Transitions, committed utterances and previews get their own colors so a
    live session can be followed in the terminal.
    """

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        stamp = _paint(self.formatTime(record, self.datefmt), DIM)
        level = _paint(f"{record.levelname:<7}", LEVEL_STYLES.get(record.levelno, ""))
        source = _paint(f"{record.name.rsplit('.', 1)[-1]:<18}", DIM)
        text = _paint(msg, _message_style(record, msg))
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            text = f"{text}\n{record.exc_text}"
        return f"{stamp} {level} {source} {text}"
