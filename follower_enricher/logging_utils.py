"""Colored, filtered console logging for enrichment runs."""
import logging
import logging.handlers
from pathlib import Path

PIPELINE_LOGGER = "follower_enricher.pipeline"
CHECKPOINT_LOGGER = "follower_enricher.data.checkpoint"

# Pipeline INFO lines that reach the console.
PROGRESS_PATTERNS = (
    "Starting enrichment",
    "Fetching",
    "Fetched",
    "Skipping",
    "CHECKPOINT",
    "COMPLETE",
)
# Lines that mark saved work; shown bold on top of the level color.
MILESTONE_PATTERNS = ("CHECKPOINT", "COMPLETE", "Wrote ")

LOG_FILE_NAME = "enrichment.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class Colors:
    """ANSI color codes."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"


class ColoredFormatter(logging.Formatter):
    """Color each console line by level; checkpoint milestones are also bold."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        message = super().format(record)
        prefix = self.LEVEL_COLORS.get(record.levelno, "")
        if record.levelno == logging.INFO and any(p in record.getMessage() for p in MILESTONE_PATTERNS):
            prefix = Colors.BOLD + prefix
        if not prefix:
            return message
        return f"{prefix}{message}{Colors.RESET}"


class ConsoleFilter(logging.Filter):
    """Pass warnings, pipeline progress, checkpoint writes and CLI messages."""

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        if record.levelno != logging.INFO:
            return False

        if record.name == PIPELINE_LOGGER:
            message = record.getMessage()
            return any(pattern in message for pattern in PROGRESS_PATTERNS)
        if record.name == CHECKPOINT_LOGGER:
            return record.getMessage().startswith("Wrote ")
        return "enrich_accounts" in record.name


def setup_enrichment_logging(
    console_level=logging.INFO,
    file_level=logging.DEBUG,
    quiet=False,
    log_dir=Path("logs"),
):
    """Route logs to a filtered console (unless ``quiet``) and a rotating file.

    Existing root handlers are replaced so repeated runs in one process do
    not duplicate output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if not quiet:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(
            ColoredFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")
        )
        console_handler.addFilter(ConsoleFilter())
        root_logger.addHandler(console_handler)

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s")
    )
    root_logger.addHandler(file_handler)

    # Per-request connection chatter
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Enrichment logging to %s", log_dir / LOG_FILE_NAME)
