import logging
import logging.handlers
import os

from sqlswitch import config

__all__ = ["setup_logger"]

_FRAMEWORK_PREFIXES = (
    "uvicorn",   # ASGI server
    "watchfiles" # Dev auto-reloader
)


def _file_filter(record: logging.LogRecord) -> bool:
    """Skip framework loggers in app.log; let everything else through."""

    return not record.name.startswith(_FRAMEWORK_PREFIXES)

# ---------------------------------------------------------------------------
# Root logger configuration (one-time) – idempotent
# ---------------------------------------------------------------------------

def _configure_root_logger() -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    log_cfg = config.get("logging", {})
    lvl_cfg = log_cfg.get("level", {})

    # ---------- Console handler (ensure one human-readable) ----------
    console_level = getattr(logging, lvl_cfg.get("console", "INFO").upper(), logging.INFO)

    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(console_level)
        ch.setFormatter(logging.Formatter("%(name)s - %(levelname)s - %(message)s"))
        root.addHandler(ch)

    # ---------- Rotating file handler (central) ----------
    rotation_cfg = log_cfg.get("rotation", {})
    max_bytes = rotation_cfg.get("max_bytes", 10 * 1024 * 1024)
    backup_count = rotation_cfg.get("backup_count", 5)
    encoding = rotation_cfg.get("encoding", "utf-8")

    file_level = getattr(logging, lvl_cfg.get("file", "DEBUG").upper(), logging.DEBUG)

    logs_dir = config.get("base_dirs", {}).get("logs", "logs")
    os.makedirs(logs_dir, exist_ok=True)
    file_path = os.path.join(logs_dir, "app.log")

    if not any(isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", "") == file_path for h in root.handlers):
        fh = logging.handlers.RotatingFileHandler(
            file_path, mode="a", maxBytes=max_bytes, backupCount=backup_count, encoding=encoding
        )
        fh.setLevel(file_level)
        fh.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        fh.addFilter(_file_filter)
        root.addHandler(fh)


# ---------------------------------------------------------------------------
# Public helper
# ---------------------------------------------------------------------------


def setup_logger(name: str) -> logging.Logger:
    _configure_root_logger()

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    return logger
