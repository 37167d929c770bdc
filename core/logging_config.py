"""
Centralized logging configuration for the workflow engine.

Features:
- Colored logging with different colors for different log levels
- Structured formatting with timestamps and context
- Run banners and per-node step lines with durations
- Configurable log levels and output formats
"""

import logging
import re
import sys
from datetime import datetime
from typing import Optional, Union
from pathlib import Path

# Color codes for terminal output
class Colors:
    """ANSI color codes for terminal output"""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"

TIMESTAMP_PATTERN = re.compile(r'(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{2,3})?)')

class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to log messages"""

    COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record):
        formatted = super().format(record)

        level_color = self.COLORS.get(record.levelno, Colors.WHITE)
        formatted = formatted.replace(
            record.levelname,
            f"{level_color}{record.levelname}{Colors.RESET}",
            1
        )

        formatted = TIMESTAMP_PATTERN.sub(f"{Colors.CYAN}\\1{Colors.RESET}", formatted, count=1)

        if record.name:
            formatted = formatted.replace(
                f"{record.name} - ",
                f"{Colors.BLUE}{record.name}{Colors.RESET} - ",
                1
            )

        return formatted

class RunLogger:
    """Logger for workflow runs: divider-framed banners and per-step lines"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.divider_length = 80

    def log_run_start(self, run_id: str, workflow_id: Optional[str] = None, trigger_count: int = 0):
        """Log the start of a workflow run with clear dividers"""
        divider = "=" * self.divider_length
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        self.logger.info(f"{Colors.MAGENTA}{divider}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}🚀 WORKFLOW RUN START - {workflow_id or 'ad-hoc'}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}📋 Run ID: {run_id}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}🎯 Triggers: {trigger_count}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}⏰ Timestamp: {timestamp}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}{divider}{Colors.RESET}")

    def log_run_end(self, run_id: str, status: str, duration_ms: Optional[float] = None,
                    node_count: int = 0):
        """Log the end of a workflow run with clear dividers"""
        divider = "=" * self.divider_length

        self.logger.info(f"{Colors.MAGENTA}{divider}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}✅ WORKFLOW RUN END - {run_id}{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}📊 Status: {status} ({node_count} nodes){Colors.RESET}")
        if duration_ms is not None:
            self.logger.info(f"{Colors.MAGENTA}⏱️  Duration: {duration_ms:.2f}ms{Colors.RESET}")
        self.logger.info(f"{Colors.MAGENTA}{divider}{Colors.RESET}")

    def log_step_start(self, node_name: str, node_type: str):
        """Log a node entering the running state"""
        self.logger.info(f"{Colors.CYAN}▶️  {node_name} ({node_type}){Colors.RESET}")

    def log_step_complete(self, node_name: str, success: bool, duration_ms: float,
                          error: Optional[str] = None):
        """Log a node settling into success or error"""
        if success:
            self.logger.info(f"{Colors.GREEN}✔️  {node_name} finished in {duration_ms:.2f}ms{Colors.RESET}")
        else:
            self.logger.error(f"{Colors.RED}❌ {node_name} failed after {duration_ms:.2f}ms: {error}{Colors.RESET}")

class RequestLogger:
    """Logger for HTTP requests served by the API"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.divider_length = 80

    def log_api_call_start(self, endpoint: str, request_id: str):
        divider = "-" * self.divider_length
        self.logger.info(f"{Colors.BLUE}{divider}{Colors.RESET}")
        self.logger.info(f"{Colors.BLUE}🌐 API CALL START - {endpoint} [{request_id}]{Colors.RESET}")

    def log_api_call_end(self, endpoint: str, request_id: str, duration_ms: float, status: str):
        divider = "-" * self.divider_length
        self.logger.info(
            f"{Colors.BLUE}🏁 API CALL END - {endpoint} [{request_id}] {status} in {duration_ms:.2f}ms{Colors.RESET}"
        )
        self.logger.info(f"{Colors.BLUE}{divider}{Colors.RESET}")

def setup_logging(
    log_level: str = "INFO",
    log_format: str = "detailed",
    log_file: Optional[Union[str, Path]] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Set up centralized logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format style ('simple', 'detailed', 'json')
        log_file: Optional file path for logging
        enable_colors: Whether to enable colored output (terminal only)

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)

    use_colors = enable_colors and sys.stdout.isatty()
    if log_format == "simple":
        pattern = "%(levelname)s - %(message)s"
        formatter = ColoredFormatter(pattern) if use_colors else logging.Formatter(pattern)
    elif log_format == "json":
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
        )
    else:  # detailed (default)
        pattern = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        if use_colors:
            formatter = ColoredFormatter(pattern, datefmt="%Y-%m-%d %H:%M:%S")
        else:
            formatter = logging.Formatter(pattern, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        # File handler always uses non-colored format
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        root_logger.addHandler(file_handler)

    return root_logger

def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)

def get_run_logger(name: str) -> RunLogger:
    """Get a run logger for the specified logger name"""
    return RunLogger(logging.getLogger(name))

def get_request_logger(name: str) -> RequestLogger:
    """Get a request logger for the specified logger name"""
    return RequestLogger(logging.getLogger(name))

def configure_logging_from_settings():
    """Configure logging based on application settings"""
    from core.config import settings

    log_level = 'DEBUG' if settings.debug else settings.log_level

    setup_logging(
        log_level=log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        enable_colors=True
    )

    logger = get_logger(__name__)
    logger.debug(f"🎨 Logging configured with level: {log_level}, format: {settings.log_format}")

# Initialize logging when module is imported
configure_logging_from_settings()
