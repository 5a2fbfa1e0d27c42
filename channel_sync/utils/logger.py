"""
Logging utility for the Channel Sync & Reconciliation engine.
"""
import logging
import sys
import json
from collections import deque
from typing import Optional, Any, Dict, List
from colorama import Fore, Style, init
import structlog
from datetime import datetime, timezone

# Initialize colorama for cross-platform colored output
init(autoreset=True)

LEVEL_COLORS = {
    'debug': Fore.CYAN,
    'info': Fore.GREEN,
    'warning': Fore.YELLOW,
    'error': Fore.RED,
    'critical': Fore.MAGENTA + Style.BRIGHT,
}

# Keys rendered in the line prefix rather than as key=value context
_PREFIX_KEYS = ('timestamp', 'logger', 'level', 'event')

_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
]


def render_sync_line(logger, method_name: str, event_dict: Dict[str, Any]) -> str:
    """
    Render ``timestamp - logger - LEVEL - event key=value ...`` with colorama.

    Warnings and errors are painted red, info messages green, and the bound
    context (unit_id, connection_id, channel ...) follows the message.
    """
    level = str(event_dict.get('level', method_name)).lower()
    color = LEVEL_COLORS.get(level, '')
    message = str(event_dict.get('event', ''))
    if level in ('warning', 'error', 'critical'):
        message = f"{Fore.RED}{message}{Style.RESET_ALL}"
    elif level == 'info':
        message = f"{Fore.GREEN}{message}{Style.RESET_ALL}"

    context = " ".join(
        f"{key}={value}" for key, value in event_dict.items() if key not in _PREFIX_KEYS
    )
    line = " - ".join([
        str(event_dict.get('timestamp', '')),
        str(event_dict.get('logger', '')),
        f"{color}{level.upper()}{Style.RESET_ALL}",
        message,
    ])
    return f"{line} {context}" if context else line


class SyncConsoleFormatter(structlog.stdlib.ProcessorFormatter):
    """Console formatter that renders structlog context for stdlib handlers."""

    def __init__(self):
        super().__init__(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                render_sync_line,
            ],
            foreign_pre_chain=_SHARED_PROCESSORS,
        )


class SyncFileFormatter(structlog.stdlib.ProcessorFormatter):
    """One JSON object per line for log files."""

    def __init__(self):
        super().__init__(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=_SHARED_PROCESSORS,
        )


def setup_logger(
    name: str = "channel_sync",
    level: str = "INFO",
    log_file: Optional[str] = None
) -> structlog.BoundLogger:
    """
    Set up structured logging with colorized console output.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for JSON lines

    Returns:
        Configured structured logger
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger(name)

    stdlib_logger = logging.getLogger(name)
    stdlib_logger.setLevel(getattr(logging, level.upper()))

    if not stdlib_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(SyncConsoleFormatter())
        stdlib_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(SyncFileFormatter())
        stdlib_logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "channel_sync") -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name)


class SyncLogger:
    """Specialized logger for sync cycles with summary tracking."""

    def __init__(self, logger: structlog.BoundLogger):
        self.logger = logger
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'units_synced': 0,
            'connections_processed': 0,
            'conflicts': 0,
            'errors': 0,
            'channels': {}
        }

    def log_unit_synced(self, unit_id: str, result):
        """Log the outcome of one unit sync."""
        self.stats['units_synced'] += 1
        self.stats['connections_processed'] += result.processed
        self.stats['conflicts'] += result.conflicts
        self.stats['errors'] += len(result.errors)
        self.logger.info(
            "Unit synced",
            unit_id=unit_id,
            processed=result.processed,
            conflicts=result.conflicts,
            errors=len(result.errors)
        )

    def log_connection_synced(self, channel: str, connection_id: str):
        """Log when a connection is ingested."""
        self.stats['channels'][channel] = self.stats['channels'].get(channel, 0) + 1
        self.logger.info("Connection synced", channel=channel, connection_id=connection_id)

    def log_error(self, error: Exception, context: str = ""):
        """Log an error."""
        self.stats['errors'] += 1
        self.logger.error(
            "Error occurred",
            error=str(error),
            error_type=type(error).__name__,
            context=context
        )

    def print_summary(self):
        """Print a summary of all operations."""
        self.logger.info("Sync summary", **self.stats)

        print(f"\n{Fore.CYAN}{'='*50}")
        print(f"{Fore.WHITE}SYNC SUMMARY")
        print(f"{Fore.CYAN}{'='*50}")
        print(f"{Fore.GREEN}✓ Units synced: {self.stats['units_synced']}")
        print(f"{Fore.GREEN}✓ Connections processed: {self.stats['connections_processed']}")
        print(f"{Fore.YELLOW}⚠ Conflicts: {self.stats['conflicts']}")
        print(f"{Fore.RED}✗ Errors: {self.stats['errors']}")

        if self.stats['channels']:
            print(f"\n{Fore.WHITE}By Channel:")
            for channel, count in self.stats['channels'].items():
                print(f"  {Fore.CYAN}{channel}: {count}")

        print(f"{Fore.CYAN}{'='*50}\n")

    def reset_stats(self):
        """Reset statistics."""
        self.stats = self._empty_stats()


class ICalDebugLog:
    """Bounded ring buffer of feed/sync diagnostics for support reports."""

    def __init__(self, max_entries: int = 200, logger: Optional[structlog.BoundLogger] = None):
        self._entries = deque(maxlen=max_entries)
        self.logger = logger or get_logger("ical_debug")

    def _add(self, level: str, step: str, message: str, details: Optional[Dict[str, Any]] = None):
        self._entries.append({
            'timestamp': datetime.now(timezone.utc),
            'level': level,
            'step': step,
            'message': message,
            'details': details,
        })
        context = details or {}
        if level == 'ERROR':
            self.logger.error(message, step=step, **context)
        elif level == 'WARN':
            self.logger.warning(message, step=step, **context)
        else:
            self.logger.info(message, step=step, **context)

    def info(self, step: str, message: str, details: Optional[Dict[str, Any]] = None):
        self._add('INFO', step, message, details)

    def warn(self, step: str, message: str, details: Optional[Dict[str, Any]] = None):
        self._add('WARN', step, message, details)

    def error(self, step: str, message: str, details: Optional[Dict[str, Any]] = None):
        self._add('ERROR', step, message, details)

    def get_logs(self) -> List[Dict[str, Any]]:
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def get_report(self) -> str:
        """Plain-text dump of the buffer."""
        lines = []
        for entry in self._entries:
            details = f" {json.dumps(entry['details'], default=str)}" if entry['details'] else ""
            lines.append(
                f"[{entry['timestamp'].strftime('%H:%M:%S')}] [{entry['level']}] "
                f"{entry['step']}: {entry['message']}{details}"
            )
        header = (
            "ICAL SYNC DEBUG REPORT\n"
            f"Generated: {datetime.now(timezone.utc).isoformat()}\n"
            f"{'-' * 34}\n"
        )
        return header + "\n".join(lines) + "\n"
