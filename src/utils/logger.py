"""
Enhanced Logging Utilities

Provides structured logging with:
- JSON formatting for production
- Performance timing of engine evaluations
- Session correlation
- Decision and manipulation records
"""

import logging
import json
import sys
import time
from datetime import datetime
from typing import Optional
from pathlib import Path
import threading
from contextlib import contextmanager


_CONTEXT_FIELDS = (
    'correlation_id',
    'session_id',
    'action',
    'grade',
    'confidence',
    'market_type',
    'timeframe',
    'manipulation_score',
    'risk_tier',
    'execution_time',
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class PerformanceLogger:
    """Logger for tracking performance metrics."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._start_times = {}
        self._lock = threading.Lock()

    @contextmanager
    def timer(self, operation: str, **context):
        """Context manager for timing operations."""
        start_time = time.perf_counter()
        operation_id = f"{operation}_{threading.get_ident()}_{start_time}"

        try:
            with self._lock:
                self._start_times[operation_id] = start_time
            yield
        finally:
            execution_time = time.perf_counter() - start_time

            with self._lock:
                self._start_times.pop(operation_id, None)

            extra = {'execution_time': execution_time, **context}
            self.logger.debug(f"Operation completed: {operation} ({execution_time * 1000:.2f}ms)", extra=extra)

    @property
    def in_flight(self) -> int:
        """Number of timed operations currently running."""
        with self._lock:
            return len(self._start_times)


class DecisionLogger:
    """Specialized logger for decision engine output."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.performance = PerformanceLogger(self.logger)

    def decision(self, action: str, confidence: float, grade: str, **context):
        """Log a finalized decision."""
        extra = {
            'action': action,
            'confidence': confidence,
            'grade': grade,
            **context
        }
        self.logger.info(
            f"🎯 Decision: {action} (confidence={confidence:.0f}, grade={grade})",
            extra=extra
        )

    def manipulation_alert(self, score: float, risk_tier: str, factors, **context):
        """Log an anti-manipulation alert."""
        extra = {
            'manipulation_score': score,
            'risk_tier': risk_tier,
            **context
        }
        message = f"Manipulation Alert [{risk_tier}] score={score:.0f}: {', '.join(factors) or 'no factors'}"
        if risk_tier in ('HIGH', 'CRITICAL'):
            self.logger.error(message, extra=extra)
        else:
            self.logger.warning(message, extra=extra)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
    correlation_id: Optional[str] = None
) -> logging.Logger:
    """
    Setup enhanced logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON formatting
        correlation_id: Optional correlation ID stamped on every record

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, str(log_level).upper()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if correlation_id:
        old_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.correlation_id = correlation_id
            return record

        logging.setLogRecordFactory(record_factory)

    return logger


def get_decision_logger(name: str) -> DecisionLogger:
    """Get a decision-specific logger instance."""
    return DecisionLogger(name)


def get_performance_logger(name: str) -> PerformanceLogger:
    """Get a performance logger instance."""
    return PerformanceLogger(logging.getLogger(name))
