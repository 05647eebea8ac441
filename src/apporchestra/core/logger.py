"""Logging utilities for the orchestration engine."""

import json
import logging
import os
import traceback
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER_NAME = "agent_system"


class AgentLogger:
    """Logger for orchestration runs.

    Owns the handlers of the ``agent_system`` logger. Components log through
    child loggers (``agent_system.scheduler`` and so on), so their messages end
    up in the same files.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: str = "INFO",
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        sync: bool = False,
    ):
        """
        Initialize logger.

        Args:
            log_dir: Directory for log files
            log_level: Log level (DEBUG, INFO, WARNING, ERROR)
            max_bytes: Maximum size of log file before rotation (default: 10MB)
            backup_count: Number of backup files to keep (default: 5)
            sync: Flush and fsync after each JSONL write
        """
        self.log_dir = Path(log_dir)
        self.sync = sync
        self.log_dir.mkdir(parents=True, exist_ok=True)
        level = getattr(logging, log_level.upper())

        log_file = self.log_dir / f"execution_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        )

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(level)
        # A new AgentLogger takes over from the previous one
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)
        self.logger.propagate = False

    def _flush_and_sync(self, file_obj) -> None:
        """Ensure log contents are flushed to disk when sync is enabled."""
        if not self.sync:
            return
        try:
            file_obj.flush()
            os.fsync(file_obj.fileno())
        except OSError:
            # fsync is not supported on every filesystem
            pass

    def _append_jsonl(self, prefix: str, entry: Dict[str, Any]) -> None:
        log_file = self.log_dir / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.jsonl"
        with open(log_file, 'a', encoding='utf-8') as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + '\n')
            self._flush_and_sync(f)

    def log_task_run(
        self,
        task_id: str,
        agent_type: str,
        status: str,
        duration: float,
        files_generated: int = 0,
        **kwargs
    ) -> None:
        """
        Log a finished task.

        Args:
            task_id: Task identifier
            agent_type: Agent that ran the task
            status: Final task status
            duration: Duration in seconds
            files_generated: Number of files the agent returned
            **kwargs: Additional metadata
        """
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'task_id': task_id,
            'agent': agent_type,
            'status': status,
            'duration_seconds': round(duration, 3),
            'files_generated': files_generated,
            **kwargs
        }
        self._append_jsonl("tasks", log_entry)

        self.logger.info(
            f"[{agent_type}] Task {task_id} {status} in {duration:.2f}s "
            f"({files_generated} files)"
        )

    def log_error_with_traceback(
        self,
        agent_name: str,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log error with full traceback and context.

        Args:
            agent_name: Name of the agent or component
            error: Exception that occurred
            context: Additional context information
        """
        formatted = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        error_entry = {
            'timestamp': datetime.now().isoformat(),
            'agent': agent_name,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': formatted,
            'context': context or {}
        }
        self._append_jsonl("errors", error_entry)

        self.logger.error(
            f"[{agent_name}] Error: {type(error).__name__}: {error}"
        )
        self.logger.debug(f"[{agent_name}] Traceback:\n{formatted}")

    def log_progress(
        self,
        total_tasks: int,
        completed_tasks: int,
        failed_tasks: int,
        pending_tasks: int,
        running_tasks: int = 0
    ) -> None:
        """
        Log progress summary.

        Args:
            total_tasks: Total number of tasks
            completed_tasks: Number of completed tasks
            failed_tasks: Number of failed tasks
            pending_tasks: Number of pending tasks
            running_tasks: Number of running tasks
        """
        progress_entry = {
            'timestamp': datetime.now().isoformat(),
            'total_tasks': total_tasks,
            'completed_tasks': completed_tasks,
            'failed_tasks': failed_tasks,
            'pending_tasks': pending_tasks,
            'running_tasks': running_tasks,
            'completion_rate': round(completed_tasks / total_tasks * 100, 2) if total_tasks > 0 else 0
        }
        self._append_jsonl("progress", progress_entry)

        self.logger.info(
            f"[Progress] {completed_tasks}/{total_tasks} completed, "
            f"{failed_tasks} failed, {running_tasks} running, {pending_tasks} pending"
        )

    def error(self, message: str) -> None:
        """Log error message."""
        self.logger.error(message)

    def close(self) -> None:
        """Detach and close the handlers installed by this logger."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
