"""Tests for the structured run logger."""

import json
import logging

from apporchestra.core.logger import AgentLogger, LOGGER_NAME


def read_jsonl(log_dir, prefix):
    files = list(log_dir.glob(f"{prefix}_*.jsonl"))
    assert len(files) == 1, f"Expected one {prefix} file, found {files}"
    return [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]


def test_structured_records(tmp_path):
    """Task, error and progress records land in their JSONL files."""
    logger = AgentLogger(log_dir=str(tmp_path), log_level="DEBUG", sync=True)
    try:
        logger.log_task_run("task_backend", "backend", "completed", 1.23456, files_generated=4)
        try:
            raise ValueError("bad output")
        except ValueError as e:
            logger.log_error_with_traceback("backend", e, context={"task_id": "task_backend"})
        logger.log_progress(total_tasks=4, completed_tasks=1, failed_tasks=1, pending_tasks=2)
    finally:
        logger.close()

    task = read_jsonl(tmp_path, "tasks")[0]
    assert task["task_id"] == "task_backend" and task["agent"] == "backend"
    assert task["duration_seconds"] == 1.235 and task["files_generated"] == 4

    error = read_jsonl(tmp_path, "errors")[0]
    assert error["error_type"] == "ValueError" and error["error_message"] == "bad output"
    assert "Traceback" in error["traceback"] and error["context"] == {"task_id": "task_backend"}

    progress = read_jsonl(tmp_path, "progress")[0]
    assert progress["completion_rate"] == 25.0

    assert list(tmp_path.glob("execution_*.log")), "Execution log file must exist"


def test_recreating_logger_replaces_handlers(tmp_path):
    first = AgentLogger(log_dir=str(tmp_path / "a"))
    second = AgentLogger(log_dir=str(tmp_path / "b"))
    try:
        assert len(logging.getLogger(LOGGER_NAME).handlers) == 2, "Handlers must not stack"
    finally:
        second.close()
        first.close()
    assert logging.getLogger(LOGGER_NAME).handlers == []


def test_component_loggers_share_handlers(tmp_path):
    logger = AgentLogger(log_dir=str(tmp_path))
    try:
        logging.getLogger("agent_system.scheduler").info("dispatching task_database")
    finally:
        logger.close()

    log_file = next(tmp_path.glob("execution_*.log"))
    assert "dispatching task_database" in log_file.read_text(encoding="utf-8")
