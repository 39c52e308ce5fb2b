"""Debug logging of embedding and reranking calls to JSON files."""

import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_LOG_DIR = Path.home() / ".codebase-rag" / "logs"


class DebugLogger:
    """Process-wide debug logger for model requests and responses.

    Disabled by default. When enabled, every request and response becomes one
    JSON file under ``<log_dir>/<category>/``, named
    ``<operation>_<UTC timestamp>_<request id prefix>_<request|response>.json``
    so that a pair sorts together.
    """

    _enabled: bool = False
    _log_dir: Optional[Path] = None
    _lock = threading.Lock()

    @classmethod
    def configure(cls, enabled: bool = False, log_dir: Optional[Path] = None) -> None:
        with cls._lock:
            cls._enabled = enabled
            cls._log_dir = log_dir or DEFAULT_LOG_DIR
            if enabled:
                cls._log_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def is_enabled(cls) -> bool:
        return cls._enabled

    @classmethod
    def log_request(
        cls,
        operation: str,
        payload: Dict[str, Any],
        request_id: Optional[str] = None,
        category: str = "general",
    ) -> str:
        """Record a request payload.

        Args:
            operation: Name of the call (e.g. "embed_batch", "rerank")
            payload: JSON-able request data; other values are stringified
            request_id: Correlation id; generated when omitted
            category: Subdirectory, e.g. "embedding" or "reranking"

        Returns:
            The request id, to pass to ``log_response``
        """
        request_id = request_id or str(uuid.uuid4())
        if cls._enabled:
            cls._write("request", operation, payload, request_id, category)
        return request_id

    @classmethod
    def log_response(
        cls,
        operation: str,
        payload: Dict[str, Any],
        request_id: Optional[str] = None,
        category: str = "general",
    ) -> None:
        if cls._enabled:
            cls._write("response", operation, payload, request_id or str(uuid.uuid4()), category)

    @classmethod
    def _path_for(cls, log_type: str, operation: str, request_id: str, category: str, now: datetime) -> Path:
        stamp = now.strftime("%Y%m%dT%H%M%SZ")
        return cls._log_dir / category / f"{operation}_{stamp}_{request_id[:4]}_{log_type}.json"

    @classmethod
    def _write(cls, log_type: str, operation: str, payload: Dict[str, Any], request_id: str, category: str) -> None:
        if cls._log_dir is None:
            return

        now = datetime.now(timezone.utc)
        path = cls._path_for(log_type, operation, request_id, category, now)
        entry = {
            "timestamp": now.isoformat(),
            "type": log_type,
            "operation": operation,
            "payload": payload,
        }

        with cls._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(json.dumps(entry, indent=2, default=cls._to_json), encoding="utf-8")
            except OSError:
                # A full disk or read-only log dir must not fail indexing
                pass

    @staticmethod
    def _to_json(value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)
