from __future__ import annotations

import csv
import os
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client, create_client

from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

METRICS_DIR = Path(os.getenv("METRICS_DIR", Path(__file__).resolve().parent.parent / "metrics"))
CSV_PATH = METRICS_DIR / "ai_calls.csv"
SUPABASE_TABLE = "ai_metrics"
CSV_COLUMNS = [
    "timestamp",
    "component",
    "model",
    "status",
    "attempts",
    "tokens_in",
    "tokens_out",
    "latency_ms",
]

_csv_lock = threading.Lock()
_supabase_client: Optional[Client] = None


def metrics_enabled() -> bool:
    return os.getenv("METRICS_ENABLED", "1").strip().lower() not in {"0", "false", "no", "off"}


def _get_supabase_client() -> Optional[Client]:
    """Lazily initialize a Supabase client when env vars are present."""
    global _supabase_client
    if _supabase_client is not None:
        return _supabase_client
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        return None
    try:
        _supabase_client = create_client(url, key)
    except Exception as exc:
        logger.warning("metrics_supabase_init_failed", extra={"error": str(exc)[:200]})
        _supabase_client = None
    return _supabase_client


def _ensure_csv_header() -> None:
    METRICS_DIR.mkdir(parents=True, exist_ok=True)
    if CSV_PATH.exists():
        return
    with _csv_lock:
        if CSV_PATH.exists():
            return
        with CSV_PATH.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_usage_tokens(obj: Any) -> Tuple[Optional[int], Optional[int]]:
    """Pull prompt/completion token counts from an OpenAI-style response or dict."""
    usage = getattr(obj, "usage", None)
    if usage is None and isinstance(obj, dict):
        usage = obj.get("usage")
    if usage is None:
        return None, None
    if isinstance(usage, dict):
        return usage.get("prompt_tokens"), usage.get("completion_tokens")
    return getattr(usage, "prompt_tokens", None), getattr(usage, "completion_tokens", None)


def log_metric(
    component: str,
    model: Optional[str],
    *,
    status: str = "ok",
    attempts: int = 1,
    tokens_in: Optional[int] = None,
    tokens_out: Optional[int] = None,
    latency_ms: Optional[float] = None,
) -> None:
    """Persist a metric row to CSV and Supabase (best effort)."""
    if not metrics_enabled():
        return
    row = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "component": component,
        "model": model or "",
        "status": status,
        "attempts": attempts,
        "tokens_in": tokens_in,
        "tokens_out": tokens_out,
        "latency_ms": round(latency_ms, 3) if latency_ms is not None else None,
    }
    csv_row = {k: ("" if v is None else v) for k, v in row.items()}

    try:
        _ensure_csv_header()
        with _csv_lock:
            with CSV_PATH.open("a", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
                writer.writerow(csv_row)
    except OSError as exc:
        logger.warning("metrics_csv_write_failed", extra={"error": str(exc)[:200]})

    client = _get_supabase_client()
    if client is not None:
        try:
            client.table(SUPABASE_TABLE).insert(row).execute()
        except Exception as exc:
            logger.warning("metrics_supabase_insert_failed", extra={"error": str(exc)[:200]})


@dataclass
class MetricTimer:
    component: str
    model: Optional[str]
    _start: float = field(default_factory=time.perf_counter)

    def done(
        self,
        *,
        status: str = "ok",
        attempts: int = 1,
        tokens_in: Optional[int] = None,
        tokens_out: Optional[int] = None,
    ) -> float:
        latency_ms = (time.perf_counter() - self._start) * 1000
        log_metric(
            self.component,
            self.model,
            status=status,
            attempts=attempts,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            latency_ms=latency_ms,
        )
        return latency_ms


def start_timer(component: str, model: Optional[str]) -> MetricTimer:
    """Convenience helper to measure elapsed time + submit a metric."""
    return MetricTimer(component=component, model=model)


def fetch_metrics(limit: int = 500) -> List[Dict[str, Any]]:
    """Return recent metrics from Supabase if available, otherwise from the local CSV."""
    client = _get_supabase_client()
    if client is not None:
        try:
            resp = client.table(SUPABASE_TABLE).select("*").order("timestamp", desc=True).limit(limit).execute()
            if resp.data:
                return resp.data
        except Exception as exc:
            logger.warning("metrics_supabase_fetch_failed", extra={"error": str(exc)[:200]})
    if not CSV_PATH.exists():
        return []
    with CSV_PATH.open("r", newline="", encoding="utf-8") as f:
        # newest first, like the Supabase query
        tail = deque(csv.DictReader(f), maxlen=limit)
    return list(reversed(tail))


def summarize_metrics(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Average latency, mean attempts and error rate per component."""
    latency_by_component: Dict[str, List[float]] = {}
    attempts_by_component: Dict[str, List[float]] = {}
    errors = 0
    for row in records:
        component = row.get("component") or "unknown"
        latency = _coerce_number(row.get("latency_ms"))
        if latency is not None:
            latency_by_component.setdefault(component, []).append(latency)
        attempts = _coerce_number(row.get("attempts"))
        if attempts is not None:
            attempts_by_component.setdefault(component, []).append(attempts)
        if (row.get("status") or "ok") != "ok":
            errors += 1
    avg_latency = {
        comp: round(sum(vals) / len(vals), 3) for comp, vals in latency_by_component.items() if vals
    }
    avg_attempts = {
        comp: round(sum(vals) / len(vals), 3) for comp, vals in attempts_by_component.items() if vals
    }
    return {
        "average_latency_ms": avg_latency,
        "average_attempts": avg_attempts,
        "error_rate": round(errors / len(records), 4) if records else 0.0,
        "sample_size": len(records),
    }
