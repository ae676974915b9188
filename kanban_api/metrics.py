from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from time import monotonic


@dataclass
class RequestSample:
  ts: datetime
  status_code: int
  latency_ms: float


class RuntimeMetrics:
  """Rolling one-hour window of request outcomes for the admin metrics endpoint."""

  window = timedelta(hours=1)

  def __init__(self) -> None:
    self._started = monotonic()
    self._samples: deque[RequestSample] = deque()
    self._lock = Lock()

  def uptime_seconds(self) -> int:
    return max(0, int(monotonic() - self._started))

  def observe_request(self, status_code: int, latency_ms: float) -> None:
    now = datetime.now(timezone.utc)
    with self._lock:
      self._samples.append(RequestSample(ts=now, status_code=status_code, latency_ms=latency_ms))
      cutoff = now - self.window
      while self._samples and self._samples[0].ts < cutoff:
        self._samples.popleft()

  def snapshot(self) -> dict:
    with self._lock:
      samples = list(self._samples)

    by_class: dict[str, int] = {"2xx": 0, "3xx": 0, "4xx": 0, "5xx": 0}
    for s in samples:
      key = f"{s.status_code // 100}xx"
      if key in by_class:
        by_class[key] += 1

    p95_ms = 0.0
    if samples:
      latencies = sorted(s.latency_ms for s in samples)
      p95_ms = latencies[max(0, int(len(latencies) * 0.95) - 1)]

    total = len(samples)
    return {
      "uptimeSeconds": self.uptime_seconds(),
      "requestCount1h": total,
      "statusCounts1h": by_class,
      "errorRate1h": round(by_class["5xx"] / total * 100, 2) if total else 0.0,
      "p95LatencyMs1h": round(p95_ms, 2),
    }

  def reset(self) -> None:
    with self._lock:
      self._samples.clear()


runtime_metrics = RuntimeMetrics()
