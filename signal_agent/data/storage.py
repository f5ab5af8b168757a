"""
JSON file storage for prices, signals, earnings and agent runs.

Each collection lives in its own file under the data directory:

    prices.json    [{"token": ..., "entries": [PriceEntry, ...]}]   newest first
    signals.json   [{"token": ..., "signals": [SignalRecord, ...]}] newest first
    earnings.json  EarningsSummary
    runs.json      [AgentRun, ...]                                  newest first

Every collection is capped; the oldest items are dropped on write. Missing or
empty files are created with their default content on first read. Unreadable
files are logged and treated as empty so a corrupted file never takes the
paid endpoints down.
"""
import json
import os
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from signal_agent.config.settings import settings
from signal_agent.data.data_structures import (
    AgentRun,
    EarningEntry,
    EarningsSummary,
    PriceEntry,
    SignalRecord,
    parse_iso,
)
from signal_agent.signal_generation.core import PriceObservation
from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

PRICES_FILE = "prices.json"
SIGNALS_FILE = "signals.json"
EARNINGS_FILE = "earnings.json"
RUNS_FILE = "runs.json"


class JsonStorage:
    """
    File-backed store shared by the agent, the API and the CLI.

    Writes are serialized with a lock and replace files atomically, so the
    API can read while the agent writes.
    """

    def __init__(
        self,
        data_dir: Optional[str] = None,
        max_price_entries: Optional[int] = None,
        max_signal_entries: Optional[int] = None,
        max_earning_entries: Optional[int] = None,
        max_run_entries: Optional[int] = None,
    ):
        """
        Initializes the storage.

        Args:
            data_dir: Directory holding the JSON files. Defaults to STORAGE_DATA_DIR.
            max_price_entries: Price entries kept per token.
            max_signal_entries: Signals kept per token.
            max_earning_entries: Earning entries kept.
            max_run_entries: Agent runs kept.
        """
        self.data_dir = Path(data_dir or settings.storage.DATA_DIR)
        self.max_price_entries = max_price_entries or settings.storage.MAX_PRICE_ENTRIES
        self.max_signal_entries = max_signal_entries or settings.storage.MAX_SIGNAL_ENTRIES
        self.max_earning_entries = max_earning_entries or settings.storage.MAX_EARNING_ENTRIES
        self.max_run_entries = max_run_entries or settings.storage.MAX_RUN_ENTRIES
        self._lock = threading.RLock()

        self._defaults: Dict[str, Callable[[], Any]] = {
            PRICES_FILE: list,
            SIGNALS_FILE: list,
            EARNINGS_FILE: lambda: EarningsSummary().to_dict(),
            RUNS_FILE: list,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _ensure_data_dir(self) -> None:
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created data directory", path=str(self.data_dir))

    def _read_json(self, name: str) -> Any:
        path = self._path(name)
        default = self._defaults[name]()
        with self._lock:
            if not path.exists():
                self._write_json(name, default)
                return default
            try:
                raw = path.read_text(encoding="utf-8").strip()
                if not raw:
                    self._write_json(name, default)
                    return default
                return json.loads(raw)
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Failed to read storage file", path=str(path), error=str(e))
                return default

    def _write_json(self, name: str, data: Any) -> None:
        path = self._path(name)
        with self._lock:
            self._ensure_data_dir()
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            try:
                tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
                os.replace(tmp_path, path)
            except OSError as e:
                logger.error("Failed to write storage file", path=str(path), error=str(e))
                raise

    @staticmethod
    def _find_bucket(buckets: List[Dict[str, Any]], token: str, key: str) -> Dict[str, Any]:
        for bucket in buckets:
            if bucket.get("token") == token:
                bucket.setdefault(key, [])
                return bucket
        bucket = {"token": token, key: []}
        buckets.append(bucket)
        return bucket

    # ------------------------------------------------------------------
    # Prices
    # ------------------------------------------------------------------

    def read_price_history(self) -> List[Dict[str, Any]]:
        """Raw price history for every token, as stored."""
        return self._read_json(PRICES_FILE)

    def write_price_entry(self, entry: PriceEntry) -> None:
        """
        Prepend a price entry to its token's history and enforce the cap.

        Args:
            entry: The price sample to store.
        """
        with self._lock:
            history = self.read_price_history()
            bucket = self._find_bucket(history, entry.token, "entries")
            bucket["entries"].insert(0, entry.to_dict())
            del bucket["entries"][self.max_price_entries:]
            self._write_json(PRICES_FILE, history)
        logger.info("Price saved", token=entry.token, price_usd=entry.price_usd)

    def get_price_history(self, token: str) -> List[PriceEntry]:
        """Stored price entries for a token, newest first."""
        for bucket in self.read_price_history():
            if bucket.get("token") == token:
                return [PriceEntry.from_dict(entry) for entry in bucket.get("entries", [])]
        return []

    def get_price_observations(self, token: str) -> Tuple[PriceObservation, ...]:
        """Immutable newest-first snapshot of a token's history for the signal engine."""
        return tuple(entry.to_observation() for entry in self.get_price_history(token))

    def get_latest_price(self, token: str) -> Optional[PriceEntry]:
        entries = self.get_price_history(token)
        return entries[0] if entries else None

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def read_signal_history(self) -> List[Dict[str, Any]]:
        """Raw signal history for every token, as stored."""
        return self._read_json(SIGNALS_FILE)

    def write_signal(self, record: SignalRecord) -> None:
        """
        Prepend a signal to its token's history and enforce the cap.

        Args:
            record: The signal to store.
        """
        with self._lock:
            history = self.read_signal_history()
            bucket = self._find_bucket(history, record.token, "signals")
            bucket["signals"].insert(0, record.to_dict())
            del bucket["signals"][self.max_signal_entries:]
            self._write_json(SIGNALS_FILE, history)
        logger.info(
            "Signal saved",
            token=record.token,
            signal=record.signal,
            confidence=record.confidence,
        )

    def get_signal_history(self, token: str) -> List[SignalRecord]:
        """Stored signals for a token, newest first."""
        for bucket in self.read_signal_history():
            if bucket.get("token") == token:
                return [SignalRecord.from_dict(signal) for signal in bucket.get("signals", [])]
        return []

    def get_latest_signal(self, token: str) -> Optional[SignalRecord]:
        signals = self.get_signal_history(token)
        return signals[0] if signals else None

    def get_all_latest_signals(self) -> List[SignalRecord]:
        """The newest signal of every token that has one."""
        latest = []
        for bucket in self.read_signal_history():
            signals = bucket.get("signals", [])
            if signals:
                latest.append(SignalRecord.from_dict(signals[0]))
        return latest

    def get_tracked_tokens(self) -> List[str]:
        """
        Every token the agent has stored prices or signals for, in first-seen order.

        The API uses this so tokens passed to ``run --tokens`` are servable
        without repeating them in AGENT_TOKENS.
        """
        tokens: List[str] = []
        for bucket in self.read_price_history() + self.read_signal_history():
            token = bucket.get("token")
            if token and token not in tokens:
                tokens.append(token)
        return tokens

    # ------------------------------------------------------------------
    # Earnings
    # ------------------------------------------------------------------

    def read_earnings(self) -> EarningsSummary:
        return EarningsSummary.from_dict(self._read_json(EARNINGS_FILE))

    def write_earning_entry(
        self,
        endpoint: str,
        amount_usdc: float,
        caller_address: str,
        now: Optional[datetime] = None,
    ) -> EarningsSummary:
        """
        Record a paid call and recompute the rolling totals.

        "Today" starts at local midnight; "this week" covers today and the six
        days before it. Both are recomputed from the retained entries.

        Args:
            endpoint: The paid endpoint that was called, e.g. ``/signal/ETH``.
            amount_usdc: Amount earned in USDC.
            caller_address: Address of the payer.
            now: Current time, injectable for tests.

        Returns:
            EarningsSummary: The updated summary.
        """
        now = (now or datetime.now()).astimezone()
        entry = EarningEntry(endpoint=endpoint, amount_usdc=amount_usdc, caller_address=caller_address)

        with self._lock:
            earnings = self.read_earnings()
            earnings.entries.insert(0, entry)
            del earnings.entries[self.max_earning_entries:]

            earnings.total_earned = round(earnings.total_earned + amount_usdc, 4)
            earnings.total_calls += 1

            today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
            week_start = today_start - timedelta(days=6)

            today = [e for e in earnings.entries if parse_iso(e.timestamp) >= today_start]
            this_week = [e for e in earnings.entries if parse_iso(e.timestamp) >= week_start]

            earnings.earned_today = round(sum(e.amount_usdc for e in today), 4)
            earnings.earned_this_week = round(sum(e.amount_usdc for e in this_week), 4)
            earnings.calls_today = len(today)

            self._write_json(EARNINGS_FILE, earnings.to_dict())

        logger.info(
            "Earning logged",
            endpoint=endpoint,
            amount_usdc=amount_usdc,
            total_earned=earnings.total_earned,
        )
        return earnings

    # ------------------------------------------------------------------
    # Agent runs
    # ------------------------------------------------------------------

    def read_agent_runs(self) -> List[AgentRun]:
        return [AgentRun.from_dict(run) for run in self._read_json(RUNS_FILE)]

    def write_agent_run(self, run: AgentRun) -> AgentRun:
        """Prepend a run record and enforce the cap."""
        with self._lock:
            runs = self._read_json(RUNS_FILE)
            runs.insert(0, run.to_dict())
            del runs[self.max_run_entries:]
            self._write_json(RUNS_FILE, runs)
        logger.info(
            "Agent run logged",
            status=run.status,
            duration_ms=run.duration_ms,
            signals_generated=run.signals_generated,
        )
        return run

    def get_last_agent_run(self) -> Optional[AgentRun]:
        runs = self.read_agent_runs()
        return runs[0] if runs else None

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def health_check(self) -> Dict[str, Any]:
        """
        Report which storage files existed and create any that are missing.

        Returns:
            Dict[str, Any]: ``{"ok": bool, "files": {"prices": bool, ...}}``
        """
        with self._lock:
            self._ensure_data_dir()
            files = {
                "prices": self._path(PRICES_FILE).exists(),
                "signals": self._path(SIGNALS_FILE).exists(),
                "earnings": self._path(EARNINGS_FILE).exists(),
                "runs": self._path(RUNS_FILE).exists(),
            }
            for name in self._defaults:
                if not self._path(name).exists():
                    self._write_json(name, self._defaults[name]())
        return {"ok": True, "files": files}

    def dashboard_snapshot(self) -> Dict[str, Any]:
        """Everything the dashboard renders, in the stored shape."""
        return {
            "prices": self.read_price_history(),
            "signals": self.read_signal_history(),
            "earnings": self.read_earnings().to_dict(),
            "runs": [run.to_dict() for run in self.read_agent_runs()],
        }
