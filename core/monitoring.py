"""Consecutive-failure tracking for the content providers."""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

log = logging.getLogger("vmfit.monitoring")


@dataclass
class _ProviderState:
    failures: int = 0
    alerted: bool = False
    last_error: str = ""


class ProviderHealth:
    """One state per provider name; an alert fires once per failure streak."""

    def __init__(self, alert_threshold: int = 5):
        if alert_threshold < 1:
            raise ValueError("alert_threshold must be >= 1")
        self.alert_threshold = alert_threshold
        self._providers: Dict[str, _ProviderState] = {}

    def _state(self, provider: str) -> _ProviderState:
        return self._providers.setdefault(provider, _ProviderState())

    def record_success(self, provider: str) -> None:
        state = self._state(provider)
        if state.failures:
            log.info("Provider %s is back after %d failed fetch(es).", provider, state.failures)
        state.failures = 0
        state.alerted = False

    def record_failure(self, provider: str, error: Optional[BaseException] = None) -> bool:
        """Count a failed fetch. True only on the call that reaches the threshold."""
        state = self._state(provider)
        state.failures += 1
        if error is not None:
            state.last_error = str(error)
        log.warning("Provider %s fetch failed (%d in a row): %s",
                    provider, state.failures, state.last_error or "-")

        if state.alerted or state.failures < self.alert_threshold:
            return False
        state.alerted = True
        log.error("Provider %s unavailable for %d consecutive fetches.", provider, state.failures)
        return True

    def get_failures(self, provider: str) -> int:
        state = self._providers.get(provider)
        return state.failures if state else 0

    def last_error(self, provider: str) -> str:
        state = self._providers.get(provider)
        return state.last_error if state else ""

    def get_status(self) -> Dict[str, int]:
        """Failure streak per provider seen so far, healthy ones included."""
        return {name: state.failures for name, state in self._providers.items()}
