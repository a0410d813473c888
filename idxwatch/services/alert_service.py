"""Alert business logic."""
from typing import Callable, Dict, List, Optional, Set
import asyncio
import logging
import time

from idxwatch.domain.entities import Alert, AlertTrigger, AlertType, Quote

logger = logging.getLogger(__name__)


class AlertService:
    """Evaluates price alerts against the live quote cache."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._callbacks: Set[Callable] = set()

    def now(self) -> int:
        return int(self._clock())

    def register_callback(self, callback: Callable) -> None:
        """Register trigger callback."""
        self._callbacks.add(callback)

    def unregister_callback(self, callback: Callable) -> None:
        """Unregister trigger callback."""
        self._callbacks.discard(callback)

    @staticmethod
    def in_cooldown(alert: Alert, now: int) -> bool:
        if alert.last_triggered is None:
            return False
        return now - alert.last_triggered < alert.cooldown_seconds

    def should_trigger(self, alert: Alert, quote: Quote, now: Optional[int] = None) -> bool:
        """Check if the quote satisfies the alert condition."""
        if not alert.enabled:
            return False
        if self.in_cooldown(alert, self.now() if now is None else now):
            return False
        if alert.alert_type == AlertType.ABOVE:
            return quote.price >= alert.target_value
        if alert.alert_type == AlertType.BELOW:
            return quote.price <= alert.target_value
        if alert.alert_type == AlertType.PERCENT_GAIN:
            return quote.change_percent >= alert.target_value
        return quote.change_percent <= -alert.target_value

    @staticmethod
    def message_for(alert: Alert, quote: Quote) -> str:
        if alert.alert_type == AlertType.ABOVE:
            return f"{alert.symbol} crossed above {alert.target_value:.0f}"
        if alert.alert_type == AlertType.BELOW:
            return f"{alert.symbol} crossed below {alert.target_value:.0f}"
        if alert.alert_type == AlertType.PERCENT_GAIN:
            return (
                f"{alert.symbol} up {quote.change_percent:.2f}% "
                f"(target +{alert.target_value:.2f}%)"
            )
        return (
            f"{alert.symbol} down {quote.change_percent:.2f}% "
            f"(target -{alert.target_value:.2f}%)"
        )

    def evaluate(
        self, alerts: List[Alert], quotes: Dict[str, Quote], now: Optional[int] = None
    ) -> List[AlertTrigger]:
        """Return the alerts that fire in this pass.

        Alerts without a fresh quote are skipped. Nothing is stamped here;
        the caller commits every trigger in one write.
        """
        now = self.now() if now is None else now
        triggered: List[AlertTrigger] = []
        for alert in alerts:
            quote = quotes.get(alert.symbol)
            if quote is None or not self.should_trigger(alert, quote, now):
                continue
            message = self.message_for(alert, quote)
            logger.warning(f"ALERT: {message}")
            triggered.append(
                AlertTrigger(
                    alert_id=alert.id,
                    symbol=alert.symbol,
                    alert_type=alert.alert_type,
                    price=quote.price,
                    change_percent=quote.change_percent,
                    timestamp=now,
                    message=message,
                )
            )
        return triggered

    async def notify(self, triggered: List[AlertTrigger]) -> None:
        """Run all registered callbacks for each trigger."""
        for trigger in triggered:
            for callback in self._callbacks:
                try:
                    if asyncio.iscoroutinefunction(callback):
                        await callback(trigger)
                    else:
                        callback(trigger)
                except Exception as e:
                    logger.error(f"Error in alert callback: {e}")
