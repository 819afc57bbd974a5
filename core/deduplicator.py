"""
Duplicate check for alerts: avoids issuing an alert that is already pending.

Check-in alerts are keyed by (alert type, booking id):
  - an UNREAD alert with the same key blocks a new one;
  - read alerts never block, except the exact alert already issued
    today (same id), so marking it read silences it for the day.
"""

from typing import Iterable, Optional, Set, Tuple

from core.models import Alert, AlertType

AlertKey = Tuple[str, str]


def alert_key(alert_type: AlertType, related_id: Optional[str]) -> AlertKey:
    return (AlertType(alert_type).value, str(related_id or "").strip())


def _related_id(alert: Alert) -> str:
    # Alerts tied to no record (goal-reached) are keyed by their own id
    return alert.booking_id or alert.client_id or alert.id


def load_existing_keys(alerts: Iterable[Alert]) -> Tuple[Set[AlertKey], Set[str]]:
    """
    Scans the current alerts and returns:
      (unread_keys, alert_ids)
    """
    unread_keys = set()
    alert_ids = set()

    for a in alerts:
        alert_ids.add(a.id)
        if a.read:
            continue
        unread_keys.add(alert_key(a.type, _related_id(a)))

    return unread_keys, alert_ids


def is_alert_duplicate(alert: Alert, unread_keys: Set[AlertKey], alert_ids: Set[str]) -> bool:
    if alert.id in alert_ids:
        return True
    return alert_key(alert.type, _related_id(alert)) in unread_keys
