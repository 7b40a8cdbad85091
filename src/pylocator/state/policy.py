"""Intent-priority policy for replacing the current fix.

Freshness normally wins: any newer fix replaces the current one, even a
less accurate one. The exception is a result whose request started
*before* the current fix was written. Such a late arrival only wins if
its source carries strictly more user intent than the current fix.
"""

from __future__ import annotations

from pylocator.models.fix import FixSource


def intent_priority(source: FixSource | None) -> int:
    """Higher means the user asked for this more explicitly.

    ``None`` stands for an explicit clear, which ranks with manual input.
    """
    priorities: dict[FixSource | None, int] = {
        None: 30,
        FixSource.MANUAL: 30,
        FixSource.MOBILE: 20,
        FixSource.GPS: 10,
        FixSource.IP: 10,
    }
    return priorities.get(source, 0)


def should_accept_fix(
    *,
    ticket: int,
    current_written_at: int,
    current_source: FixSource | None,
    incoming_source: FixSource,
) -> bool:
    """Decide whether a fix requested at *ticket* may replace the current one.

    Policy:
    - Nothing written since the request started: accept.
    - Otherwise accept only if the incoming source outranks the write that
      happened in the meantime.
    """
    if current_written_at <= ticket:
        return True
    return intent_priority(incoming_source) > intent_priority(current_source)
