"""Errors raised across the scheduling core."""

from __future__ import annotations


class ReminderPersistenceError(RuntimeError):
    """The reminder store refused a deferred reminder."""

    def __init__(self, booking_uid: str, workflow_step_id: int, reason: str) -> None:
        self.booking_uid = booking_uid
        self.workflow_step_id = workflow_step_id
        self.reason = reason
        super().__init__(
            f"could not persist webhook reminder for booking {booking_uid!r} "
            f"(step {workflow_step_id}): {reason}"
        )
