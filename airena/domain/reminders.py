"""
Reminder scheduler - At-most-once submission reminders.

Two sweeps share one reminder ledger:

- Daily sweep: UPCOMING and LIVE events with a deadline in the next
  7 days, reminding only when exactly 1, 3 or 7 days remain (DAILY class).
- Hourly sweep: LIVE events with a future deadline, classified by the
  hours remaining:
      hours <= 1.1          ONE_HOUR
      23 < hours <= 24.1    FINAL_DAY
      2..7 days (ceiling)   DAILY

Participants with any non-draft submission (their own or their team's)
are never reminded.

Deduplication: before sending, a ledger entry keyed by (recipient, event,
class[, date]) is claimed with insert-or-ignore semantics. Only the sweep
that creates the entry sends, so overlapping sweeps cannot both deliver.
A claimed reminder whose delivery fails stays claimed.

Sweeps never raise. A failure for one participant or event is logged and
the sweep moves on.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .messages import (
    daily_reminder_message,
    final_day_reminder_message,
    one_hour_reminder_message,
)
from .ports import (
    Clock,
    EmailDispatcher,
    EmailMessage,
    Event,
    EventStatus,
    LedgerKey,
    Recipient,
    ReminderClass,
    ReminderRepository,
    utc_now,
)

logger = logging.getLogger(__name__)

DAILY_REMINDER_DAYS = frozenset({1, 3, 7})
DAILY_LOOKAHEAD = timedelta(days=7)
ONE_HOUR_MAX_HOURS = 1.1  # buffer for the hourly timer's offset
FINAL_DAY_MIN_HOURS = 23.0
FINAL_DAY_MAX_HOURS = 24.1
DAILY_MAX_DAYS = 7


def days_remaining(deadline: datetime, now: datetime) -> int:
    """Whole days left until the deadline, rounded up."""
    return math.ceil((deadline - now) / timedelta(days=1))


def classify_hourly(deadline: datetime, now: datetime) -> ReminderClass | None:
    """Reminder class for the hourly sweep, or None outside every window."""
    hours = (deadline - now) / timedelta(hours=1)
    if hours <= 0:
        return None
    if hours <= ONE_HOUR_MAX_HOURS:
        return ReminderClass.ONE_HOUR
    if FINAL_DAY_MIN_HOURS < hours <= FINAL_DAY_MAX_HOURS:
        return ReminderClass.FINAL_DAY
    if 1 < math.ceil(hours / 24) <= DAILY_MAX_DAYS:
        return ReminderClass.DAILY
    return None


@dataclass
class SweepReport:
    """Counts collected by one sweep."""

    sweep: str
    events: int = 0
    sent: int = 0
    duplicates: int = 0
    failed: int = 0


@dataclass
class ReminderScheduler:
    """Domain service evaluating reminder windows and dispatching reminders."""

    repository: ReminderRepository
    dispatcher: EmailDispatcher
    dashboard_url: str = ""
    clock: Clock = utc_now

    def run_daily_sweep(self) -> SweepReport:
        report = SweepReport(sweep="daily")
        logger.info("Starting daily deadline reminder sweep")
        try:
            now = self.clock()
            events = self.repository.list_events_due(
                [EventStatus.UPCOMING, EventStatus.LIVE], now, now + DAILY_LOOKAHEAD
            )
            logger.info("Found %d events with deadlines in the next 7 days", len(events))

            for event in events:
                days_left = days_remaining(event.submission_deadline, now)
                if days_left not in DAILY_REMINDER_DAYS:
                    continue
                self._remind_event(event, ReminderClass.DAILY, days_left, now, report)
        except Exception:
            logger.exception("Daily reminder sweep aborted")

        self._log_report(report)
        return report

    def run_hourly_sweep(self) -> SweepReport:
        report = SweepReport(sweep="hourly")
        logger.info("Starting hourly submission reminder sweep")
        try:
            now = self.clock()
            events = self.repository.list_events_due([EventStatus.LIVE], now)

            for event in events:
                reminder_class = classify_hourly(event.submission_deadline, now)
                if reminder_class is None:
                    continue
                days_left = days_remaining(event.submission_deadline, now)
                self._remind_event(event, reminder_class, days_left, now, report)
        except Exception:
            logger.exception("Hourly reminder sweep aborted")

        self._log_report(report)
        return report

    def trigger_manual(self) -> list[SweepReport]:
        """Run both sweeps now. Safe to repeat: the ledger suppresses duplicates."""
        logger.info("Manual reminder sweep triggered")
        return [self.run_daily_sweep(), self.run_hourly_sweep()]

    def _remind_event(
        self,
        event: Event,
        reminder_class: ReminderClass,
        days_left: int,
        now: datetime,
        report: SweepReport,
    ) -> None:
        report.events += 1
        logger.info(
            "Processing %s reminders for '%s' (%d days left)",
            reminder_class.value,
            event.title,
            days_left,
        )
        try:
            recipients = self.repository.list_pending_recipients(event.id)
        except Exception:
            logger.exception("Could not load participants for event %s", event.id)
            return

        reminder_date = now.date() if reminder_class == ReminderClass.DAILY else None
        for recipient in recipients:
            key = LedgerKey(recipient.identity_id, event.id, reminder_class, reminder_date)
            try:
                if not self.repository.claim_reminder(key, now):
                    report.duplicates += 1
                    continue

                message = self._build_message(recipient, event, reminder_class, days_left)
                if self.dispatcher.send(message):
                    report.sent += 1
                    logger.info("Sent %s to %s", key.name, recipient.email)
                else:
                    report.failed += 1
            except Exception:
                report.failed += 1
                logger.exception(
                    "Failed to send %s reminder to participant %s",
                    reminder_class.value,
                    recipient.identity_id,
                )

    def _build_message(
        self,
        recipient: Recipient,
        event: Event,
        reminder_class: ReminderClass,
        days_left: int,
    ) -> EmailMessage:
        if reminder_class == ReminderClass.ONE_HOUR:
            return one_hour_reminder_message(recipient, event, self.dashboard_url)
        if reminder_class == ReminderClass.FINAL_DAY:
            return final_day_reminder_message(recipient, event, self.dashboard_url)
        return daily_reminder_message(recipient, event, days_left, self.dashboard_url)

    def _log_report(self, report: SweepReport) -> None:
        logger.info(
            "Reminder sweep %s completed: events=%d sent=%d duplicates=%d failed=%d",
            report.sweep,
            report.events,
            report.sent,
            report.duplicates,
            report.failed,
        )
