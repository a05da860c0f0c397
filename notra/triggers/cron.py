"""Cron expressions for schedule triggers, for the external scheduler that calls the run endpoint."""

from typing import Optional

from notra.triggers.models import CronConfig


def build_cron_expression(cron: Optional[CronConfig]) -> Optional[str]:
    if cron is None:
        return None

    minute = cron.minute or 0
    hour = cron.hour or 0

    if cron.frequency == "weekly":
        day_of_week = cron.day_of_week if cron.day_of_week is not None else 1
        return f"{minute} {hour} * * {day_of_week}"

    if cron.frequency == "monthly":
        day_of_month = cron.day_of_month if cron.day_of_month is not None else 1
        return f"{minute} {hour} {day_of_month} * *"

    return f"{minute} {hour} * * *"
