"""Delivery domain constants.

Weekdays follow ``date.weekday()``: Monday is 0 and Sunday is 6.
"""

from django.db import models


class TimeSlot(models.TextChoices):
    MORNING = "MORNING", "Manhã (08:00 - 12:00)"
    AFTERNOON = "AFTERNOON", "Tarde (12:00 - 16:00)"


class Weekday(models.IntegerChoices):
    MONDAY = 0, "Segunda-feira"
    TUESDAY = 1, "Terça-feira"
    WEDNESDAY = 2, "Quarta-feira"
    THURSDAY = 3, "Quinta-feira"
    FRIDAY = 4, "Sexta-feira"
    SATURDAY = 5, "Sábado"
    SUNDAY = 6, "Domingo"


WEEKEND_DAYS: frozenset[int] = frozenset({Weekday.SATURDAY, Weekday.SUNDAY})

# Upper bound for walking past weekends and holidays
MAX_ADVANCE_DAYS = 30

# Window scanned when laying out a month of subscription deliveries
SUBSCRIPTION_WINDOW_DAYS = 35

WEEKS_PER_MONTH = 4.33
