"""
Booking Availability

FLOW OVERVIEW
- compute_availability(year, month, appointments, today)
  • One entry per remaining day of the month (past days skipped).
  • Capacity: weekends 4 photo sessions + 22 consultation slots (12 PM-11 PM),
    weekdays 1 photo session + 13 consultation slots (4:30 PM-11 PM).
  • Photo and consultation bookings are counted separately against their own
    capacity; `slots` is the remaining total.
  • Urgency is driven by photo sessions: none left → high; the last of several,
    or five or fewer slots overall → medium; otherwise low.
- most_booked_month(appointment_dates) → month name with the most bookings.
"""

import calendar
from collections import Counter
from dataclasses import dataclass, asdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple


MONTH_NAMES = list(calendar.month_name)[1:]

WEEKEND_PHOTO_SLOTS = 4
WEEKEND_CONSULTATION_SLOTS = 22
WEEKDAY_PHOTO_SLOTS = 1
WEEKDAY_CONSULTATION_SLOTS = 13
URGENT_WEEKENDS_THRESHOLD = 3


@dataclass
class DayAvailability:
    date: str
    slots: int
    photoSlots: int
    consultationSlots: int
    urgency: str
    isWeekend: bool


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def day_capacity(day: date) -> Tuple[int, int]:
    """(photo_sessions, consultation_slots) for a calendar day"""
    if is_weekend(day):
        return WEEKEND_PHOTO_SLOTS, WEEKEND_CONSULTATION_SLOTS
    return WEEKDAY_PHOTO_SLOTS, WEEKDAY_CONSULTATION_SLOTS


def urgency_for(photo_available: int, photo_max: int, total_available: int) -> str:
    if photo_available == 0:
        return 'high'
    if photo_available == 1 and photo_max > 1:
        return 'medium'
    if total_available <= 5:
        return 'medium'
    return 'low'


def compute_availability(year: int, month: int, appointments: Iterable[Tuple[date, Optional[str]]],
                         today: Optional[date] = None) -> Dict:
    """
    Args:
        appointments: (appointment_date, service_type) pairs within the month
        today: days before this are skipped

    Returns:
        {availableDates, bookedCount, urgentMonths, stats: {weekendsLeft}}
    """
    today = today or date.today()
    photo_bookings: Counter = Counter()
    consultation_bookings: Counter = Counter()
    for appointment_date, service_type in appointments:
        if (service_type or '').lower() == 'consultation':
            consultation_bookings[appointment_date] += 1
        else:
            photo_bookings[appointment_date] += 1

    booked_days = set(photo_bookings) | set(consultation_bookings)

    days: List[DayAvailability] = []
    for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
        day = date(year, month, day_number)
        if day < today:
            continue

        photo_max, consultation_max = day_capacity(day)
        photo_available = max(0, photo_max - photo_bookings[day])
        consultation_available = max(0, consultation_max - consultation_bookings[day])
        total_available = photo_available + consultation_available

        days.append(DayAvailability(
            date=day.isoformat(),
            slots=total_available,
            photoSlots=photo_available,
            consultationSlots=consultation_available,
            urgency=urgency_for(photo_available, photo_max, total_available),
            isWeekend=is_weekend(day),
        ))

    weekends_left = sum(1 for day in days if day.isWeekend and day.photoSlots > 0)
    month_name = MONTH_NAMES[month - 1]

    return {
        'availableDates': [asdict(day) for day in days],
        'bookedCount': len(booked_days),
        'urgentMonths': [month_name] if weekends_left <= URGENT_WEEKENDS_THRESHOLD else [],
        'stats': {'weekendsLeft': weekends_left},
    }


def most_booked_month(appointment_dates: Iterable[date], fallback_month: int) -> str:
    counts = Counter(appointment_date.month for appointment_date in appointment_dates)
    if not counts:
        return MONTH_NAMES[fallback_month - 1]
    # Earliest month wins ties
    best_month = max(sorted(counts), key=lambda month_number: counts[month_number])
    return MONTH_NAMES[best_month - 1]
