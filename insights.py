"""
Streaks, analytics and search over a user's reflections.

Everything here works on plain lists of reflection documents already loaded
from the store, so the functions are pure and safe to call on empty input.
"""

import re
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

CURRENT_STREAK_LOOKBACK = 30
TOP_WORDS = 100
RECENT_ACTIVITY = 5

ANALYTICS_WINDOWS = ("7", "30", "90", "365", "all")

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

STOP_WORDS = frozenset("""
the a an and or but in on at to for of with by
i me my myself we our ours ourselves you your yours yourself yourselves
he him his himself she her hers herself it its itself
they them their theirs themselves what which who whom this that these those
am is are was were be been being have has had having do does did doing
will would should could can may might must shall
""".split())

_NON_WORD = re.compile(r"[^\w\s]")

DateLike = Union[str, date]


def word_count(text: Optional[str]) -> int:
    return len((text or "").split())


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _as_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# ---------- Streaks ----------
def current_streak(days: Iterable[date], today: date, lookback: int = CURRENT_STREAK_LOOKBACK) -> int:
    """Consecutive days ending today (inclusive); stops at the first gap."""
    present = set(days)
    streak = 0
    for offset in range(lookback):
        if today - timedelta(days=offset) not in present:
            break
        streak += 1
    return streak


def longest_streak(days: Iterable[date]) -> int:
    ordered = sorted(set(days))
    longest = 0
    run = 0
    previous = None
    for day in ordered:
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


def calculate_streaks(dates: Iterable[DateLike], today: date, lookback: int = CURRENT_STREAK_LOOKBACK) -> Dict[str, int]:
    days = {_as_date(d) for d in dates}
    return {
        "currentStreak": current_streak(days, today, lookback),
        "longestStreak": longest_streak(days),
    }


# ---------- Analytics ----------
def tokenize(text: Optional[str]) -> List[str]:
    """Lower-cased words worth counting: no punctuation, short words or stop words."""
    cleaned = _NON_WORD.sub("", (text or "").lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]


def month_label(moment: datetime) -> str:
    return f"{MONTHS[moment.month - 1]} {moment.year}"


def analytics_window_start(days: str, now: datetime) -> Optional[datetime]:
    """Earliest created_at included for a time-range selector; None means all time."""
    if days not in ANALYTICS_WINDOWS:
        raise ValueError(f"Unsupported time range: {days}")
    if days == "all":
        return None
    return now - timedelta(days=int(days))


def compute_analytics(reflections: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Aggregate a user's reflections in one pass.

    ``reflections`` must be ordered by ascending creation time; mood-over-time
    and the monthly histogram keep that order.
    """
    total_words = 0
    longest = 0
    day_counts: Dict[str, int] = {}
    mood_counts: Dict[str, int] = {}
    month_counts: Dict[str, int] = {}
    mood_over_time: List[Dict[str, str]] = []
    words: Counter = Counter()

    for r in reflections:
        content = r.get("content") or ""
        count = word_count(content)
        total_words += count
        longest = max(longest, count)

        created = r.get("created_at")
        if created is not None:
            created = _as_datetime(created)
            day = WEEKDAYS[created.weekday()]
            day_counts[day] = day_counts.get(day, 0) + 1
            month = month_label(created)
            month_counts[month] = month_counts.get(month, 0) + 1

        mood = r.get("mood")
        if mood:
            mood_counts[mood] = mood_counts.get(mood, 0) + 1
            mood_over_time.append({"date": r.get("date"), "mood": mood})

        words.update(tokenize(content))

    # max() keeps the first key on ties, i.e. the first weekday encountered
    most_active = max(day_counts, key=day_counts.get) if day_counts else "None"
    # Counter.most_common is stable for equal counts
    frequency = [{"word": w, "count": c} for w, c in words.most_common(TOP_WORDS)]

    return {
        "totalWords": total_words,
        "averageWordsPerDay": total_words / len(reflections) if reflections else 0,
        "longestReflection": longest,
        "mostActiveDay": most_active,
        "moodDistribution": [{"mood": m, "count": c} for m, c in mood_counts.items()],
        "wordFrequency": frequency,
        "moodOverTime": mood_over_time,
        "reflectionsByMonth": [{"month": m, "count": c} for m, c in month_counts.items()],
    }


def writing_summary(reflections: List[Dict[str, Any]], today: date) -> Dict[str, Any]:
    """Totals, streaks and the latest activity lines for the stats page."""
    counts = [word_count(r.get("content")) for r in reflections]
    total_words = sum(counts)
    recent = []
    for r, words in list(zip(reflections, counts))[-RECENT_ACTIVITY:][::-1]:
        created = _as_datetime(r["created_at"])
        recent.append(f"{created.date().isoformat()}: Wrote {words} words")
    return {
        "totalReflections": len(reflections),
        "totalWords": total_words,
        "averageWordsPerReflection": total_words / len(reflections) if reflections else 0,
        **calculate_streaks((r["date"] for r in reflections), today),
        "recentActivity": recent,
    }


# ---------- Search ----------
def matches_query(reflection: Dict[str, Any], query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return False
    if needle in (reflection.get("content") or "").lower():
        return True
    if needle in (reflection.get("mood") or "").lower():
        return True
    return any(needle in tag.lower() for tag in reflection.get("tags") or [])
